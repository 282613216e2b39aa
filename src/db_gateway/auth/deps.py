"""
db_gateway.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token (and optional structure key header) into a typed `Principal`.
- Reject callers holding neither shared secret, so every returned principal can write.
"""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from db_gateway.api.deps import settings_dep
from db_gateway.auth.models import ROLE_STRUCTURE, ROLE_WRITER, Principal
from db_gateway.settings import Settings

STRUCTURE_KEY_HEADER = "X-Structure-Key"

_bearer = HTTPBearer(auto_error=False)


def secret_matches(candidate: str | None, secret: str | None) -> bool:
    if not candidate or not secret:
        return False
    return hmac.compare_digest(candidate.encode(), secret.encode())


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    structure_key: str | None = Header(default=None, alias=STRUCTURE_KEY_HEADER),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    if not settings.api_token:
        raise HTTPException(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="API token is not configured"
        )
    token = creds.credentials if creds is not None else None

    roles: set[str] = set()
    if secret_matches(token, settings.structure_api_key):
        roles.update((ROLE_WRITER, ROLE_STRUCTURE))
    elif secret_matches(token, settings.api_token):
        roles.add(ROLE_WRITER)
    else:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid or missing token")

    # Elevation can also ride alongside an ordinary write token.
    if secret_matches(structure_key, settings.structure_api_key):
        roles.add(ROLE_STRUCTURE)
    return Principal(roles=frozenset(roles))


# --- Module Notes -----------------------------------------------------------
# Structure elevation is checked again by the databases router, only after an
# insert has failed for lack of a collection/table.
