"""
db_gateway.auth.models

Auth domain models.

Responsibilities:
- Define the authenticated caller type (`Principal`) injected into write endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

ROLE_WRITER = "writer"
ROLE_STRUCTURE = "structure"


@dataclass(frozen=True, slots=True)
class Principal:
    """
    Caller that presented a valid shared secret.

    Holding the write token grants `writer`; holding the structure key grants
    both `writer` and `structure`.
    """

    roles: frozenset[str]

    @property
    def can_create_structure(self) -> bool:
        return ROLE_STRUCTURE in self.roles
