"""
db_gateway.auth

Authentication/authorization package.

Responsibilities:
- Shared-secret bearer token checks.
- FastAPI auth dependencies (Principal + role checks).
"""

# Package marker.
