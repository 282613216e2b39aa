"""
db_gateway.api

API package for the gateway.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request shaping + auth + delegation to DatabaseManager.
