"""
db_gateway.errors

Error kinds raised by the gateway core.

The core never maps these to HTTP status codes; the API layer does
(`InvalidPayload` -> 400, everything else -> 500).
"""

from __future__ import annotations


class GatewayError(Exception):
    pass


class UnknownDatabase(GatewayError):
    def __init__(self, abbreviation: str) -> None:
        super().__init__(f"Database configuration not found for abbreviation: {abbreviation}")
        self.abbreviation = abbreviation


class UnsupportedEngine(GatewayError):
    pass


class DatabaseConnectionError(GatewayError):
    pass


class NoStructureFound(GatewayError):
    pass


class EngineError(GatewayError):
    pass


class InvalidPayload(GatewayError):
    pass
