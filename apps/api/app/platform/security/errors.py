from __future__ import annotations


class AuthenticationError(Exception):
    """Raised when the bearer credential is missing or cannot be verified."""


class AuthorizationError(Exception):
    """Raised when a caller asks for data outside of their scope."""

    def __init__(self, resource: str, message: str | None = None) -> None:
        self.resource = resource
        super().__init__(message or f"Access denied for resource '{resource}'")
