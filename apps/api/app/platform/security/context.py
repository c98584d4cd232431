from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class AuthContext:
    """Caller identity with the role re-read from the profile store for this request."""

    user_id: str
    role: str = "user"
    full_name: str | None = None
    is_admin: bool = False
    correlation_id: str | None = None
