from app.platform.security.context import AuthContext
from app.platform.security.errors import AuthenticationError, AuthorizationError
from app.platform.security.repository import BaseRepository
from app.platform.security.scope import (
    apply_owner_filter,
    build_auth_context,
    resolve_target_user_id,
    validate_target_scope,
)

__all__ = [
    "AuthContext",
    "AuthenticationError",
    "AuthorizationError",
    "BaseRepository",
    "apply_owner_filter",
    "build_auth_context",
    "resolve_target_user_id",
    "validate_target_scope",
]
