from app.platform.security import (
    AuthContext,
    AuthenticationError,
    AuthorizationError,
    BaseRepository,
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
