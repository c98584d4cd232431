from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.sql import Select

from app import audit
from app.metrics import observe_access_denied
from app.platform.security.context import AuthContext
from app.platform.security.errors import AuthorizationError


logger = logging.getLogger("app.security")


def build_auth_context(
    user_id: str,
    *,
    role: str | None,
    full_name: str | None,
    admin_role: str,
    correlation_id: str | None = None,
) -> AuthContext:
    resolved_role = (role or "user").strip() or "user"
    return AuthContext(
        user_id=user_id,
        role=resolved_role,
        full_name=full_name,
        is_admin=resolved_role.lower() == admin_role.lower(),
        correlation_id=correlation_id,
    )


def resolve_target_user_id(ctx: AuthContext, requested_user_id: str | None) -> str | None:
    """Pick whose data a read covers.

    Admins read the requested user, or every user when none is given. Everybody
    else is redirected to their own id whatever they asked for.
    """

    if ctx.is_admin:
        return requested_user_id or None
    return ctx.user_id


def validate_target_scope(resource: str, ctx: AuthContext, target_user_id: str | None) -> None:
    if ctx.is_admin:
        return
    if target_user_id == ctx.user_id:
        return

    reason = "organization_scope" if target_user_id is None else "foreign_user"
    observe_access_denied(resource=resource, reason=reason)
    logger.warning(
        "access.denied",
        extra={"resource": resource, "reason": reason, "user_id": ctx.user_id, "target_user_id": target_user_id},
    )
    audit.record(
        actor_user_id=ctx.user_id,
        entity_type="security.scope",
        entity_id=target_user_id or "*",
        action="access.denied",
        details={"resource": resource, "reason": reason},
        correlation_id=ctx.correlation_id,
    )
    raise AuthorizationError(resource)


def apply_owner_filter(query: Select[Any], owner_user_id: str | None) -> Select[Any]:
    """Restrict every selected entity that has a user_id column to one owner."""

    if owner_user_id is None:
        return query

    for description in query.column_descriptions:
        model = description.get("entity")
        if model is not None and hasattr(model, "user_id"):
            query = query.where(getattr(model, "user_id") == owner_user_id)
    return query
