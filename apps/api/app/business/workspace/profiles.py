from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.business.workspace.models import Profile
from app.context import get_correlation_id
from app.platform.security import AuthContext, build_auth_context


def load_caller_context(session: Session, caller_id: str, *, admin_role: str) -> AuthContext:
    profile = session.scalar(select(Profile).where(Profile.user_id == caller_id))
    return build_auth_context(
        caller_id,
        role=profile.role if profile is not None else None,
        full_name=(profile.full_name if profile is not None else None) or "Unknown User",
        admin_role=admin_role,
        correlation_id=get_correlation_id(),
    )
