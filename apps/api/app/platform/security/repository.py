from __future__ import annotations

from typing import Any

from sqlalchemy.sql import Select

from app.platform.security.context import AuthContext
from app.platform.security.scope import apply_owner_filter, validate_target_scope


class BaseRepository:
    resource = ""

    def apply_scope_query(self, query: Select[Any], owner_user_id: str | None) -> Select[Any]:
        return apply_owner_filter(query, owner_user_id)

    def validate_read_scope(self, ctx: AuthContext, target_user_id: str | None) -> None:
        validate_target_scope(self.resource, ctx, target_user_id)
