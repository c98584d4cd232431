from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.errors import error_response
from app.business.reporting.analytics.errors import InvalidActionError
from app.business.reporting.analytics.repository import AnalyticsDataSource, SqlAnalyticsDataSource
from app.business.reporting.analytics.schemas import AnalyticsRequest
from app.business.reporting.analytics.service import AnalyticsService
from app.core.auth import AuthUser, get_current_user
from app.core.config import AnalyticsConfig, get_settings
from app.core.database import get_session_factory
from app.platform.security.errors import AuthorizationError


logger = logging.getLogger("app.analytics.api")

router = APIRouter(prefix="/api", tags=["analytics"])


def get_analytics_data_source(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> AnalyticsDataSource:
    return SqlAnalyticsDataSource(session_factory)


def get_analytics_service(
    data_source: AnalyticsDataSource = Depends(get_analytics_data_source),
) -> AnalyticsService:
    return AnalyticsService(config=AnalyticsConfig.from_settings(get_settings()), data_source=data_source)


@router.post("/analytics", response_model=None)
def run_analytics(
    request: Request,
    body: AnalyticsRequest,
    user: AuthUser = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, Any] | JSONResponse:
    try:
        result = service.dispatch(body.action, user.sub, body.params)
    except InvalidActionError as exc:
        return error_response(request, status_code=400, code="INVALID_ACTION", message=str(exc))
    except AuthorizationError as exc:
        return error_response(request, status_code=403, code="ACCESS_DENIED", message=str(exc))
    except Exception as exc:
        logger.exception("analytics.failed", extra={"action": body.action, "error": str(exc)})
        return error_response(request, status_code=500, code="ANALYTICS_ERROR", message=str(exc))
    return {"data": result.model_dump(mode="json")}
