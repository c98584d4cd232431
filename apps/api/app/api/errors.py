from __future__ import annotations

from dataclasses import asdict, dataclass

from fastapi import Request
from fastapi.responses import JSONResponse

from app.context import get_correlation_id


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(code=code, message=message, correlation_id=correlation_id or None)
    return JSONResponse(status_code=status_code, content={"error": asdict(payload)})
