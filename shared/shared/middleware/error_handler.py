import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _error_body(detail: object) -> dict:
    if isinstance(detail, dict):
        return {
            "code": str(detail.get("code", "http_error")),
            "message": str(detail.get("message", "")),
            **{k: v for k, v in detail.items() if k not in ("code", "message")},
        }
    return {"code": "http_error", "message": str(detail)}


async def error_envelope_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    try:
        return await call_next(request)
    except StarletteHTTPException as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": _error_body(exc.detail),
                "request_id": getattr(request.state, "request_id", None),
            },
        )
    except Exception:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {"code": "internal_error", "message": "An unexpected error occurred"},
                "request_id": getattr(request.state, "request_id", None),
            },
        )
