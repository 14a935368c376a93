"""
Top-level API error handling.

Converts any exception reaching a route into a JSON error body with the
error's declared status. Stack traces never leave the server.
"""

import logging
import math
import time
from typing import Any, Dict, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .types import AppError, RateLimitError, get_error_metadata

logger = logging.getLogger(__name__)


def rate_limit_headers(err: RateLimitError) -> Dict[str, str]:
    headers = {"X-RateLimit-Remaining": str(max(err.remaining, 0))}
    if err.limit is not None:
        headers["X-RateLimit-Limit"] = str(err.limit)
    if err.reset is not None:
        headers["X-RateLimit-Reset"] = str(int(err.reset))
        headers["Retry-After"] = str(max(1, math.ceil(err.reset - time.time())))
    else:
        headers["Retry-After"] = "60"
    return headers


def handle_api_error(err: BaseException) -> Tuple[Dict[str, Any], int, Dict[str, str]]:
    """
    Map an exception to (body, status_code, headers).

    AppErrors keep their status and code; objects exposing an HTTP status
    keep that status; anything else becomes a generic 500.
    """
    if isinstance(err, AppError):
        body: Dict[str, Any] = {"error": err.message, "code": err.code}
        if err.details:
            body["details"] = err.details
        headers = rate_limit_headers(err) if isinstance(err, RateLimitError) else {}
        if err.status_code >= 500:
            logger.error(f"API error: {get_error_metadata(err)}")
        else:
            logger.warning(f"API error: {err.code} {err.message}")
        return body, err.status_code, headers

    status_code = getattr(err, "status_code", None)
    if isinstance(status_code, int) and 400 <= status_code < 600:
        logger.warning(f"API error with status {status_code}: {err}")
        return {"error": str(err) or "Request failed"}, status_code, {}

    logger.error(f"Unhandled error: {type(err).__name__}: {err}", exc_info=err)
    return {"error": "Internal server error"}, 500, {}


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    body, status_code, headers = handle_api_error(exc)
    return JSONResponse(body, status_code=status_code, headers=headers)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"loc": list(error.get("loc", [])), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse({"error": "Invalid request body", "details": details}, status_code=400)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    body, status_code, headers = handle_api_error(exc)
    return JSONResponse(body, status_code=status_code, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Install JSON error handlers on the app."""
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
