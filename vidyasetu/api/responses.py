"""
Response envelope and exception handlers.

Every endpoint answers with ``{success, message?, data?, pagination?, error?, errors?}``.
Routes return ``success_response(...)``; failures are raised as exceptions and
rendered here, so route bodies carry no try/except boilerplate.
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidyasetu.core.exceptions import VidyaSetuException
from vidyasetu.core.services.logging import get_logging_service
from vidyasetu.core.services.settings_config_service import get_settings_service


def envelope(
    success: bool,
    message: Optional[str] = None,
    data: Any = None,
    pagination: Optional[Dict[str, int]] = None,
    error: Optional[str] = None,
    errors: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination
    if error is not None:
        body["error"] = error
    if errors:
        body["errors"] = errors
    return body


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    pagination: Optional[Dict[str, int]] = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            envelope(True, message=message, data=data, pagination=pagination)
        ),
    )


def error_response(
    status_code: int,
    message: str,
    error: Optional[str] = None,
    errors: Optional[List[Dict[str, str]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope(False, message=message, error=error, errors=errors),
        headers=headers,
    )


def _field_name(loc) -> str:
    # ("body", "questions", 0, "question_text") -> "questions[0].question_text"
    name = ""
    for part in loc:
        if part in ("body", "query", "path", "form", "header"):
            continue
        if isinstance(part, int):
            name += f"[{part}]"
        else:
            name += f".{part}" if name else str(part)
    return name or "request"


async def vidyasetu_exception_handler(request: Request, exc: VidyaSetuException):
    if exc.status_code >= 500:
        return await unhandled_exception_handler(request, exc)
    return error_response(exc.status_code, exc.message or "Request failed", errors=exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    get_logging_service().get_logger("error").error(
        "error.unhandled",
        exc_info=exc,
        method=request.method,
        path=request.url.path,
        error_message=str(exc),
    )
    expose = get_settings_service().getboolean("errors", "expose_details", False)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        error=str(exc) if expose else None,
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(VidyaSetuException, vidyasetu_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
