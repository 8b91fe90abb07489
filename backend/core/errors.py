"""Error taxonomy and content-negotiated error responses.

Handlers raise ``ApiError`` subclasses; the exception handlers registered by
``register_error_handlers`` turn them into ``{"message": ...}`` JSON for API
clients and a themed HTML page for browsers (``Accept`` containing
``text/html``). Unauthenticated browser requests are redirected to the login
page instead.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
}


class ApiError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status_code: int = 500

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def default_message(self) -> str:
        return DEFAULT_MESSAGES.get(self.status_code, "Error")


class NotFoundError(ApiError):
    status_code = 404


class BadRequestError(ApiError):
    status_code = 400


class InternalError(ApiError):
    status_code = 500


class UnauthorizedError(ApiError):
    """Missing or malformed credentials. ``reason`` is ``missing`` or ``malformed``."""

    status_code = 401

    MISSING = "missing"
    MALFORMED = "malformed"

    def __init__(self, reason: str, message: Optional[str] = None) -> None:
        self.reason = reason
        if message is None:
            message = "Malformed auth cookie" if reason == self.MALFORMED else "Auth cookie missing"
        super().__init__(message)


def accepts_html(request: Request) -> bool:
    return any("text/html" in value for value in request.headers.getlist("accept"))


def _default_message(status_code: int) -> str:
    return DEFAULT_MESSAGES.get(status_code, "Error")


def render_error(request: Request, status_code: int, message: str) -> Response:
    """Render an error as an HTML page or as a JSON body depending on ``Accept``."""
    if accepts_html(request):
        templates = request.app.state.templates
        return templates.TemplateResponse(
            request,
            "error.html",
            {"code": str(status_code), "message": message},
            status_code=status_code,
        )
    return JSONResponse({"message": message}, status_code=status_code)


def login_redirect(request: Request) -> RedirectResponse:
    next_path = request.url.path
    return RedirectResponse(f"/login?next={quote(next_path)}", status_code=303)


async def api_error_handler(request: Request, exc: ApiError) -> Response:
    if isinstance(exc, UnauthorizedError) and accepts_html(request):
        return login_redirect(request)
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return render_error(request, exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 401 and accepts_html(request):
        return login_redirect(request)
    detail = exc.detail if isinstance(exc.detail, str) else None
    if detail is None or detail == _default_message(exc.status_code) or exc.status_code == 404:
        message = _default_message(exc.status_code)
    else:
        message = detail
    response = render_error(request, exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    errors = exc.errors()
    message = _default_message(422)
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{message}: {location} {first.get('msg', '')}".strip()
    return render_error(request, 422, message)


async def unhandled_error_handler(request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return render_error(request, 500, _default_message(500))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
