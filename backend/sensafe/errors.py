from __future__ import annotations
from collections.abc import Mapping
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from sensafe.config import SESSION_COOKIE_NAME


class AppError(Exception):
    """서비스 계층에서 던지고, 아래 핸들러가 HTTP 응답으로 바꿉니다."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", errors: Optional[Mapping[str, list[str]]] = None):
        super().__init__(message)
        self.errors = dict(errors or {})

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        if self.errors:
            body["errors"] = self.errors
        return body


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized.", clear_cookie: bool = True):
        super().__init__(message)
        self.clear_cookie = clear_cookie


class InternalError(AppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def field_errors(errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    """pydantic 에러 목록을 {필드: [메시지]} 형태로 평탄화."""
    flat: dict[str, list[str]] = {}
    for err in errors:
        # loc 예: ("body", "latitude") / ("path", "parentId")
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "path", "query")]
        key = ".".join(loc) or "_schema"
        msg = err.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        flat.setdefault(key, []).append(msg)
    return flat


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("{} {} failed: {}", request.method, request.url.path, exc.message)
    response = JSONResponse(exc.payload(), status_code=exc.status_code)
    if isinstance(exc, AuthError) and exc.clear_cookie:
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": "Validation failed", "errors": field_errors(exc.errors())},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)
    return JSONResponse(
        {"message": "An unexpected error occurred."},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
