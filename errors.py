"""
Error taxonomy for the listing API.

Every error carries a user-facing Arabic message; handlers below turn them
into `{"message": ...}` JSON bodies with the matching status code.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from logger import get_logger

LOGGER = get_logger("errors")

SERVER_ERROR_MESSAGE = "حدث خطأ في الخادم"


class AppError(Exception):
    status_code = 500
    default_message = SERVER_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "البيانات المدخلة غير صحيحة"


class AuthError(AppError):
    status_code = 401
    default_message = "غير مصرح بالدخول"


class AuthzError(AppError):
    status_code = 403
    default_message = "ليس لديك صلاحية للوصول"


class NotFoundError(AppError):
    status_code = 404
    default_message = "العنصر غير موجود"


class InfrastructureError(AppError):
    status_code = 500
    default_message = SERVER_ERROR_MESSAGE


def _message_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InfrastructureError):
        LOGGER.error("infrastructure error on %s %s: %s", request.method, request.url.path, exc.__cause__ or exc)
        return _message_response(exc.status_code, SERVER_ERROR_MESSAGE)
    return _message_response(exc.status_code, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # imported here: schemas depends on this module for ValidationError
    from schemas import first_error_message

    return _message_response(400, first_error_message(exc.errors()))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("unhandled error on %s %s", request.method, request.url.path)
    return _message_response(500, SERVER_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
