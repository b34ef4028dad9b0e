"""
Stack16 - API Errors

Raise an AppError subclass anywhere in a request; the handlers registered
in server.py turn it into a JSON body of the form {"message": ...}.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stack16.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationError(AppError):
    status_code = 400


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ServiceUnavailableError(AppError):
    status_code = 503


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
        else:
            logger.warning("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)

        body = {"message": exc.message}
        if exc.errors is not None:
            body["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        if settings.ENVIRONMENT == "production":
            message = "An unexpected error occurred. Please try again later."
        else:
            message = str(exc) or exc.__class__.__name__
        return JSONResponse(status_code=500, content={"message": message})
