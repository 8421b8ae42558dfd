from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from swiftstock.errors import ServiceError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, errors: list | None = None) -> JSONResponse:
    body = {'success': False, 'message': message}
    if errors is not None:
        body['errors'] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=body)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
        return error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, 'Invalid input', [
            {'loc': list(err.get('loc', ())), 'msg': err.get('msg'), 'type': err.get('type')}
            for err in exc.errors()
        ])

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception('Database error on %s %s', request.method, request.url.path)
        return error_response(500, 'Internal server error')

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception('Unhandled error on %s %s', request.method, request.url.path)
        return error_response(500, 'Internal server error')
