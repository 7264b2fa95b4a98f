"""
Error translation.

Every failure leaves the API as ``{"success": false, "error": <message>}``.
Store-layer signals are mapped onto HTTP statuses here so handlers can let
them propagate.
"""

import logging

from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from geocoder import GeocoderError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def format_validation_errors(errors) -> str:
    messages = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        messages.append(f"{field}: {err['msg']}" if field else err["msg"])
    return ", ".join(messages)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(400, format_validation_errors(exc.errors()))


async def validation_error_handler(request: Request, exc: ValidationError):
    return error_response(400, format_validation_errors(exc.errors()))


async def invalid_id_handler(request: Request, exc: InvalidId):
    return error_response(400, "Resource not found")


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return error_response(400, "Duplicate field value entered")


async def geocoder_error_handler(request: Request, exc: GeocoderError):
    return error_response(500, "Geocoding service unavailable")


async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Server Error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(GeocoderError, geocoder_error_handler)
    app.add_exception_handler(Exception, server_error_handler)
