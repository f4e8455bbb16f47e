import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from carver.core.exceptions import (
    CarverException,
    ConstraintViolationException,
    DatabaseConnectionException,
    EntityNotFoundException,
    InvalidArgumentException,
    StorageException,
)

logger = logging.getLogger(__name__)


def status_for(exc: CarverException) -> int:
    """HTTP status for a domain exception; most specific kind first."""
    if isinstance(exc, EntityNotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, InvalidArgumentException):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ConstraintViolationException):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, DatabaseConnectionException):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, status_code: int) -> dict:
    return {"error": True, "message": message, "status_code": status_code}


async def carver_exception_handler(request: Request, exc: CarverException):
    status_code = status_for(exc)
    if isinstance(exc, StorageException):
        logger.error(f"{exc.message} - {request.method} {request.url}")
    else:
        logger.info(f"Rejected {request.method} {request.url}: {exc.message}")
    return JSONResponse(status_code=status_code, content=error_body(exc.message, status_code))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CarverException, carver_exception_handler)
