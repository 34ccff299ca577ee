import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from canteen.core.errors import (
    BadRequestError,
    DomainError,
    ForbiddenError,
    NotAvailableError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from canteen.schemas.response import error_body

log = logging.getLogger("canteen.errors")

# Fallback codes for domain errors a route did not translate itself
_DOMAIN_STATUS = (
    (UnauthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (NotAvailableError, 409),
    (ValidationError, 400),
    (BadRequestError, 400),
)


# ----------- Exception Handlers (called by FastAPI) -----------

def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handles HTTPException (e.g., 403 from a principal check, 404 for unknown paths)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Pydantic validation errors are reported as 400 with the same envelope."""
    body = error_body("Invalid input data", details=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=400, content=body)


def domain_exception_handler(request: Request, exc: DomainError):
    status_code = next((code for kind, code in _DOMAIN_STATUS if isinstance(exc, kind)), 500)
    if status_code == 500:
        log.error(f"Internal error on path {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content=error_body(exc.message))


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.error(f"Unhandled exception on path: {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("Internal Server Error"))


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DomainError, domain_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
    return app
