"""
Application exception handlers - map validation, lookup and persistence
failures to HTTP responses.
"""
import logging
import re
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from opsboard.repositories import NotFoundError
from opsboard.services.query import InvalidCursor
from opsboard.services.reconcile import UnknownChildError
from opsboard.services.storage import StorageError

logger = logging.getLogger(__name__)

# SQLite: "UNIQUE constraint failed: clients.email"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: [\w.]*?(\w+)(?:,|$)")
# PostgreSQL: "Key (email)=(a@b.c) already exists."
_PG_KEY = re.compile(r"Key \(([^)]+)\)")


def _error_body(message: str, errors: Optional[list] = None) -> dict:
    body = {"detail": message}
    if errors is not None:
        body["errors"] = errors
    return body


def _violated_field(message: str) -> Optional[str]:
    for pattern in (_SQLITE_UNIQUE, _PG_KEY):
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


def _is_unique_violation(message: str) -> bool:
    lowered = message.lower()
    return "unique" in lowered or "duplicate key" in lowered


def _is_foreign_key_violation(message: str) -> bool:
    return "foreign key" in message.lower()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # Drop the "body"/"query" prefix from the location
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append({"field": ".".join(loc) or "request", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content=_error_body("Validation failed", errors))


async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content=_error_body(str(exc)))


async def bad_request_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=400, content=_error_body(str(exc)))


async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig) if exc.orig is not None else str(exc)
    field = _violated_field(message)

    if _is_unique_violation(message):
        field = field or "unknown"
        logger.info(f"Unique violation on {field}: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=409,
            content=_error_body(
                f"Duplicate value: {field} must be unique",
                [{"field": field, "message": f"{field} must be unique"}],
            ),
        )

    if _is_foreign_key_violation(message):
        relation = field or "related record"
        return JSONResponse(
            status_code=400,
            content=_error_body(
                f"Invalid reference: {relation}",
                [{"field": field or "relation", "message": "Referenced record does not exist"}],
            ),
        )

    return JSONResponse(
        status_code=400,
        content=_error_body(message, [{"field": "database", "message": message}]),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.warning(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=400,
        content=_error_body(str(exc), [{"field": "database", "message": str(exc)}]),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error"))


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(UnknownChildError, bad_request_handler)
    app.add_exception_handler(InvalidCursor, bad_request_handler)
    app.add_exception_handler(StorageError, bad_request_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
