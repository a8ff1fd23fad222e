"""Global exception handlers — map engine exceptions to HTTP status codes.

Route handlers stay on the happy path; these handlers translate the
engine's exception taxonomy:

    UnknownSymptomCode, InvalidResponse  -> 422
    SessionNotFound                      -> 404
    SessionExpired                       -> 410
    SessionAlreadyTerminal               -> 409
    KnowledgeBaseUnavailable             -> 503

The raw exception message is logged server-side; clients receive a fixed
message plus, for input errors, the offending symptom code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from progressive_dx.errors import (
    InvalidResponse,
    KnowledgeBaseUnavailable,
    SessionAlreadyTerminal,
    SessionExpired,
    SessionNotFound,
    UnknownSymptomCode,
)

logger = logging.getLogger(__name__)


async def unknown_symptom_handler(request: Request, exc: UnknownSymptomCode) -> JSONResponse:
    logger.warning("UnknownSymptomCode at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=422,
        content={"detail": "Unknown symptom code", "symptom": exc.code},
    )


async def invalid_response_handler(request: Request, exc: InvalidResponse) -> JSONResponse:
    logger.warning("InvalidResponse at %s: %s", request.url, exc)
    return JSONResponse(status_code=422, content={"detail": "Invalid response"})


async def session_not_found_handler(request: Request, exc: SessionNotFound) -> JSONResponse:
    logger.warning("SessionNotFound at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def session_expired_handler(request: Request, exc: SessionExpired) -> JSONResponse:
    logger.info("SessionExpired at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=410,
        content={"detail": "Session expired; start a new session"},
    )


async def session_terminal_handler(request: Request, exc: SessionAlreadyTerminal) -> JSONResponse:
    logger.info("SessionAlreadyTerminal at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=409,
        content={"detail": "Session already finished; start a new session"},
    )


async def kb_unavailable_handler(request: Request, exc: KnowledgeBaseUnavailable) -> JSONResponse:
    logger.error("KnowledgeBaseUnavailable at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Knowledge base unavailable"},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    """Install every handler.  Starlette picks the most specific class."""
    app.add_exception_handler(UnknownSymptomCode, unknown_symptom_handler)
    app.add_exception_handler(InvalidResponse, invalid_response_handler)
    app.add_exception_handler(SessionNotFound, session_not_found_handler)
    app.add_exception_handler(SessionExpired, session_expired_handler)
    app.add_exception_handler(SessionAlreadyTerminal, session_terminal_handler)
    app.add_exception_handler(KnowledgeBaseUnavailable, kb_unavailable_handler)
    app.add_exception_handler(Exception, generic_error_handler)
