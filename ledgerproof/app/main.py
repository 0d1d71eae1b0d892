"""
ledgerproof - FastAPI Application

HTTP surface over the journal verification services: proof verification,
block hash validation, hash chain validation and stream reassembly.

Error handling:
- MalformedInputError -> 400 with the offending field name
- Request validation errors report field paths only, never request values
- EnvironmentalFailureError (no SHA-256) -> 503
- Unhandled exceptions return a generic 500
"""

import logging
import os
from typing import Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from ledgerproof.app.errors import EnvironmentalFailureError, MalformedInputError
from ledgerproof.app.routes import health, verify

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def rate_limits_disabled() -> bool:
    return os.environ.get("ENV") == "TEST" or os.environ.get("DISABLE_RATE_LIMITS") == "1"


def get_limiter() -> Limiter:
    """
    Application-wide limiter.

    ENV=TEST or DISABLE_RATE_LIMITS=1 raises the default limit out of reach so
    test suites can hammer the verification endpoints.
    """
    if rate_limits_disabled():
        return Limiter(key_func=get_remote_address, default_limits=["1000000/minute"])
    return Limiter(key_func=get_remote_address)


limiter = get_limiter()


def error_response(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    """JSON error body in the {"error", "message", ...} shape used by every handler."""
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


def sanitize_error_detail(detail: object) -> Dict[str, Any]:
    """
    HTTPException details raised by our routes are dicts and pass through;
    anything else (framework strings) is replaced by a generic message.
    """
    if isinstance(detail, dict):
        return detail
    return {"error": "http_error", "message": "An error occurred processing your request"}


def field_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Field path, error type and message of each validation error; input values are dropped."""
    return [
        {
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "type": error["type"],
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


app = FastAPI(
    title="ledgerproof",
    description="Merkle proof, journal block and hash chain verification for ledger journals",
    version=VERSION,
    debug=False,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=sanitize_error_detail(exc.detail))


@app.exception_handler(MalformedInputError)
async def malformed_input_handler(request: Request, exc: MalformedInputError):
    """Undecodable proofs, bad hash lengths and missing fields are client errors."""
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request body does not match the expected schema",
        details=field_errors(exc),
    )


@app.exception_handler(EnvironmentalFailureError)
async def environment_failure_handler(request: Request, exc: EnvironmentalFailureError):
    logger.error("Environment failure on %s: %s", request.url.path, exc)
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "environment_failure", str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Stack traces stay in the server log."""
    logger.exception("Unhandled %s on %s", type(exc).__name__, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Verification could not be completed"
    )


app.include_router(health.router)
app.include_router(verify.router)


@app.get("/")
async def root():
    return {"service": "ledgerproof", "version": VERSION, "status": "operational"}
