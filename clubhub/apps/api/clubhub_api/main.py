"""ClubHub API - FastAPI Application Entry Point."""

import logging
import os
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clubhub_api.config.env import get_cors_allowed_origins
from clubhub_api.context import request_id_var
from clubhub_api.errors import PROBLEM_BASE_URL, ClubHubError
from clubhub_api.routers import (
    access_requests,
    admin,
    club_users,
    clubs,
    health,
    ledger,
    members,
    users,
)
from clubhub_api.schemas import ProblemDetail
from clubhub_api.utils import configure_json_logging

app = FastAPI(
    title="ClubHub API",
    description="Multi-tenant club management with row-level tenant isolation and RFC 9457 error handling.",
    version="0.1.0",
    docs_url="/api-docs",
    redoc_url="/redoc",
)

# Set CLUBHUB_JSON_LOGS=false to disable (defaults to true for production)
if os.getenv("CLUBHUB_JSON_LOGS", "true").lower() != "false":
    configure_json_logging(log_level=os.getenv("LOG_LEVEL", "INFO"))
    logger = logging.getLogger(__name__)
    logger.info("Structured JSON logging enabled")

# Credentials mode cannot use wildcard origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Club-Slug", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# Completion logging
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Emit one "http.request.completed" log per request.

    Dependencies run in the endpoint's task, so contextvars they set are
    not visible here. The caller and club are read from the authorization
    context the guard pipeline leaves on request.state instead.
    """
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        extra: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }
        authz = getattr(request.state, "authz", None)
        if authz is not None:
            extra["user_id"] = authz.user_id
            if authz.club_id:
                extra["tenant_id"] = authz.club_id
        logging.getLogger(__name__).info("http.request.completed", extra=extra)


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate and propagate request_id for observability.

    - Accepts X-Request-ID header from client (optional)
    - Generates new UUID if not provided
    - Returns X-Request-ID in response headers

    Registered last so it wraps every other middleware.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# RFC 9457 Global Exception Handlers
# ============================================================================


def _problem_response(
    status_code: int,
    problem_type: str,
    title: str,
    detail: Any,
    code: str,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build an application/problem+json response with an opaque instance."""
    request_id = request_id_var.get() or str(uuid.uuid4())

    problem = ProblemDetail(
        type=problem_type,
        title=title,
        status=status_code,
        detail=detail,
        instance=f"urn:clubhub:trace:{request_id}",
        code=code,
    )

    return JSONResponse(
        status_code=status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers={"X-Request-ID": request_id, **(headers or {})},
    )


@app.exception_handler(ClubHubError)
async def clubhub_error_handler(request: Request, exc: ClubHubError) -> JSONResponse:
    """Authorization denials and domain rule violations."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return _problem_response(
        status_code=exc.status_code,
        problem_type=exc.problem_type,
        title=exc.title,
        detail=exc.detail,
        code=exc.code,
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework HTTP errors (unknown route, method not allowed)."""
    title = _get_title_for_status(exc.status_code)
    return _problem_response(
        status_code=exc.status_code,
        problem_type=f"{PROBLEM_BASE_URL}/http-{exc.status_code}",
        title=title,
        detail=exc.detail if exc.detail is not None else title,
        code=_get_code_for_status(exc.status_code),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with the first offending field."""
    first_error = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")

    return _problem_response(
        status_code=422,
        problem_type=f"{PROBLEM_BASE_URL}/validation-error",
        title="Request Validation Failed",
        detail=f"Invalid field '{field}': {msg}",
        code="VALIDATION_ERROR",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unhandled becomes an opaque 500."""
    logging.getLogger(__name__).error(f"Unhandled exception: {exc}", exc_info=True)

    return _problem_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        problem_type=f"{PROBLEM_BASE_URL}/internal-error",
        title="Internal Server Error",
        detail="An unexpected error occurred. Please try again later.",
        code="INTERNAL_ERROR",
    )


def _get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


def _get_code_for_status(status_code: int) -> str:
    return _get_title_for_status(status_code).upper().replace(" ", "_")


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(users.router)
app.include_router(clubs.collection_router)
app.include_router(clubs.router)
app.include_router(access_requests.router)
app.include_router(club_users.router)
app.include_router(members.router)
app.include_router(ledger.router)
app.include_router(admin.router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"name": "ClubHub API", "docs": "/api-docs"}
