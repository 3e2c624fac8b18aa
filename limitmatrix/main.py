import socket
from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import settings
from .domain.exceptions import DomainError
from .infrastructure.database.database import get_main_engine, init_db
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.api_routes import api_router
from .presentation.error_handlers import (
    handle_domain_error,
    handle_validation_error,
    problem_response,
    render_error_response,
)
from .presentation.problem_details import ProblemDetailFactory
from .presentation.routes import router
from .request_utils import is_api_request
from .telemetry import setup_telemetry


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    logger = get_logger(__name__)

    # Only linked combinations are stored locally
    init_db(get_main_engine())
    logger.info("Database initialized successfully")

    hostname = socket.gethostname()
    try:
        ip_addr = socket.gethostbyname(hostname)
    except OSError:
        ip_addr = "unknown"
    log_system_info(hostname, ip_addr, settings.debug)
    logger.info("Policy service configured", url=settings.policy_service_url)

    yield

    logger.info("Application shutdown completed")


app: Final = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
    lifespan=lifespan,
    description="""
**limitmatrix** - read-mostly views over the limit combinations of insurance
contracts.

## Core Features

- **Matrix view** - one row per combination with amount, count, frequency and
  co-insurance rules rendered as short fragments and grouped by network scope
- **Rule views** - every rule of one kind across a contract, tagged with the
  combination it belongs to
- **CSV export** of the filtered matrix view
- **Linked combinations** - parent/child dependencies between combinations,
  with duplicate and cycle detection

## Data Source

Combinations are owned by the policy service and fetched on every request.
Create, update and delete calls are forwarded to it unchanged. Linked
combinations are stored by this application.

## Errors

API errors use RFC 7807 Problem Details (`application/problem+json`).
A policy service outage is reported as `502 Bad Gateway`.
    """.strip(),
    openapi_tags=[
        {
            "name": "combinations",
            "description": "Pass-through CRUD on limit combinations",
        },
        {
            "name": "matrix",
            "description": "Matrix and per-rule-type projections, CSV export",
        },
        {
            "name": "links",
            "description": "Parent/child dependencies between combinations",
        },
    ],
)

# Setup OpenTelemetry tracing
setup_telemetry(app)

app.middleware("http")(log_requests_middleware)


# Add global exception handlers
@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Global handler for domain-specific errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Domain error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return handle_domain_error(exc, request)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Global handler for validation errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Validation error occurred",
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return handle_validation_error(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Global handler for Pydantic validation errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Request validation error occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
    )

    if is_api_request(request):
        field_errors = []
        for error in exc.errors():
            field_name = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            field_errors.append(
                {
                    "field": field_name or "unknown",
                    "code": error["type"],
                    "message": error["msg"],
                }
            )

        problem = ProblemDetailFactory.validation_failed(
            detail="Request validation failed",
            instance=str(request.url.path),
            field_errors=field_errors,
        )
        return problem_response(problem)

    return render_error_response(
        request, "Please check your input and try again.", status_code=400
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Global handler for database errors."""
    logger = get_logger(__name__)
    logger.error(
        "Database error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    if is_api_request(request):
        if isinstance(exc, IntegrityError):
            # Unique edge constraint hit by a concurrent insert
            problem = ProblemDetailFactory.resource_already_exists(
                resource_type="link",
                detail="These combinations are already linked.",
                instance=str(request.url.path),
            )
        else:
            problem = ProblemDetailFactory.internal_server_error(
                detail="A database error occurred. Please try again.",
                instance=str(request.url.path),
            )
        return problem_response(problem)

    return render_error_response(
        request, "A database error occurred. Please try again.", status_code=500
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Global handler for unexpected errors."""
    logger = get_logger(__name__)
    logger.error(
        "Unexpected error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    if is_api_request(request):
        problem = ProblemDetailFactory.internal_server_error(
            detail="An unexpected error occurred. Please try again.",
            instance=str(request.url.path),
        )
        return problem_response(problem)

    return render_error_response(
        request, "Something went wrong. Please try again.", status_code=500
    )


@app.get("/health", include_in_schema=False)
async def health() -> dict[str, str]:
    return {"status": "ok", "version": settings.version}


# Include routers
app.include_router(api_router)
app.include_router(router)
