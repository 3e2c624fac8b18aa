"""Centralized error handling for the presentation layer."""

from fastapi import Request, status
from fastapi.responses import HTMLResponse, JSONResponse

from ..domain.exceptions import (
    CombinationNotFoundError,
    CyclicLinkError,
    DomainError,
    LinkAlreadyExistsError,
    LinkNotFoundError,
    PolicyServiceError,
    PolicyServiceUnavailableError,
    ValidationError,
)
from ..request_utils import is_api_request
from .problem_details import (
    ErrorCodes,
    ProblemDetail,
    ProblemDetailFactory,
)
from .templating import templates

PROBLEM_JSON = "application/problem+json"


class ErrorFormatter:
    """Formats errors for consistent user experience."""

    @staticmethod
    def format_user_friendly_message(error: Exception) -> str:
        """Convert technical errors to user-friendly messages."""
        if isinstance(error, PolicyServiceUnavailableError):
            return "Pricing service unavailable. Please try again later."

        elif isinstance(error, PolicyServiceError):
            return "The pricing service rejected the request."

        elif isinstance(error, LinkAlreadyExistsError):
            return "These combinations are already linked."

        elif isinstance(error, CyclicLinkError):
            return (
                "This link would create a circular dependency between combinations."
            )

        elif isinstance(error, CombinationNotFoundError | LinkNotFoundError):
            return str(error)

        elif isinstance(error, ValidationError | ValueError):
            return str(error) or "Please check your input and try again."

        return "Something went wrong. Please try again."


def problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_JSON,
    )


def problem_for_domain_error(error: DomainError, instance: str) -> ProblemDetail:
    """Map a domain error onto the matching Problem Details document."""
    detail = ErrorFormatter.format_user_friendly_message(error)

    if isinstance(error, ValidationError):
        field_errors = []
        if error.field:
            field_errors.append(
                {
                    "field": error.field,
                    "code": ErrorCodes.FIELD_INVALID_VALUE,
                    "message": str(error),
                }
            )
        return ProblemDetailFactory.validation_failed(
            detail=detail, instance=instance, field_errors=field_errors
        )
    if isinstance(error, CombinationNotFoundError):
        return ProblemDetailFactory.resource_not_found(
            "combination", detail=detail, instance=instance
        )
    if isinstance(error, LinkNotFoundError):
        return ProblemDetailFactory.resource_not_found(
            "link", detail=detail, instance=instance
        )
    if isinstance(error, LinkAlreadyExistsError):
        return ProblemDetailFactory.resource_already_exists(
            resource_type="link",
            detail=detail,
            instance=instance,
            conflicting_field="childCombinationId",
        )
    if isinstance(error, CyclicLinkError):
        return ProblemDetailFactory.dependency_cycle(detail=str(error), instance=instance)
    if isinstance(error, PolicyServiceError):
        # Client errors from upstream keep their status; everything else is a gateway error
        upstream_status = error.status_code
        if (
            not isinstance(error, PolicyServiceUnavailableError)
            and upstream_status is not None
            and 400 <= upstream_status < 500
        ):
            status_code = upstream_status
        else:
            status_code = status.HTTP_502_BAD_GATEWAY
        return ProblemDetailFactory.upstream_error(
            detail=detail,
            status_code=status_code,
            instance=instance,
            upstream_status=upstream_status,
            upstream_body=error.body,
        )
    return ProblemDetailFactory.internal_server_error(
        detail="An unexpected error occurred. Please try again.", instance=instance
    )


def render_error_response(
    request: Request, message: str, status_code: int = 500
) -> HTMLResponse:
    """Render the inline error banner page for browser requests."""
    return templates.TemplateResponse(
        request,
        "error.html",
        {"error": message},
        status_code=status_code,
    )


def handle_domain_error(error: DomainError, request: Request):
    """Convert domain errors to appropriate HTTP responses."""
    problem = problem_for_domain_error(error, str(request.url.path))
    if is_api_request(request):
        return problem_response(problem)
    return render_error_response(
        request,
        ErrorFormatter.format_user_friendly_message(error),
        status_code=problem.status,
    )


def handle_validation_error(error: ValueError, request: Request):
    """Convert plain ValueErrors to user-friendly HTTP responses."""
    message = ErrorFormatter.format_user_friendly_message(error)
    if is_api_request(request):
        return problem_response(
            ProblemDetailFactory.validation_failed(
                detail=message, instance=str(request.url.path)
            )
        )
    return render_error_response(request, message, status_code=400)
