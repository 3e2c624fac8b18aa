"""RFC 7807 Problem Details responses for the JSON API."""

from typing import Any, Final

from fastapi import status
from pydantic import BaseModel, Field

PROBLEM_BASE_URI: Final = "https://limitmatrix.dev/problems"


class ErrorCodes:
    """Machine-readable codes for field-level errors."""

    FIELD_REQUIRED: Final = "field_required"
    FIELD_TOO_LONG: Final = "field_too_long"
    FIELD_INVALID_VALUE: Final = "field_invalid_value"
    FIELD_INVALID_FORMAT: Final = "field_invalid_format"


class FieldError(BaseModel):
    field: str
    code: str
    message: str


class ProblemDetail(BaseModel):
    """Base problem document (``application/problem+json``)."""

    type: str = Field(default="about:blank", description="Problem type URI")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(default=None, description="Human readable detail")
    instance: str | None = Field(default=None, description="Request path")


class ValidationProblemDetail(ProblemDetail):
    errors: list[FieldError] = Field(default_factory=list)


class ConflictProblemDetail(ProblemDetail):
    resource_type: str | None = None
    conflicting_field: str | None = None


class UpstreamProblemDetail(ProblemDetail):
    upstream_status: int | None = None
    upstream_body: Any = None


class ProblemDetailFactory:
    """Builds the problem documents the API returns."""

    @staticmethod
    def validation_failed(
        detail: str,
        instance: str | None = None,
        field_errors: list[dict[str, str]] | None = None,
    ) -> ValidationProblemDetail:
        return ValidationProblemDetail(
            type=f"{PROBLEM_BASE_URI}/validation-failed",
            title="Validation Failed",
            status=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            instance=instance,
            errors=[FieldError(**error) for error in field_errors or []],
        )

    @staticmethod
    def resource_not_found(
        resource_type: str, detail: str, instance: str | None = None
    ) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_BASE_URI}/{resource_type}-not-found",
            title=f"{resource_type.replace('-', ' ').title()} Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def resource_already_exists(
        resource_type: str,
        detail: str,
        instance: str | None = None,
        conflicting_field: str | None = None,
    ) -> ConflictProblemDetail:
        return ConflictProblemDetail(
            type=f"{PROBLEM_BASE_URI}/{resource_type}-already-exists",
            title="Resource Already Exists",
            status=status.HTTP_409_CONFLICT,
            detail=detail,
            instance=instance,
            resource_type=resource_type,
            conflicting_field=conflicting_field,
        )

    @staticmethod
    def dependency_cycle(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_BASE_URI}/dependency-cycle",
            title="Circular Dependency",
            status=status.HTTP_409_CONFLICT,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def upstream_error(
        detail: str,
        status_code: int,
        instance: str | None = None,
        upstream_status: int | None = None,
        upstream_body: Any = None,
    ) -> UpstreamProblemDetail:
        return UpstreamProblemDetail(
            type=f"{PROBLEM_BASE_URI}/upstream-error",
            title="Policy Service Error",
            status=status_code,
            detail=detail,
            instance=instance,
            upstream_status=upstream_status,
            upstream_body=upstream_body,
        )

    @staticmethod
    def internal_server_error(
        detail: str, instance: str | None = None
    ) -> ProblemDetail:
        return ProblemDetail(
            type=f"{PROBLEM_BASE_URI}/internal-error",
            title="Internal Server Error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            instance=instance,
        )
