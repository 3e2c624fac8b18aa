"""Utilities for handling FastAPI requests."""

from fastapi import Request


def is_api_request(request: Request) -> bool:
    """Check if request is to an API endpoint.

    Args:
        request: FastAPI request object

    Returns:
        True if request path starts with /api/, False otherwise
    """
    return str(request.url.path).startswith("/api/")


def is_htmx_request(request: Request) -> bool:
    """Check if request is an HTMX request.

    HTMX requests get only the table partial instead of the full page.
    """
    return "HX-Request" in request.headers
