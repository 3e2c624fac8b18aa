"""Domain-specific exceptions."""


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class CombinationNotFoundError(DomainError):
    """Raised when a limit combination does not exist for the contract."""

    pass


class LinkNotFoundError(DomainError):
    """Raised when a linked combination does not exist for the contract."""

    pass


class LinkAlreadyExistsError(DomainError):
    """Raised when attempting to create a duplicate parent/child link."""

    pass


class CyclicLinkError(DomainError):
    """Raised when a new link would close a cycle between combinations."""

    pass


class PolicyServiceError(DomainError):
    """Raised when the policy service rejects a request or answers garbage."""

    def __init__(self, message: str, status_code: int | None = None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class PolicyServiceUnavailableError(PolicyServiceError):
    """Raised when the policy service cannot be reached or fails with 5xx."""

    pass
