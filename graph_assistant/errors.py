"""Exception hierarchy shared by every component."""


class AssistantError(Exception):
    """Base class for all graph-assistant errors."""


class InputValidationError(AssistantError, ValueError):
    """Bad user input (unknown enum value, oversized message, bad path)."""


class InvalidPathError(InputValidationError):
    """Export or snapshot path failed validation before anything was written."""


class AuthenticationError(AssistantError):
    """No valid access token is available.

    Fatal for the retry wrapper unless the provider marks it ``transient``.
    """

    def __init__(self, message: str, transient: bool = False) -> None:
        super().__init__(message)
        self.transient = transient


class ApiRequestError(AssistantError):
    """A Graph request returned a non-2xx status or failed in transport."""

    def __init__(self, status_code: int | None, message: str) -> None:
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(f"Graph API request failed: {message}")
        else:
            super().__init__(f"Graph API error ({status_code}): {message}")


class RetryExhaustedError(AssistantError):
    """All attempts of a retryable operation failed."""

    def __init__(self, operation_name: str, attempts: int, last_error: Exception) -> None:
        self.operation_name = operation_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation_name} failed after {attempts} attempts: "
            f"{type(last_error).__name__}: {last_error}"
        )


class OperationCancelledError(AssistantError):
    """A retry loop was cancelled between attempts."""


class LoadError(AssistantError):
    """A conversation snapshot could not be read or parsed."""


class ExportError(AssistantError):
    """Writing an export file failed."""
