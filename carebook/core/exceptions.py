"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    retryable: bool | None = None

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Unauthorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class SlotConflictException(ConflictException):
    """The requested (doctor, date, time) slot is held by an active appointment."""

    def __init__(self, message: str = "This time slot is already booked"):
        """Initialize with 409 status code."""
        super().__init__(message)


class SignatureInvalidException(AppException):
    """Webhook or checkout signature did not verify."""

    def __init__(self, message: str = "Invalid signature"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class UpstreamFailureException(AppException):
    """
    A call to the payment gateway or the summarization model failed.

    The message is shown to the caller as-is, so it must stay generic;
    the underlying error is logged where it is caught.
    """

    def __init__(self, message: str = "Upstream service failed", retryable: bool = False):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)
        self.retryable = retryable


class StoreUnavailableException(AppException):
    """The database could not be reached in time."""

    retryable = True

    def __init__(self, message: str = "Storage temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


class ConfigurationException(AppException):
    """A component was constructed without a required secret."""

    def __init__(self, message: str = "Service is not configured"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)


class ProfileIncompleteException(AppException):
    """
    The caller has no patient profile yet.

    Rendered as a soft ``200 {"success": false}`` response so clients can
    prompt for onboarding instead of surfacing an error state.
    """

    def __init__(self, message: str = "Please complete your patient profile before booking."):
        """Initialize with 200 status code."""
        super().__init__(message, status_code=200)
