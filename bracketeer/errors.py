"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class.

    ``kind`` is the stable, machine-readable error name reported to clients
    (``NotFound``, ``DuplicateTournament``...); ``message`` is for humans.
    """

    def __init__(self, message, status_code=400, kind="AppError"):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.kind = kind

    def to_dict(self):
        """Serialize the error for a JSON response body."""
        return {"kind": self.kind, "message": self.message}


class ValidationError(AppError):
    """Raised when user input is missing or malformed."""

    def __init__(self, message="Validation failed.", kind="ValidationError"):
        """Initialize the error."""
        super().__init__(message, 400, kind)


class UnauthorizedError(AppError):
    """Raised when supplied credentials do not match."""

    def __init__(self, message="Unauthorized.", kind="Unauthorized"):
        """Initialize the error."""
        super().__init__(message, 401, kind)


class NotFoundError(AppError):
    """Raised when a tournament, match or user is not found."""

    def __init__(self, message="Resource not found.", kind="NotFound"):
        """Initialize the error."""
        super().__init__(message, 404, kind)


class ConflictError(AppError):
    """Raised when a request clashes with existing state.

    Duplicate names and already-decided matches both end up here.
    """

    def __init__(self, message="Resource already exists.", kind="Conflict"):
        """Initialize the error."""
        super().__init__(message, 409, kind)


class InternalError(AppError):
    """Raised when storage fails or persisted state cannot be decoded."""

    def __init__(self, message="Internal error.", kind="StorageError"):
        """Initialize the error."""
        super().__init__(message, 500, kind)
