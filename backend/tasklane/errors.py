"""
Failure values raised by the service layer.
Routers translate them to HTTP responses; the calculator and formatter never raise.
"""


class TaskLaneError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(TaskLaneError):
    """No authenticated user was present when the operation started."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationError(TaskLaneError):
    """Input violates a model invariant. Raised before any store write."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StoreError(TaskLaneError):
    """The persistence layer reported a failure; message is passed through as-is."""
