# habitflow/errors.py
from typing import Any, List, Optional


class HabitFlowError(Exception):
    """Base error for store, service and request failures."""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(HabitFlowError):
    status_code = 400
    error = "Validation Error"


class NotFoundError(HabitFlowError):
    status_code = 404
    error = "Not Found"


class ConflictError(HabitFlowError):
    status_code = 409
    error = "Conflict"


class StorageError(HabitFlowError):
    """The database or the local data file could not be reached."""

    status_code = 503
    error = "Service Unavailable"


class AIServiceError(HabitFlowError):
    """The language model provider failed or rejected the request."""

    status_code = 502
    error = "Bad Gateway"
