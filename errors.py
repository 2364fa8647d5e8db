from typing import Optional


class ValidationFailed(Exception):
    """Request data broke a rule the schemas cannot express (400)."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def as_errors(self) -> list[dict]:
        return [{"field": self.field, "message": self.message}]


class ConflictError(Exception):
    """The record is not in a state that allows the operation (409)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
