from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION"
    PRECONDITION = "PRECONDITION"
    AUTHORIZATION = "AUTHORIZATION"
    NOT_FOUND = "NOT_FOUND"
    STATE = "STATE"


class LoanError(Exception):
    """Typed failure surfaced by the loan operations.

    ``kind`` is the machine-readable category the API layer maps to an
    HTTP status; ``message`` is meant for humans.
    """

    kind: ErrorKind = ErrorKind.STATE

    def __init__(self, message: str, details: Optional[Any] = None, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        if kind is not None:
            self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        body = {"code": self.kind.value, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(LoanError):
    kind = ErrorKind.VALIDATION

    def __init__(self, violations: List[str]):
        super().__init__("; ".join(violations), details=list(violations))
        self.violations = list(violations)


class PreconditionFailed(LoanError):
    kind = ErrorKind.PRECONDITION


class PermissionDenied(LoanError):
    kind = ErrorKind.AUTHORIZATION

    def __init__(self, message: str = "You don't have enough permissions to complete this action", details=None):
        super().__init__(message, details)


class EntityNotFound(LoanError):
    kind = ErrorKind.NOT_FOUND


class InvalidTransition(LoanError):
    kind = ErrorKind.STATE


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.PRECONDITION: 409,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STATE: 409,
}
