from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .entities import Application, Enquiry


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    BUSINESS_RULE = "business_rule_violation"


@dataclass
class Outcome:
    """
    Result of a lifecycle transition or coordinator operation

    Falsy when the operation was refused. `reason` is human readable in both
    cases. `persisted` turns False when the state change succeeded in memory
    but a repository failed to store it.
    """

    ok: bool
    error: Optional[ErrorKind] = None
    reason: str = ""
    application: Optional[Application] = None
    enquiry: Optional[Enquiry] = None
    persisted: bool = True

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(
        cls,
        reason: str = "",
        application: Optional[Application] = None,
        enquiry: Optional[Enquiry] = None,
    ) -> "Outcome":
        return cls(ok=True, reason=reason, application=application, enquiry=enquiry)

    @classmethod
    def failure(cls, error: ErrorKind, reason: str) -> "Outcome":
        return cls(ok=False, error=error, reason=reason)

    @classmethod
    def violation(cls, reason: str) -> "Outcome":
        return cls.failure(ErrorKind.BUSINESS_RULE, reason)


class PersistenceError(RuntimeError):
    """Raised by repository adapters when storage itself fails"""
