"""Tagged results returned by the use-case layer."""

from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResultCode(str, Enum):
    """Failure categories a caller can base its retry policy on."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ServiceResult(BaseModel, Generic[T]):
    """Outcome of a use case: either data or a coded failure, never both."""

    ok: bool
    data: Optional[T] = None
    code: Optional[ResultCode] = None
    error: Optional[str] = None
    field: Optional[str] = None
    changed: bool = False

    @classmethod
    def success(cls, data: Optional[T] = None, changed: bool = False) -> "ServiceResult[T]":
        return cls(ok=True, data=data, changed=changed)

    @classmethod
    def failure(
        cls,
        code: ResultCode,
        error: str,
        field: Optional[str] = None,
    ) -> "ServiceResult[T]":
        return cls(ok=False, code=code, error=error, field=field)

    @property
    def retryable(self) -> bool:
        """Whether redelivering the triggering event could succeed."""
        return self.code in (ResultCode.CONFLICT, ResultCode.INTERNAL_ERROR)
