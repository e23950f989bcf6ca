from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from utils.errors import ErrorCode

T = TypeVar("T")

CENTS = Decimal("0.01")

# Normalise a monetary value to two decimal places
def money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)

# Base for API payloads: snake_case in Python, camelCase on the wire
class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

# Failure details of the response envelope
class ErrorInfo(CamelModel):
    code: ErrorCode
    details: Optional[Any] = None

# Uniform response envelope; success is True exactly when error is None
class ApiResponse(CamelModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None
    error: Optional[ErrorInfo] = None

    @classmethod
    def ok(cls, data, message: str = "OK"):
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, code: ErrorCode, message: str, details: Any = None):
        return cls(success=False, message=message, data=None, error=ErrorInfo(code=code, details=details))
