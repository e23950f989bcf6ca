# backend/utils/errors.py
import enum
from typing import Any, Optional


class ErrorCode(str, enum.Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    BAD_REQUEST = "BAD_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    STOCK_LIMIT = "STOCK_LIMIT"
    CART_EMPTY = "CART_EMPTY"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShopError(Exception):
    """Base for every error a service reports to an API caller.

    Carries the machine-readable code and the HTTP status the API layer
    answers with; main.py turns it into the failure envelope.
    """

    code = ErrorCode.INTERNAL_ERROR
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[ErrorCode] = None, details: Any = None):
        self.message = message or self.message
        if code is not None:
            self.code = code
        self.details = details
        super().__init__(self.message)


class Unauthorized(ShopError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401
    message = "Unauthorized"


class Forbidden(ShopError):
    code = ErrorCode.FORBIDDEN
    status_code = 403
    message = "Forbidden"


class NotFound(ShopError):
    code = ErrorCode.NOT_FOUND
    status_code = 404
    message = "Not found"


class BadRequest(ShopError):
    code = ErrorCode.BAD_REQUEST
    status_code = 400
    message = "Bad request"


class ValidationFailed(ShopError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400
    message = "Validation Error"


class Conflict(ShopError):
    code = ErrorCode.CONFLICT
    status_code = 409
    message = "Conflict"


class StockLimit(Conflict):
    code = ErrorCode.STOCK_LIMIT
    message = "Requested quantity exceeds available stock"


class CartEmpty(ShopError):
    code = ErrorCode.CART_EMPTY
    status_code = 400
    message = "Cart is empty"


class OutOfStock(ShopError):
    code = ErrorCode.OUT_OF_STOCK
    status_code = 400
    message = "Out of stock"


class InternalError(ShopError):
    pass


class PaymentProcessorError(InternalError):
    message = "Payment processor request failed"


# Raised by the reconciler when an event cannot be applied yet; the webhook
# answers 500 so the processor redelivers it.
class ReconciliationRetry(Exception):
    pass
