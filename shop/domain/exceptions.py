"""
Domain exceptions shared by services and the HTTP layer.

Every error carries a stable ``code``; the API error handler maps codes to
HTTP statuses.
"""


class ShopError(Exception):
    """Base error with a machine-readable code."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(ShopError):
    """Missing or invalid request fields."""
    code = "VALIDATION_ERROR"


class NotFound(ShopError):
    code = "NOT_FOUND"


class Unauthorized(ShopError):
    code = "UNAUTHORIZED"


class Forbidden(ShopError):
    code = "FORBIDDEN"


class InsufficientStock(ShopError):
    """Live stock is below the requested quantity."""
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str, available: int | None = None, requested: int | None = None):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient stock for {product_name}")


class InvalidTransition(ShopError):
    """Status change not allowed by the order state machine."""
    code = "INVALID_STATE"


class InvalidSession(ShopError):
    """Payment session cannot be correlated to an order."""
    code = "INVALID_SESSION"


class ExternalServiceFailure(ShopError):
    """Payment gateway, identity provider or media host failed."""
    code = "EXTERNAL_SERVICE_FAILURE"
