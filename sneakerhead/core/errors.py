"""Domain exceptions for the storefront.

Services raise these; `sneakerhead.main` maps each class to an HTTP status.
"""


class ShopError(Exception):
    """Base exception for all storefront errors."""

    pass


class NotFoundError(ShopError):
    """Raised when a product, order, user or cart item doesn't exist."""

    def __init__(self, message: str):
        super().__init__(message)


class InsufficientStockError(ShopError):
    """Raised when a requested quantity exceeds the units in stock."""

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Product {product_name} is out of stock "
            f"(requested {requested}, available {available})"
        )


class ForbiddenError(ShopError):
    """Raised when the caller is neither the owner nor an admin."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class ValidationFailureError(ShopError):
    """Raised when a payload is well-formed but breaks a business rule."""

    pass


class ConflictError(ShopError):
    """Raised when a write collides with existing state."""

    pass


class StorageUnavailableError(ShopError):
    """Raised when a commit or connection fails; the unit of work was rolled back."""

    def __init__(self, message: str = "Storage is temporarily unavailable"):
        super().__init__(message)


class GatewayUnavailableError(ShopError):
    """Raised when the payment gateway cannot be reached."""

    def __init__(self, message: str = "Payment gateway is unavailable"):
        super().__init__(message)


ERROR_STATUS_CODES: dict[type, int] = {
    NotFoundError: 404,
    InsufficientStockError: 409,
    ForbiddenError: 403,
    ValidationFailureError: 400,
    ConflictError: 409,
    StorageUnavailableError: 503,
    GatewayUnavailableError: 503,
}
