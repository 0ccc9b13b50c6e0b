"""Domain errors raised by the inventory services.

Every error carries the HTTP status it maps to and an optional payload that
is merged into the JSON error body (for example ``available``/``requested``
on stock shortages). The API layer installs a single handler for
:class:`InventoryError`; services never build HTTP responses themselves.
"""
from typing import Optional


class InventoryError(Exception):
    status_code = 400

    def __init__(self, message: str, *, status_code: Optional[int] = None, **extra):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra

    def to_payload(self) -> dict:
        payload = {"detail": self.message}
        payload.update(self.extra)
        return payload


class ValidationFailure(InventoryError):
    status_code = 422


class Unauthorized(InventoryError):
    status_code = 401


class NotFound(InventoryError):
    status_code = 404


class VariantNotFound(NotFound):
    def __init__(self, message: str = "Variant not found for this product.", **kwargs):
        super().__init__(message, **kwargs)


class InsufficientStock(InventoryError):
    def __init__(
        self,
        message: str,
        *,
        available: int,
        requested: int,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class AlreadyRefunded(InventoryError):
    def __init__(self, message: str = "This product has already been refunded."):
        super().__init__(message)


class LastVariant(InventoryError):
    status_code = 422

    def __init__(self, message: str = "Cannot delete the last variant of a product."):
        super().__init__(message)


__all__ = [
    "AlreadyRefunded",
    "InsufficientStock",
    "InventoryError",
    "LastVariant",
    "NotFound",
    "Unauthorized",
    "ValidationFailure",
    "VariantNotFound",
]
