# Overview: Error taxonomy shared by services and the HTTP layer.

from __future__ import annotations


class ShopError(Exception):
    """Base for errors the caller can act on."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ShopError, ValueError):
    """400-level input problem."""


class EmptyCartError(ValidationError):
    """Sale submitted without line items."""


class ConflictError(ShopError, ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


class UnknownReferenceError(ShopError, LookupError):
    """Referenced product/category/user/notification does not exist."""


class UnknownProductError(UnknownReferenceError):
    pass


class InsufficientStockError(ShopError):
    """
    Deduction would drive Product.quantity below zero.

    details carries product_id, product_name, requested_quantity, available_quantity.
    """


class PersistenceError(ShopError):
    """Storage unavailable, timed out, or kept conflicting after retries."""


class NotificationDeliveryError(ShopError):
    """Notification rows could not be written. Never surfaced to sale callers."""
