# Overview: Error taxonomy shared by services and routes.

"""
Every failure a caller can act on is a ShopError subclass carrying the HTTP
status it maps to. Routes turn these into {"error": message} bodies; anything
else is an unexpected 500.
"""

from __future__ import annotations


class ShopError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self)}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ShopError):
    """400-level input problem."""


class NotFoundError(ShopError):
    """Referenced record does not exist."""
    status_code = 404


class InsufficientStockError(ShopError):
    """A stock change would drive an item's available quantity below zero."""

    def __init__(self, item_name: str, available: int, required: int, message: str | None = None):
        self.item_name = item_name
        self.available = available
        self.required = required
        super().__init__(
            message or f"Insufficient stock for {item_name}. Available: {available}, Required: {required}",
            details={"item_name": item_name, "available": available, "required": required},
        )


class InvalidSettlementError(ShopError):
    """Settlement rejected: bad amount, exceeds balance, or entry already settled."""


class ConflictError(ShopError):
    """Concurrent transaction conflict or uniqueness race. Never retried."""


class ImmutabilityViolationError(ShopError):
    """Attempt to modify an append-only record."""
    status_code = 500

    def __init__(self, entity_type: str, entity_id, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id}: {reason}")


class AuthenticationError(ShopError):
    status_code = 401


class PermissionDeniedError(ShopError):
    status_code = 403
