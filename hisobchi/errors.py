# hisobchi/errors.py
"""
Domain failures for the stock, transfer and sale engines.

Every failure carries a stable `kind`, a human message that names the
violated rule, and a `details` dict with the quantities involved so the
web-app can show something actionable. Routes turn them into
`{"error", "kind", "details"}` JSON with `status_code`.
"""
from __future__ import annotations


class StockError(Exception):
    """Base class for business-rule failures surfaced to callers."""

    kind = "StockError"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "kind": self.kind, "details": self.details}


# Validation (rejected before any transaction starts)

class InvalidAmount(StockError):
    kind = "InvalidAmount"


# Preconditions

class InsufficientStock(StockError):
    kind = "InsufficientStock"


class InsufficientSellerStock(InsufficientStock):
    kind = "InsufficientSellerStock"


class InsufficientWarehouseStock(StockError):
    kind = "InsufficientWarehouseStock"


class AssignmentNotActive(StockError):
    kind = "AssignmentNotActive"


class StockStillHeld(StockError):
    kind = "StockStillHeld"


class NotAssigned(StockError):
    kind = "NotAssigned"
    status_code = 403


# Not found

class NotFoundError(StockError):
    kind = "NotFound"
    status_code = 404


class ProductNotFound(NotFoundError):
    kind = "ProductNotFound"


class SellerNotFound(NotFoundError):
    kind = "SellerNotFound"


class StockRecordNotFound(NotFoundError):
    kind = "StockRecordNotFound"


class TransferNotFound(NotFoundError):
    kind = "TransferNotFound"


class SaleNotFound(NotFoundError):
    kind = "SaleNotFound"


class CategoryNotFound(NotFoundError):
    kind = "CategoryNotFound"
