"""
Typed errors of the stock ledger and replenishment lifecycle.

The message of every error is meant to reach the end user verbatim; the HTTP
layer maps `http_status` and `code` without rewording anything.
"""

from __future__ import annotations


class StockError(Exception):
    code = "STOCK_ERROR"
    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidMagnitude(StockError):
    code = "INVALID_MAGNITUDE"
    http_status = 400


class InsufficientStock(StockError):
    code = "INSUFFICIENT_STOCK"
    http_status = 409


class PartNotFound(StockError):
    code = "PART_NOT_FOUND"
    http_status = 404


class PartInactive(StockError):
    code = "PART_INACTIVE"
    http_status = 409


class SupplierNotFound(StockError):
    code = "SUPPLIER_NOT_FOUND"
    http_status = 404


class OrderNotFound(StockError):
    code = "ORDER_NOT_FOUND"
    http_status = 404


class InvalidField(StockError):
    code = "INVALID_FIELD"
    http_status = 400


class InvalidTransition(StockError):
    code = "INVALID_TRANSITION"
    http_status = 409


class Conflict(StockError):
    """Concurrent write detected. The only error callers should retry (with fresh reads)."""

    code = "CONFLICT"
    http_status = 409
