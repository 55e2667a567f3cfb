"""Errors raised by the feed stock ledger.

Routers translate these into HTTP responses using ``status_code`` and ``detail``.
"""
from decimal import Decimal


class FeedLedgerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def detail(self):
        return self.message


class InvalidInputError(FeedLedgerError):
    """Rejected before anything is written: bad quantity, unit or feed type."""
    status_code = 422


class InsufficientStockError(FeedLedgerError):
    """A withdrawal asks for more kilograms than the balance holds."""

    def __init__(self, feed_type: str, available_kg: Decimal, required_kg: Decimal):
        self.feed_type = feed_type
        self.available_kg = Decimal(available_kg)
        self.required_kg = Decimal(required_kg)
        super().__init__(
            f"Insufficient stock for feed type '{feed_type}'. "
            f"Available: {self.available_kg.normalize():f} kg, Required: {self.required_kg.normalize():f} kg"
        )

    @property
    def detail(self):
        return {
            "message": self.message,
            "feed_type": self.feed_type,
            "available_kg": float(self.available_kg),
            "required_kg": float(self.required_kg),
        }


class NotFoundError(FeedLedgerError):
    status_code = 404


class StoreError(FeedLedgerError):
    """The database call itself failed; the session has been rolled back."""
    status_code = 500
