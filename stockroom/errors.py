"""Error taxonomy for stock operations.

All errors derive from ``ValueError`` so callers that already guard actions
with ``except ValueError`` keep working.
"""

from __future__ import annotations


class StockroomError(ValueError):
    """Base class for rejected operations."""


class NotFoundError(StockroomError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, record_id) -> None:
        self.entity = entity
        self.record_id = record_id
        super().__init__(f"{entity} not found (id={record_id}).")


class ValidationError(StockroomError):
    """Input was rejected before anything was written."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InsufficientStockError(StockroomError):
    """A component does not hold enough units for the requested batch."""

    def __init__(self, required: int, available: dict[str, int]) -> None:
        self.required = int(required)
        self.available = dict(available)
        have = ", ".join(f"{v} {k}" for k, v in self.available.items())
        super().__init__(
            f"Insufficient components: need {self.required} of each. Available: {have}."
        )


class PersistenceError(StockroomError):
    """The database rejected a write; the transaction was rolled back."""
