"""
Domain errors for the stock app.

They extend `record_lock.RecordLockError`, so the same JSON error handling
(`record_lock.http.json_errors`) covers lock failures and stock failures.
"""

from record_lock.exceptions import RecordLockError


class StockError(RecordLockError):
    """Base class for stock/sales rule violations. Client errors by default."""

    code: str = "stock_error"
    status: int = 400


class InvalidField(StockError):
    """A required field is missing or has the wrong type / range."""

    code: str = "invalid_field"


class UnknownProduct(StockError):
    """A sale references a product code that does not exist."""

    code: str = "unknown_product"


class InsufficientStock(StockError):
    """
    Raised when a sale asks for more units than the product has in stock.

    Creation checks this before any lock or write; updates check it inside
    the gated mutation, which is then rolled back.
    """

    code: str = "insufficient_stock"


class DuplicateProduct(StockError):
    """Another product already uses this name."""

    code: str = "duplicate_product"


class IdGenerationError(StockError):
    """No unused identifier was found within the retry budget."""

    code: str = "id_generation_failed"
    status: int = 500
