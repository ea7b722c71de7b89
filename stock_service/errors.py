"""Errors raised by the item registry and the stock ledger."""


class LedgerError(Exception):
    """Base class for every error the stock ledger reports to its caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed or missing input. The caller can correct it and try again."""


class NotFoundError(LedgerError):
    def __init__(self, item_id):
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id


class InsufficientStockError(LedgerError):
    """An OUT movement asked for more than the item has on hand."""

    def __init__(self, item_id, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )
        self.item_id = item_id
        self.requested = requested
        self.available = available


class ConflictError(LedgerError):
    """Another writer changed the item between our read and our write."""

    def __init__(self, item_id):
        super().__init__(f"Concurrent update detected for item {item_id}, please retry")
        self.item_id = item_id
