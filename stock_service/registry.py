import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from . import errors, models

logger = logging.getLogger(__name__)

DEFAULT_UNIT = "pcs"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class ItemRegistry:
    """Catalog of trackable items.

    Works inside the caller's session; committing is left to the caller so
    registry writes can share a transaction with the ledger.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, name: str, unit: Optional[str], min_stock_level: int) -> models.Item:
        name = (name or "").strip()
        if not name:
            raise errors.ValidationError("Item name must not be empty")
        if not _is_int(min_stock_level) or min_stock_level < 0:
            raise errors.ValidationError("Minimum stock level must be a non-negative integer")

        now = utcnow()
        item = models.Item(
            name=name,
            unit=(unit or "").strip() or DEFAULT_UNIT,
            current_stock=0,
            min_stock_level=min_stock_level,
            last_updated=now,
            created_at=now,
        )
        self.session.add(item)
        self.session.flush()
        logger.info(f"Created item {item.id} ({item.name})")
        return item

    def get(self, item_id: int) -> models.Item:
        item = self.session.get(models.Item, item_id)
        if item is None:
            raise errors.NotFoundError(item_id)
        return item

    def list(self) -> List[models.Item]:
        return (
            self.session.query(models.Item)
            .order_by(models.Item.name.asc(), models.Item.id.asc())
            .all()
        )

    def low_stock(self) -> List[models.Item]:
        return (
            self.session.query(models.Item)
            .filter(models.Item.current_stock <= models.Item.min_stock_level)
            .order_by(models.Item.name.asc(), models.Item.id.asc())
            .all()
        )

    def set_stock(self, item_id: int, new_stock: int, timestamp: datetime) -> models.Item:
        # Only StockLedger.record_movement calls this, inside its transaction
        if new_stock < 0:
            raise errors.ValidationError("Stock cannot be negative")
        item = self.get(item_id)
        item.current_stock = new_stock
        item.last_updated = timestamp
        return item

    def delete(self, item_id: int) -> None:
        item = self.get(item_id)
        self.session.delete(item)
        self.session.flush()
        logger.info(f"Deleted item {item_id} with {item.current_stock} {item.unit} on hand")
