"""The stock ledger: the only path through which an item's stock changes.

Every successful movement appends one ``Movement`` row and moves the item's
``current_stock`` by the signed quantity in the same transaction, so stock
always equals the signed sum of the item's movements.
"""
import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from . import errors, models
from .alerts import AlertLevel
from .database import Database
from .registry import ItemRegistry, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_RECENT_LIMIT = 20


@dataclass(frozen=True)
class MovementResult:
    movement: models.Movement
    item: models.Item


@dataclass(frozen=True)
class StockSummary:
    total_items: int
    total_stock: int
    low_stock_count: int
    warning_count: int


class ItemLocks:
    """One lock per item id, created on first use.

    A lock lives only while some caller holds or waits on it, so ids that
    never resolve to an item leave nothing behind.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()

    def __call__(self, item_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(item_id)
            if lock is None:
                lock = self._locks[item_id] = threading.Lock()
            return lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


def _coerce_movement_type(value) -> models.MovementType:
    try:
        return models.MovementType(value)
    except ValueError:
        raise errors.ValidationError(f"Movement type must be IN or OUT, got {value!r}") from None


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


class StockLedger:
    """Service object for items and their movements.

    Holds the ``Database`` and is handed to callers rather than imported as
    global state. Open it once per process and close it at shutdown.
    """

    def __init__(self, database: Database, max_retries: int = DEFAULT_MAX_RETRIES):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.database = database
        self.max_retries = max_retries
        self._locks = ItemLocks()

    def open(self) -> "StockLedger":
        if not self.database.is_open:
            self.database.open()
        return self

    def close(self) -> None:
        self.database.close()

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc_info):
        self.close()

    # Items

    def create_item(self, name: str, unit: Optional[str], min_stock_level: int) -> models.Item:
        with self.database.session() as session, session.begin():
            return ItemRegistry(session).create(name, unit, min_stock_level)

    def get_item(self, item_id: int) -> models.Item:
        with self.database.session() as session:
            return ItemRegistry(session).get(item_id)

    def list_items(self) -> List[models.Item]:
        with self.database.session() as session:
            return ItemRegistry(session).list()

    def low_stock_items(self) -> List[models.Item]:
        with self.database.session() as session:
            return ItemRegistry(session).low_stock()

    def delete_item(self, item_id: int) -> None:
        def delete(session: Session) -> None:
            ItemRegistry(session).delete(item_id)

        with self._locks(item_id):
            self._run_with_retries(item_id, delete)

    # Movements

    def record_movement(
        self,
        item_id: int,
        movement_type,
        quantity: int,
        responsible_person: str,
        request_code: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> MovementResult:
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise errors.ValidationError("Quantity must be a positive integer")
        direction = _coerce_movement_type(movement_type)
        responsible_person = _clean(responsible_person)
        if responsible_person is None:
            raise errors.ValidationError("Responsible person is required")
        request_code = _clean(request_code)
        remarks = _clean(remarks)

        def apply(session: Session) -> MovementResult:
            registry = ItemRegistry(session)
            item = registry.get(item_id)
            candidate = item.current_stock + direction.sign * quantity
            if candidate < 0:
                raise errors.InsufficientStockError(item_id, quantity, item.current_stock)

            now = utcnow()
            movement = models.Movement(
                item_id=item.id,
                item_name=item.name,
                quantity=quantity,
                type=direction,
                request_code=request_code,
                responsible_person=responsible_person,
                remarks=remarks,
                created_at=now,
            )
            session.add(movement)
            registry.set_stock(item.id, candidate, now)
            return MovementResult(movement=movement, item=item)

        with self._locks(item_id):
            result = self._run_with_retries(item_id, apply)

        logger.info(
            f"Recorded {direction.value} of {quantity} for item {item_id}, "
            f"stock now {result.item.current_stock}"
        )
        return result

    def list_recent_movements(self, limit: int = DEFAULT_RECENT_LIMIT) -> List[models.Movement]:
        if not isinstance(limit, int) or isinstance(limit, bool) or limit < 1:
            raise errors.ValidationError("Limit must be a positive integer")
        with self.database.session() as session:
            return (
                session.query(models.Movement)
                .order_by(models.Movement.created_at.desc(), models.Movement.id.desc())
                .limit(limit)
                .all()
            )

    def item_movements(self, item_id: int, limit: Optional[int] = None) -> List[models.Movement]:
        """Movements recorded for one item, newest first.

        Deleted items keep their history, so an unknown id is not an error.
        """
        with self.database.session() as session:
            query = (
                session.query(models.Movement)
                .filter(models.Movement.item_id == item_id)
                .order_by(models.Movement.created_at.desc(), models.Movement.id.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def verify(self, item_id: int) -> bool:
        """Check that the item's stock equals the signed sum of its movements."""
        with self.database.session() as session:
            item = ItemRegistry(session).get(item_id)
            movements = (
                session.query(models.Movement)
                .filter(models.Movement.item_id == item_id)
                .all()
            )
            expected = sum(movement.signed_quantity for movement in movements)
        if expected != item.current_stock:
            logger.error(
                f"Ledger mismatch for item {item_id}: stock {item.current_stock}, "
                f"movements sum to {expected}"
            )
            return False
        return True

    def summary(self) -> StockSummary:
        items = self.list_items()
        levels = [item.alert_level for item in items]
        return StockSummary(
            total_items=len(items),
            total_stock=sum(item.current_stock for item in items),
            low_stock_count=levels.count(AlertLevel.LOW),
            warning_count=levels.count(AlertLevel.WARNING),
        )

    def _run_with_retries(self, item_id: int, operation: Callable[[Session], T]) -> T:
        """Run ``operation`` in its own transaction, retrying version conflicts.

        Domain errors abort the transaction and propagate at once.
        """
        attempt = 1
        while True:
            try:
                with self.database.session() as session, session.begin():
                    return operation(session)
            except StaleDataError:
                if attempt >= self.max_retries:
                    logger.warning(
                        f"Giving up on item {item_id} after {attempt} conflicting attempts"
                    )
                    raise errors.ConflictError(item_id) from None
                logger.warning(f"Concurrent update on item {item_id}, retrying (attempt {attempt})")
                attempt += 1
