import enum
from datetime import timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, Index, Integer, String
from sqlalchemy.types import TypeDecorator

from .alerts import AlertLevel, classify
from .database import Base


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo (SQLite)"""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class MovementType(str, enum.Enum):
    """Direction of a stock movement"""
    IN = "IN"
    OUT = "OUT"

    @property
    def sign(self) -> int:
        return 1 if self is MovementType.IN else -1


class Item(Base):
    """Inventory item database model"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    unit = Column(String(32), nullable=False, default="pcs")
    current_stock = Column(Integer, nullable=False, default=0)
    min_stock_level = Column(Integer, nullable=False, default=0)
    last_updated = Column(UTCDateTime, nullable=False)
    created_at = Column(UTCDateTime, nullable=False)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="chk_items_current_stock"),
        CheckConstraint("min_stock_level >= 0", name="chk_items_min_stock_level"),
        # Ids of deleted items must never be handed out again
        {"sqlite_autoincrement": True},
    )

    # UPDATEs are issued as "WHERE id = ? AND version = ?"
    __mapper_args__ = {"version_id_col": version}

    @property
    def alert_level(self) -> AlertLevel:
        return classify(self.current_stock, self.min_stock_level)

    def __repr__(self):
        return f"<Item {self.id}: {self.name!r} stock={self.current_stock} min={self.min_stock_level}>"


class Movement(Base):
    """Stock movement database model (append-only)"""
    __tablename__ = "movements"

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: movements stay behind when their item is deleted
    item_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    type = Column(Enum(MovementType, name="movement_type"), nullable=False)
    request_code = Column(String(100), nullable=True)
    responsible_person = Column(String(100), nullable=False)
    remarks = Column(String(500), nullable=True)
    created_at = Column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="chk_movements_quantity"),
        Index("ix_movements_item_created", "item_id", "created_at"),
    )

    @property
    def signed_quantity(self) -> int:
        return self.type.sign * self.quantity

    def __repr__(self):
        return f"<Movement {self.id}: {self.type.value} {self.quantity} on item {self.item_id}>"
