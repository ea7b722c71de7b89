from datetime import datetime, timezone

import pytest

from stock_service import errors, models
from stock_service.registry import ItemRegistry


@pytest.fixture
def session(ledger):
    session = ledger.database.session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def registry(session):
    return ItemRegistry(session)


def test_create_starts_with_zero_stock(registry):
    item = registry.create("  Gloves ", "box", 3)

    assert item.id is not None
    assert item.name == "Gloves"
    assert item.unit == "box"
    assert item.current_stock == 0
    assert item.min_stock_level == 3
    assert item.last_updated == item.created_at


def test_create_defaults_blank_unit(registry):
    assert registry.create("Tape", "", 0).unit == "pcs"
    assert registry.create("Glue", None, 0).unit == "pcs"


@pytest.mark.parametrize("name", ["", "   ", None])
def test_create_rejects_empty_name(registry, name):
    with pytest.raises(errors.ValidationError):
        registry.create(name, "pcs", 1)


@pytest.mark.parametrize("minimum", [-1, 1.5, "3", True])
def test_create_rejects_bad_minimum(registry, minimum):
    with pytest.raises(errors.ValidationError):
        registry.create("Tape", "pcs", minimum)


def test_get_missing_item(registry):
    with pytest.raises(errors.NotFoundError) as excinfo:
        registry.get(999)
    assert excinfo.value.item_id == 999


def test_list_is_sorted_by_name(registry):
    for name in ["Zipper", "anchor", "Button", "Anchor"]:
        registry.create(name, "pcs", 0)

    names = [item.name for item in registry.list()]
    assert names == sorted(names)
    assert len(names) == 4


def test_set_stock_updates_quantity_and_timestamp(registry):
    item = registry.create("Bolt", "pcs", 0)
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    registry.set_stock(item.id, 12, stamp)

    assert item.current_stock == 12
    assert item.last_updated == stamp


def test_set_stock_rejects_negative(registry):
    item = registry.create("Bolt", "pcs", 0)
    with pytest.raises(errors.ValidationError):
        registry.set_stock(item.id, -1, datetime.now(timezone.utc))


def test_set_stock_on_missing_item(registry):
    with pytest.raises(errors.NotFoundError):
        registry.set_stock(42, 1, datetime.now(timezone.utc))


def test_delete(registry):
    item = registry.create("Nut", "pcs", 0)
    registry.delete(item.id)

    with pytest.raises(errors.NotFoundError):
        registry.get(item.id)
    with pytest.raises(errors.NotFoundError):
        registry.delete(item.id)


def test_low_stock_includes_items_at_minimum(registry):
    registry.create("Empty", "pcs", 0)
    full = registry.create("Full", "pcs", 2)
    registry.set_stock(full.id, 10, datetime.now(timezone.utc))
    registry.session.flush()

    assert [item.name for item in registry.low_stock()] == ["Empty"]


def test_movement_type_is_closed():
    assert models.MovementType("IN").sign == 1
    assert models.MovementType("OUT").sign == -1
    with pytest.raises(ValueError):
        models.MovementType("SIDEWAYS")
