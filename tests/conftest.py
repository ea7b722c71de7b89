"""
Pytest configuration and fixtures for stock ledger tests.
"""
import pytest
from fastapi.testclient import TestClient

from stock_service.config import Settings
from stock_service.database import Database
from stock_service.ledger import StockLedger
from stock_service.main import create_app


@pytest.fixture
def ledger():
    """Ledger backed by a private in-memory database."""
    with StockLedger(Database("sqlite://")) as ledger:
        yield ledger


@pytest.fixture
def file_ledger(tmp_path):
    """Ledger backed by a SQLite file, for tests that use several connections."""
    with StockLedger(Database(f"sqlite:///{tmp_path / 'ledger.db'}")) as ledger:
        yield ledger


@pytest.fixture
def widget(ledger):
    return ledger.create_item("Widget", "pcs", 5)


@pytest.fixture
def app():
    return create_app(Settings(database_url="sqlite://"))


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which opens the ledger
    with TestClient(app) as client:
        yield client
