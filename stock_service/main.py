import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import errors, schemas
from .alerts import AlertLevel
from .config import Settings
from .database import Database
from .ledger import StockLedger
from .notifications import LowStockNotifier

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def get_ledger(request: Request) -> StockLedger:
    """Dependency returning the ledger opened at startup"""
    return request.app.state.ledger


def get_notifier(request: Request) -> Optional[LowStockNotifier]:
    return request.app.state.notifier


def _error_response(status_code: int, exc: errors.LedgerError, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": exc.message, **extra})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ledger = StockLedger(Database(settings.database_url), max_retries=settings.ledger_max_retries)
        ledger.open()
        app.state.ledger = ledger
        app.state.notifier = (
            LowStockNotifier(settings.notification_service_url)
            if settings.notification_service_url
            else None
        )
        logger.info("Stock ledger service started")
        yield
        ledger.close()
        logger.info("Stock ledger service stopped")

    # Initialize FastAPI app
    app = FastAPI(
        title="Stock Ledger Service",
        description="Tracks stock levels and records every stock movement",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(errors.ValidationError)
    async def validation_error_handler(request: Request, exc: errors.ValidationError):
        logger.warning(f"Rejected request: {exc.message}")
        return _error_response(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(errors.NotFoundError)
    async def not_found_handler(request: Request, exc: errors.NotFoundError):
        logger.warning(exc.message)
        return _error_response(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(errors.InsufficientStockError)
    async def insufficient_stock_handler(request: Request, exc: errors.InsufficientStockError):
        logger.warning(exc.message)
        return _error_response(
            status.HTTP_409_CONFLICT, exc, requested=exc.requested, available=exc.available
        )

    @app.exception_handler(errors.ConflictError)
    async def conflict_handler(request: Request, exc: errors.ConflictError):
        logger.warning(exc.message)
        return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, exc)

    @app.get("/", tags=["Root"])
    def read_root():
        """Root endpoint for health checks"""
        return {"status": "ok", "service": "stock-ledger-service"}

    @app.post("/items/", response_model=schemas.Item, status_code=status.HTTP_201_CREATED, tags=["Items"])
    def create_item(item: schemas.ItemCreate, ledger: StockLedger = Depends(get_ledger)):
        """Create a new item with zero stock"""
        logger.info(f"Creating item: {item.name}")
        return ledger.create_item(item.name, item.unit, item.min_stock_level)

    @app.get("/items/", response_model=List[schemas.Item], tags=["Items"])
    def read_items(ledger: StockLedger = Depends(get_ledger)):
        """Get all items ordered by name"""
        return ledger.list_items()

    @app.get("/items/{item_id}", response_model=schemas.Item, tags=["Items"])
    def read_item(item_id: int, ledger: StockLedger = Depends(get_ledger)):
        """Get item by ID"""
        return ledger.get_item(item_id)

    @app.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Items"])
    def delete_item(item_id: int, ledger: StockLedger = Depends(get_ledger)):
        """Delete an item; its movements are kept"""
        logger.info(f"Deleting item {item_id}")
        ledger.delete_item(item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/items/{item_id}/movements", response_model=List[schemas.Movement], tags=["Items"])
    def read_item_movements(
        item_id: int,
        limit: Optional[int] = Query(None, ge=1),
        ledger: StockLedger = Depends(get_ledger),
    ):
        """Get the movement history of an item, newest first"""
        return ledger.item_movements(item_id, limit=limit)

    @app.get("/items/{item_id}/verify", response_model=schemas.LedgerCheck, tags=["Items"])
    def verify_item(item_id: int, ledger: StockLedger = Depends(get_ledger)):
        """Check the item's stock against the sum of its movements"""
        return schemas.LedgerCheck(item_id=item_id, consistent=ledger.verify(item_id))

    @app.post("/movements/", response_model=schemas.MovementResult, status_code=status.HTTP_201_CREATED, tags=["Movements"])
    def record_movement(
        movement: schemas.MovementCreate,
        background_tasks: BackgroundTasks,
        ledger: StockLedger = Depends(get_ledger),
        notifier: Optional[LowStockNotifier] = Depends(get_notifier),
    ):
        """Record a stock movement (IN or OUT) and update the item's stock"""
        logger.info(
            f"Recording {movement.type.value} of {movement.quantity} for item {movement.item_id}"
        )
        result = ledger.record_movement(
            movement.item_id,
            movement.type,
            movement.quantity,
            movement.responsible_person,
            request_code=movement.request_code,
            remarks=movement.remarks,
        )

        # Check for low stock
        if notifier is not None and result.item.alert_level is AlertLevel.LOW:
            background_tasks.add_task(notifier.notify, result.item)

        return schemas.MovementResult(
            movement=schemas.Movement.model_validate(result.movement),
            item=schemas.Item.model_validate(result.item),
        )

    @app.get("/movements/", response_model=List[schemas.Movement], tags=["Movements"])
    def read_movements(
        limit: int = Query(settings.recent_movements_limit, ge=1),
        ledger: StockLedger = Depends(get_ledger),
    ):
        """Get the most recent movements, newest first"""
        return ledger.list_recent_movements(limit)

    @app.get("/alerts/", response_model=List[schemas.Item], tags=["Alerts"])
    def read_alerts(ledger: StockLedger = Depends(get_ledger)):
        """Get items at or below their minimum stock level"""
        return ledger.low_stock_items()

    @app.get("/summary/", response_model=schemas.StockSummary, tags=["Alerts"])
    def read_summary(ledger: StockLedger = Depends(get_ledger)):
        """Get inventory totals"""
        return schemas.StockSummary(**asdict(ledger.summary()))

    return app


app = create_app()


def run():
    import uvicorn
    uvicorn.run("stock_service.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
