import os


class Settings:
    """Service configuration, read from environment variables"""

    def __init__(
        self,
        database_url: str = "sqlite:///./stock_ledger.db",
        notification_service_url: str = "",
        ledger_max_retries: int = 3,
        recent_movements_limit: int = 20,
        log_level: str = "INFO",
    ):
        self.database_url = database_url
        self.notification_service_url = notification_service_url.rstrip("/")
        self.ledger_max_retries = ledger_max_retries
        self.recent_movements_limit = recent_movements_limit
        self.log_level = log_level.upper()

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./stock_ledger.db"),
            # Empty disables low stock notifications
            notification_service_url=os.getenv("NOTIFICATION_SERVICE_URL", ""),
            ledger_max_retries=int(os.getenv("LEDGER_MAX_RETRIES", "3")),
            recent_movements_limit=int(os.getenv("RECENT_MOVEMENTS_LIMIT", "20")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
