import logging
from typing import Optional

import httpx

from . import models

logger = logging.getLogger(__name__)


class LowStockNotifier:
    """Posts low stock alerts to the notification service"""

    def __init__(self, base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout

    @staticmethod
    def payload(item: models.Item) -> dict:
        return {
            "type": "low_stock",
            "data": {
                "item_id": item.id,
                "item_name": item.name,
                "current_quantity": item.current_stock,
                "threshold": item.min_stock_level,
                "unit": item.unit,
            },
        }

    async def notify(self, item: models.Item) -> bool:
        """Send the alert. Failures are logged, the movement already stands."""
        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/notifications/", json=self.payload(item))
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send low stock notification for item {item.id}: {e}")
            return False
        logger.info(f"Sent low stock notification for item {item.id}")
        return True
