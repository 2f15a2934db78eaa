"""
HTTP Client for the Menu Service with retry logic
"""
import logging
from decimal import Decimal
from typing import Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ordering.config import settings

logger = logging.getLogger(__name__)


class MenuServiceError(Exception):
    """Base exception for Menu Service errors"""
    pass


class PlateNotFoundError(MenuServiceError):
    """Plate not found"""
    pass


class MenuServiceUnavailableError(MenuServiceError):
    """Menu Service is unavailable"""
    pass


class MenuServiceClient:
    """Client for resolving plates against the current menu"""

    def __init__(self, base_url: str = None, timeout: float = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.MENU_SERVICE_URL
        self.timeout = timeout or settings.EXTERNAL_TIMEOUT
        self.transport = transport

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        retry=retry_if_exception_type(MenuServiceUnavailableError),
        reraise=True
    )
    async def get_plate(self, plate_id: int) -> Dict:
        """
        Get plate by ID from Menu Service

        Args:
            plate_id: Plate ID

        Returns:
            Plate data with ``price`` as Decimal

        Raises:
            PlateNotFoundError: If plate not found
            MenuServiceUnavailableError: If service is unavailable
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(f"{self.base_url}/plates/{plate_id}")
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.warning("Error calling Menu Service: %s", e)
            raise MenuServiceUnavailableError(f"Menu Service unavailable: {e}")

        if response.status_code == 200:
            plate = response.json()
            plate["price"] = Decimal(str(plate["price"]))
            return plate
        elif response.status_code == 404:
            raise PlateNotFoundError(f"Plate {plate_id} not found")
        else:
            raise MenuServiceError(f"Unexpected status code: {response.status_code}")
