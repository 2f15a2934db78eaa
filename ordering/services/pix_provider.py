"""
Pix payment code provider

The EMV payload and QR image are produced by an external Pix charge
service; this module only requests a charge and tracks its expiry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ordering.config import settings
from ordering.exceptions import PaymentCodeGenerationFailed
from ordering.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixCharge:
    code: str
    display_image: str
    expires_at: datetime


def calculate_expiration(minutes: int = 30, now: datetime = None) -> datetime:
    return (now or utcnow()) + timedelta(minutes=minutes)


def is_expired(expires_at: Optional[datetime], now: datetime = None) -> bool:
    if expires_at is None:
        return False
    return as_utc(expires_at) < (now or utcnow())


class PixCodeProvider:
    """Interface for Pix code generation"""

    async def generate(self, amount: Decimal, reference: str, description: str) -> PixCharge:
        raise NotImplementedError

    def is_expired(self, expires_at: Optional[datetime]) -> bool:
        return is_expired(expires_at)


class _PixServiceUnavailable(Exception):
    pass


class HttpPixCodeProvider(PixCodeProvider):
    """Requests Pix charges from the Pix charge service"""

    def __init__(self, base_url: str = None, timeout: float = None,
                 expiration_minutes: int = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.PIX_SERVICE_URL
        self.timeout = timeout or settings.EXTERNAL_TIMEOUT
        self.expiration_minutes = expiration_minutes or settings.PIX_EXPIRATION_MINUTES
        self.transport = transport

    async def generate(self, amount: Decimal, reference: str, description: str) -> PixCharge:
        """
        Generate a Pix charge for ``amount``

        Raises:
            PaymentCodeGenerationFailed: On missing configuration, timeout,
                unreachable service or an unusable response
        """
        if not settings.PIX_KEY:
            raise PaymentCodeGenerationFailed("Pix key is not configured on the server")

        payload = {
            "merchant_name": settings.PIX_MERCHANT_NAME,
            "merchant_city": settings.PIX_MERCHANT_CITY,
            "key": settings.PIX_KEY,
            "key_type": settings.PIX_KEY_TYPE,
            "amount": f"{amount:.2f}",
            "transaction_id": reference,
            "message": description,
        }

        try:
            data = await self._request_charge(payload)
        except _PixServiceUnavailable as e:
            raise PaymentCodeGenerationFailed(f"Pix service unavailable: {e}")
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentCodeGenerationFailed(f"Pix service error: {e}")

        try:
            return PixCharge(
                code=data["copy_paste"],
                display_image=data["qr_code_base64"],
                expires_at=calculate_expiration(self.expiration_minutes),
            )
        except (KeyError, TypeError) as e:
            raise PaymentCodeGenerationFailed(f"Malformed Pix service response: {e}")

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        retry=retry_if_exception_type(_PixServiceUnavailable),
        reraise=True
    )
    async def _request_charge(self, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/charges", json=payload)
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.warning("Error calling Pix service: %s", e)
            raise _PixServiceUnavailable(str(e))

        response.raise_for_status()
        return response.json()
