"""
Message delivery channels used by the notification consumer
"""
import logging
from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ordering.config import settings

logger = logging.getLogger(__name__)


class MessageSendError(Exception):
    """Message could not be delivered"""
    pass


class _ChannelUnavailable(MessageSendError):
    pass


class MessageSender:
    """Delivers one chat message to one recipient"""

    def send(self, recipient: str, message: str, order_number: Optional[str] = None) -> bool:
        raise NotImplementedError


class ConsoleSender(MessageSender):
    """
    Simulate message sending by printing to console

    This is for development/testing purposes
    """

    def send(self, recipient: str, message: str, order_number: Optional[str] = None) -> bool:
        print("\n" + "=" * 60)
        print("WHATSAPP NOTIFICATION (Console Mode)")
        print("=" * 60)
        print(f"To: {recipient}")
        print("-" * 60)
        print(message)
        print("=" * 60 + "\n")
        logger.info("Notification for order %s written to console", order_number)
        return True


def format_whatsapp_address(number: str) -> str:
    """``+55 11 99999-9999`` -> ``whatsapp:+5511999999999``"""
    if number.startswith("whatsapp:"):
        return number
    return "whatsapp:" + "".join(number.split())


class WhatsAppSender(MessageSender):
    """Sends WhatsApp messages through the Twilio REST API"""

    def __init__(self, account_sid: str = None, auth_token: str = None, from_number: str = None,
                 api_url: str = None, timeout: float = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number or settings.TWILIO_WHATSAPP_FROM
        self.api_url = api_url or settings.TWILIO_API_URL
        self.timeout = timeout or settings.EXTERNAL_TIMEOUT
        self.transport = transport

        if not (self.account_sid and self.auth_token and self.from_number):
            raise MessageSendError("Twilio credentials or sender number are not configured")

    def send(self, recipient: str, message: str, order_number: Optional[str] = None) -> bool:
        """
        Send ``message`` to ``recipient``

        Raises:
            MessageSendError: Twilio rejected the message or stayed unreachable
        """
        payload = {
            "From": format_whatsapp_address(self.from_number),
            "To": format_whatsapp_address(recipient),
            "Body": message,
        }
        data = self._post_message(payload)
        logger.info("WhatsApp sent to %s for order %s - SID: %s", recipient, order_number, data.get("sid"))
        return True

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=settings.RETRY_DELAY, min=1, max=10),
        retry=retry_if_exception_type(_ChannelUnavailable),
        reraise=True
    )
    def _post_message(self, payload: dict) -> dict:
        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(url, data=payload, auth=(self.account_sid, self.auth_token))
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.warning("Error calling Twilio: %s", e)
            raise _ChannelUnavailable(str(e))

        if response.status_code >= 500:
            raise _ChannelUnavailable(f"Twilio returned {response.status_code}")
        if response.status_code >= 400:
            raise MessageSendError(f"Twilio rejected the message: {response.status_code} {response.text}")
        return response.json()


def build_message_sender(channel: str = None) -> MessageSender:
    """Pick the delivery channel from NOTIFICATION_CHANNEL"""
    channel = (channel or settings.NOTIFICATION_CHANNEL).lower()
    if channel == "console":
        return ConsoleSender()
    if channel == "whatsapp":
        return WhatsAppSender()
    raise ValueError(f"Unknown notification channel: {channel}")
