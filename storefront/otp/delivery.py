from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
import httpx
from storefront.config.settings import config_settings
from storefront.otp.constants import logger


class OtpDeliveryChannel(ABC):
    @abstractmethod
    async def deliver(self, email: str, code: str, expires_at: datetime) -> None:
        ...


class LogOtpChannel(OtpDeliveryChannel):
    """Writes the code to the application log , the development channel."""

    async def deliver(self, email, code, expires_at):
        logger.info("otp.delivery.logged", extra={"email": email, "otp_code": code, "expires_at": expires_at.isoformat()})


class WebhookOtpChannel(OtpDeliveryChannel):
    """Hands the message to a mail relay over http."""

    def __init__(self, url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def deliver(self, email, code, expires_at):
        payload = {
            "to": email,
            "subject": "Your login code",
            "text": f"Your login code is {code}. It expires at {expires_at.strftime('%H:%M UTC')}.",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(self.url, json=payload)
            resp.raise_for_status()
        logger.info("otp.delivery.sent", extra={"email": email})


def build_otp_channel() -> OtpDeliveryChannel:
    backend = config_settings.OTP_DELIVERY_BACKEND.lower()
    if backend == "webhook":
        if not config_settings.OTP_DELIVERY_WEBHOOK_URL:
            raise RuntimeError("OTP_DELIVERY_WEBHOOK_URL must be set for the webhook delivery backend")
        return WebhookOtpChannel(config_settings.OTP_DELIVERY_WEBHOOK_URL,
                                 timeout=config_settings.OTP_DELIVERY_TIMEOUT_SECONDS)
    return LogOtpChannel()
