"""
One-time login codes.

At most one live code exists per email. Issuance overwrites the previous code
and is refused while the previous one is younger than the resend interval.
Codes are stored as HMAC digests, the plaintext only travels to the delivery
channel.
"""
import hashlib
import hmac
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, TypeVar
from storefront.cache.utils import build_key
from storefront.common.custom_exceptions import Expired, Mismatch, NotFound, RateLimited
from storefront.common.utils import now
from storefront.config.settings import config_settings
from storefront.otp.constants import (
    OTP_KEY_PREFIX, OTP_LENGTH, OTP_RECORD_RETENTION_SECONDS, OTP_RESEND_INTERVAL_SECONDS, OTP_TTL_SECONDS, logger,
)
from storefront.otp.delivery import OtpDeliveryChannel
from storefront.otp.store import KeyValueStore

T = TypeVar("T")


def generate_code() -> str:
    low = 10 ** (OTP_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


@dataclass(frozen=True)
class OneTimeCode:
    email: str
    code: str
    issued_at: datetime
    expires_at: datetime


class OneTimeCodeIssuer:

    def __init__(self, store: KeyValueStore, channel: OtpDeliveryChannel, *,
                 ttl_seconds: int = OTP_TTL_SECONDS,
                 resend_interval_seconds: int = OTP_RESEND_INTERVAL_SECONDS,
                 retention_seconds: int = OTP_RECORD_RETENTION_SECONDS,
                 secret: str = config_settings.OTP_HASH_SECRET,
                 clock: Callable[[], datetime] = now,
                 code_factory: Callable[[], str] = generate_code):
        self.store = store
        self.channel = channel
        self.ttl = timedelta(seconds=ttl_seconds)
        self.resend_interval = resend_interval_seconds
        self.retention_seconds = max(retention_seconds, ttl_seconds, resend_interval_seconds)
        self._secret = secret.encode()
        self.clock = clock
        self.code_factory = code_factory

    def _key(self, email: str) -> str:
        return build_key(OTP_KEY_PREFIX, email)

    def _digest(self, email: str, code: str) -> str:
        return hmac.new(self._secret, f"{email}:{code}".encode(), hashlib.sha256).hexdigest()

    async def issue(self, email: str) -> OneTimeCode:
        key = self._key(email)
        async with self.store.lock(key):
            current = self.clock()
            record = await self.store.get(key)
            if record is not None:
                elapsed = current.timestamp() - record["issued_at"]
                if elapsed < self.resend_interval:
                    retry_after = max(1, math.ceil(self.resend_interval - elapsed))
                    logger.warning("otp.rate_limited", extra={"email": email, "retry_after": retry_after})
                    raise RateLimited(f"Please wait {retry_after} seconds before requesting another OTP",
                                      retry_after=retry_after)

            code = self.code_factory()
            otp = OneTimeCode(email=email, code=code, issued_at=current, expires_at=current + self.ttl)
            await self.store.put(key, {
                "code_hash": self._digest(email, code),
                "issued_at": otp.issued_at.timestamp(),
                "expires_at": otp.expires_at.timestamp(),
            }, ttl=self.retention_seconds)

        logger.info("otp.issued", extra={"email": email, "expires_at": otp.expires_at.isoformat()})
        await self._deliver(otp)
        return otp

    async def _deliver(self, otp: OneTimeCode) -> None:
        try:
            await self.channel.deliver(otp.email, otp.code, otp.expires_at)
        except Exception as e:
            # the stored code stays valid , the log is the fallback channel
            logger.error("otp.delivery_failed", extra={
                "email": otp.email,
                "otp_code": otp.code,
                "expires_at": otp.expires_at.isoformat(),
                "error": str(e),
            })

    async def verify(self, email: str, submitted: str,
                     on_match: Optional[Callable[[], Awaitable[T]]] = None) -> Optional[T]:
        """
        Check `submitted` against the live code for `email`.

        On a match `on_match` runs while the record is still held , and the
        code is consumed only once it succeeds. A failing `on_match` leaves
        the code usable for another attempt.
        """
        key = self._key(email)
        async with self.store.lock(key):
            record = await self.store.get(key)
            if record is None:
                logger.warning("otp.verify.not_found", extra={"email": email})
                raise NotFound("OTP not found or expired")

            current = self.clock()
            if current > datetime.fromtimestamp(record["expires_at"], tz=timezone.utc):
                await self.store.delete(key)
                logger.warning("otp.verify.expired", extra={"email": email})
                raise Expired()

            expected = record["code_hash"]
            if not hmac.compare_digest(expected, self._digest(email, (submitted or "").strip())):
                logger.warning("otp.verify.mismatch", extra={"email": email})
                raise Mismatch()

            result = await on_match() if on_match is not None else None
            await self.store.delete(key)

        logger.info("otp.verified", extra={"email": email})
        return result
