from dataclasses import dataclass
from typing import Optional, Protocol
import httpx
from storefront.auth.constants import logger
from storefront.common.custom_exceptions import ExternalProviderError, InvalidCredentials
from storefront.config.settings import config_settings


@dataclass(frozen=True)
class ExternalProfile:
    subject: str
    email: str
    name: Optional[str] = None


class ExternalTokenVerifier(Protocol):
    async def verify(self, token: str) -> ExternalProfile:
        ...


class TokenInfoVerifier:
    """
    Verifies an identity-provider id token against the provider's public
    token-info endpoint. The token must be issued for our client id and carry
    a verified email.
    """

    def __init__(self, tokeninfo_url: str = config_settings.FEDERATED_TOKENINFO_URL,
                 client_id: Optional[str] = config_settings.FEDERATED_CLIENT_ID,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.tokeninfo_url = tokeninfo_url
        self.client_id = client_id
        self.timeout = timeout
        self.transport = transport

    async def verify(self, token: str) -> ExternalProfile:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(self.tokeninfo_url, params={"id_token": token})
        except httpx.HTTPError as e:
            logger.error("auth.federated.provider_unreachable", extra={"error": str(e)})
            raise ExternalProviderError() from e

        if resp.status_code >= 500:
            logger.error("auth.federated.provider_error", extra={"status_code": resp.status_code})
            raise ExternalProviderError()
        if resp.status_code != 200:
            logger.warning("auth.federated.token_rejected", extra={"status_code": resp.status_code})
            raise InvalidCredentials("Invalid external token")

        claims = resp.json()
        if self.client_id and claims.get("aud") != self.client_id:
            logger.warning("auth.federated.audience_mismatch")
            raise InvalidCredentials("External token was issued for another application")

        # tokeninfo hands back booleans as strings
        if str(claims.get("email_verified", "")).lower() != "true":
            raise InvalidCredentials("External account email is not verified")

        subject, email = claims.get("sub"), claims.get("email")
        if not subject or not email:
            raise InvalidCredentials("External token is missing subject or email")

        return ExternalProfile(subject=str(subject), email=email, name=claims.get("name"))


def get_federated_verifier() -> ExternalTokenVerifier:
    return TokenInfoVerifier()
