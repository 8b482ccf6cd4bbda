"""
Ways an identity can authenticate. Each method turns its own credentials into
an Identity , session issuance is the same for all of them.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from storefront.auth.constants import logger
from storefront.auth.federated import ExternalTokenVerifier
from storefront.auth.models import Identity
from storefront.auth.services import resolve_otp_identity, upsert_external_identity, verify_password_identity
from storefront.auth.utils import normalize_email_address
from storefront.otp.issuer import OneTimeCodeIssuer


class AuthMethodKind(str, Enum):
    PASSWORD = "password"
    FEDERATED = "federated"
    ONE_TIME_CODE = "one_time_code"


@dataclass(frozen=True)
class PasswordCredentials:
    email: str
    password: str


@dataclass(frozen=True)
class FederatedCredentials:
    external_token: str


@dataclass(frozen=True)
class OneTimeCodeCredentials:
    email: str
    code: str
    name: Optional[str] = None


class PasswordAuth:
    kind = AuthMethodKind.PASSWORD

    async def authenticate(self, session, credentials: PasswordCredentials) -> Identity:
        return await verify_password_identity(session, credentials.email, credentials.password)


class FederatedAuth:
    kind = AuthMethodKind.FEDERATED

    def __init__(self, verifier: ExternalTokenVerifier):
        self.verifier = verifier

    async def authenticate(self, session, credentials: FederatedCredentials) -> Identity:
        profile = await self.verifier.verify(credentials.external_token)
        return await upsert_external_identity(session, profile.name, profile.email, profile.subject)


class OneTimeCodeAuth:
    kind = AuthMethodKind.ONE_TIME_CODE

    def __init__(self, issuer: OneTimeCodeIssuer):
        self.issuer = issuer

    async def authenticate(self, session, credentials: OneTimeCodeCredentials) -> Identity:
        email = normalize_email_address(credentials.email)

        async def resolve():
            return await resolve_otp_identity(session, email, credentials.name)

        identity = await self.issuer.verify(email, credentials.code, on_match=resolve)
        logger.debug("auth.otp.resolved", extra={"user_public_id": identity.id})
        return identity


AuthMethod = Union[PasswordAuth, FederatedAuth, OneTimeCodeAuth]
