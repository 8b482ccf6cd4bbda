import uuid
from typing import Optional
from sqlalchemy import select
from storefront.auth.constants import logger
from storefront.auth.models import Identity
from storefront.schema.full_schema import Credential, CredentialType, Users


async def user_by_email(session, email: str) -> Optional[Users]:
    stmt = select(Users).where(Users.email == email, Users.deleted_at.is_(None))
    return (await session.execute(stmt)).scalar_one_or_none()


async def user_by_public_id(session, public_id) -> Optional[Users]:
    if not isinstance(public_id, uuid.UUID):
        try:
            public_id = uuid.UUID(str(public_id))
        except ValueError:
            return None
    stmt = select(Users).where(Users.public_id == public_id, Users.deleted_at.is_(None))
    return (await session.execute(stmt)).scalar_one_or_none()


async def user_by_external_id(session, provider: str, external_id: str) -> Optional[Users]:
    stmt = (
        select(Users)
        .join(Credential, Credential.user_id == Users.id)
        .where(
            Credential.type == CredentialType.OAUTH.value,
            Credential.provider == provider,
            Credential.provider_user_id == external_id,
            Credential.revoked_at.is_(None),
            Users.deleted_at.is_(None),
        )
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def active_credentials(session, user_id: int) -> list[Credential]:
    stmt = select(Credential).where(Credential.user_id == user_id, Credential.revoked_at.is_(None))
    return list((await session.execute(stmt)).scalars().all())


async def password_hash_for_user(session, user_id: int) -> Optional[str]:
    stmt = select(Credential.password_hash).where(
        Credential.user_id == user_id,
        Credential.type == CredentialType.PASSWORD.value,
        Credential.revoked_at.is_(None),
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def add_user(session, email: str, name: Optional[str], role: str) -> Users:
    user = Users(email=email, name=name, role=role)
    session.add(user)
    await session.flush()
    return user


async def add_password_credential(session, user_id: int, password_hash: str) -> Credential:
    cred = Credential(user_id=user_id, type=CredentialType.PASSWORD.value, provider="self", password_hash=password_hash)
    session.add(cred)
    await session.flush()
    logger.debug("credential.created", extra={"user_id": user_id, "type": CredentialType.PASSWORD.value})
    return cred


async def add_external_credential(session, user_id: int, provider: str, external_id: str) -> Credential:
    cred = Credential(user_id=user_id, type=CredentialType.OAUTH.value, provider=provider, provider_user_id=external_id)
    session.add(cred)
    await session.flush()
    logger.debug("credential.created", extra={"user_id": user_id, "type": CredentialType.OAUTH.value, "provider": provider})
    return cred


async def build_identity(session, user: Users) -> Identity:
    creds = await active_credentials(session, user.id)
    external_id = next((c.provider_user_id for c in creds if c.type == CredentialType.OAUTH.value), None)
    has_password = any(c.type == CredentialType.PASSWORD.value and c.password_hash for c in creds)
    return Identity(
        id=str(user.public_id),
        name=user.name,
        email=user.email,
        role=user.role,
        external_id=external_id,
        has_password=has_password,
    )
