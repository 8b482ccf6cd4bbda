from typing import Optional
from sqlalchemy.exc import IntegrityError
from storefront.auth.constants import FEDERATED_PROVIDER, logger
from storefront.auth.models import Identity
from storefront.auth.repository import (
    active_credentials, add_external_credential, add_password_credential, add_user,
    build_identity, password_hash_for_user, user_by_email, user_by_external_id, user_by_public_id,
)
from storefront.auth.utils import hash_password, normalize_email_address, validate_password, verify_password
from storefront.common.custom_exceptions import (
    DuplicateEmail, ExternalIdentityConflict, InvalidCredentials, NameRequired, NotFound, ValidationError,
)
from storefront.config.admin_config import admin_config
from storefront.schema.full_schema import CredentialType


async def register_identity(session, name: str, email: str, password: str,
                            role: str = admin_config.DEFAULT_ROLE) -> Identity:
    email = normalize_email_address(email)
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")

    is_valid, detail = validate_password(password)
    if not is_valid:
        logger.warning("register.password_invalid", extra={"email": email, "reason": detail})
        raise ValidationError(detail)

    if await user_by_email(session, email):
        logger.warning("user.duplicate", extra={"email": email})
        raise DuplicateEmail()

    try:
        user = await add_user(session, email, name, role)
        await add_password_credential(session, user.id, hash_password(password))
        await session.commit()
    except IntegrityError:
        # lost the race against a concurrent registration for the same email
        await session.rollback()
        logger.warning("user.create.integrity_error", extra={"email": email})
        raise DuplicateEmail()

    logger.info("user.created", extra={"user_public_id": str(user.public_id), "email": email})
    return Identity(id=str(user.public_id), name=user.name, email=user.email, role=user.role,
                    external_id=None, has_password=True)


async def verify_password_identity(session, email: str, password: str) -> Identity:
    try:
        email = normalize_email_address(email)
    except ValidationError:
        # a malformed address cannot belong to any identity
        raise InvalidCredentials()
    user = await user_by_email(session, email)
    if not user:
        logger.warning("auth.user.not_found", extra={"email": email})
        raise InvalidCredentials()

    pwd_hash = await password_hash_for_user(session, user.id)
    # external-only and otp-only identities have no password to compare against
    if not pwd_hash or not verify_password(password, pwd_hash):
        logger.warning("auth.user.invalid_credentials", extra={"email": email, "user_public_id": str(user.public_id)})
        raise InvalidCredentials()

    return await build_identity(session, user)


async def upsert_external_identity(session, name: Optional[str], email: str, external_id: str,
                                   provider: str = FEDERATED_PROVIDER) -> Identity:
    email = normalize_email_address(email)

    linked = await user_by_external_id(session, provider, external_id)
    if linked:
        return await build_identity(session, linked)

    user = await user_by_email(session, email)
    try:
        if user is None:
            user = await add_user(session, email, (name or "").strip() or None, admin_config.DEFAULT_ROLE)
            await add_external_credential(session, user.id, provider, external_id)
            await session.commit()
            logger.info("user.created", extra={"user_public_id": str(user.public_id), "email": email, "provider": provider})
        else:
            creds = await active_credentials(session, user.id)
            current = next((c for c in creds if c.type == CredentialType.OAUTH.value), None)
            if current is not None:
                logger.warning("auth.external.conflict", extra={"user_public_id": str(user.public_id), "provider": provider})
                raise ExternalIdentityConflict()

            await add_external_credential(session, user.id, provider, external_id)
            if not user.name and name:
                user.name = name.strip()
            await session.commit()
            logger.info("auth.external.linked", extra={"user_public_id": str(user.public_id), "provider": provider})
    except IntegrityError:
        await session.rollback()
        linked = await user_by_external_id(session, provider, external_id)
        if linked:
            return await build_identity(session, linked)
        logger.warning("auth.external.integrity_error", extra={"email": email, "provider": provider})
        raise ExternalIdentityConflict()

    return await build_identity(session, user)


async def resolve_otp_identity(session, email: str, name: Optional[str] = None) -> Identity:
    """Existing identity for the email, or a new one when a name is supplied."""
    user = await user_by_email(session, email)
    if user:
        return await build_identity(session, user)

    name = (name or "").strip()
    if not name:
        raise NameRequired()

    try:
        user = await add_user(session, email, name, admin_config.DEFAULT_ROLE)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        user = await user_by_email(session, email)
        if user is None:
            raise
        return await build_identity(session, user)

    logger.info("user.created", extra={"user_public_id": str(user.public_id), "email": email, "method": "otp"})
    return Identity(id=str(user.public_id), name=user.name, email=user.email, role=user.role)


async def get_identity(session, public_id: str) -> Identity:
    user = await user_by_public_id(session, public_id)
    if not user:
        raise NotFound("User not found")
    return await build_identity(session, user)
