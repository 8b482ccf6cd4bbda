from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.constants import logger
from storefront.auth.federated import ExternalTokenVerifier, get_federated_verifier
from storefront.auth.methods import (
    FederatedAuth, FederatedCredentials, OneTimeCodeAuth, OneTimeCodeCredentials, PasswordAuth, PasswordCredentials,
)
from storefront.auth.models import FederatedLoginIn, LoginIn, RegisterIn, SendOtpIn, VerifyOtpIn
from storefront.auth.services import register_identity
from storefront.auth.session import SessionIssuer, get_session_issuer
from storefront.auth.utils import normalize_email_address
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session
from storefront.otp.dependencies import get_otp_issuer
from storefront.otp.issuer import OneTimeCodeIssuer

auth_router = APIRouter()


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(payload: RegisterIn, session: AsyncSession = Depends(get_session),
                        issuer: SessionIssuer = Depends(get_session_issuer)):

    logger.info("register.attempt", extra={"email": payload.email})

    identity = await register_identity(session, payload.name, payload.email, payload.password)
    token = issuer.issue(identity.id, identity.role)

    logger.info("register.success", extra={"user_public_id": identity.id})
    return success_response({"token": token}, 201)


@auth_router.post("/login")
async def login_user(payload: LoginIn, session: AsyncSession = Depends(get_session),
                     issuer: SessionIssuer = Depends(get_session_issuer)):

    logger.info("login.attempt", extra={"email": payload.email})

    identity = await PasswordAuth().authenticate(session, PasswordCredentials(payload.email, payload.password))
    token = issuer.issue(identity.id, identity.role)

    logger.info("login.success", extra={"user_public_id": identity.id})
    return success_response({"token": token}, 200)


@auth_router.post("/federated-login")
async def federated_login(payload: FederatedLoginIn, session: AsyncSession = Depends(get_session),
                          verifier: ExternalTokenVerifier = Depends(get_federated_verifier),
                          issuer: SessionIssuer = Depends(get_session_issuer)):

    logger.info("federated_login.attempt")

    identity = await FederatedAuth(verifier).authenticate(session, FederatedCredentials(payload.external_token))
    token = issuer.issue(identity.id, identity.role)

    logger.info("federated_login.success", extra={"user_public_id": identity.id})
    return success_response({"token": token}, 200)


@auth_router.post("/send-otp")
async def send_otp(payload: SendOtpIn, otp_issuer: OneTimeCodeIssuer = Depends(get_otp_issuer)):

    email = normalize_email_address(payload.email)
    await otp_issuer.issue(email)
    return success_response({"message": "OTP sent successfully"}, 200)


@auth_router.post("/verify-otp")
async def verify_otp(payload: VerifyOtpIn, session: AsyncSession = Depends(get_session),
                     otp_issuer: OneTimeCodeIssuer = Depends(get_otp_issuer),
                     issuer: SessionIssuer = Depends(get_session_issuer)):

    logger.info("verify_otp.attempt", extra={"email": payload.email})

    credentials = OneTimeCodeCredentials(email=payload.email, code=payload.otp, name=payload.name)
    identity = await OneTimeCodeAuth(otp_issuer).authenticate(session, credentials)
    token = issuer.issue(identity.id, identity.role)

    logger.info("verify_otp.success", extra={"user_public_id": identity.id})
    return success_response({"token": token, "user": identity.model_dump(by_alias=True)}, 200)
