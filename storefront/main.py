from contextlib import asynccontextmanager
from fastapi import FastAPI
from storefront.api import cur_version
from storefront.api.routers import MAYBE_AUTH_ROUTES, PUBLIC_PATHS, public_routers
from storefront.common.constants import logger
from storefront.common.custom_exceptions import register_all_exceptions
from storefront.common.logging_setup import setup_logging, shutdown_logging
from storefront.config.settings import config_settings
from storefront.db.connection import async_engine, async_session, create_tables
from storefront.middlewares.auth_middleware import AuthenticationMiddleware
from storefront.middlewares.request_id_middleware import RequestIdMiddleware
from storefront.otp.dependencies import build_otp_issuer


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()

    if config_settings.AUTO_CREATE_TABLES:
        await create_tables()

    # tests swap in their own issuer before startup
    if getattr(app.state, "otp_issuer", None) is None:
        app.state.otp_issuer = build_otp_issuer()

    logger.info("app.startup", extra={"otp_store": config_settings.OTP_STORE_BACKEND,
                                      "otp_delivery": config_settings.OTP_DELIVERY_BACKEND})
    try:
        yield
    finally:
        await async_engine.dispose()
        logger.info("app.shutdown")
        shutdown_logging()


def create_app():
    app = FastAPI(
        title="ALA Storefront",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)

    app.add_middleware(AuthenticationMiddleware, session_maker=async_session, paths=PUBLIC_PATHS,
                       maybe_auth_routes=MAYBE_AUTH_ROUTES)
    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app

app = create_app()
