from fastapi import APIRouter
from storefront.api import version_prefix
from storefront.auth.routes import auth_router
from storefront.common.routes import home_router
from storefront.orders.routes import orders_router
from storefront.user.routes import user_router


public_routers = APIRouter(prefix=version_prefix)

public_routers.include_router(auth_router, prefix="/users", tags=["auth"])
public_routers.include_router(user_router, prefix="/users", tags=["users"])
public_routers.include_router(orders_router, tags=["orders"])
public_routers.include_router(home_router, tags=["home"])


# reachable without a session token
PUBLIC_PATHS = [
    f"{version_prefix}/users/register",
    f"{version_prefix}/users/login",
    f"{version_prefix}/users/federated-login",
    f"{version_prefix}/users/send-otp",
    f"{version_prefix}/users/verify-otp",
    f"{version_prefix}/health",
    "/docs",
    "/openapi.json",
]

# token optional , a present token must still be valid
MAYBE_AUTH_ROUTES = [
    ("POST", f"{version_prefix}/orders"),
]
