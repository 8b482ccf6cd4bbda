from fastapi import Request
from fastapi.security import APIKeyHeader
from storefront.auth.constants import SESSION_HEADER_NAME
from storefront.common.custom_exceptions import Unauthorized


class SessionTokenHeader(APIKeyHeader):
    """Documents the session header on routes , missing tokens are the middleware's call."""

    def __init__(self, name: str = SESSION_HEADER_NAME):
        super().__init__(name=name, auto_error=False, description="Session token issued at login")


session_token_header = SessionTokenHeader()


def current_user_public_id(request: Request) -> str:
    user_public_id = getattr(request.state, "user_public_id", None)
    if not user_public_id:
        raise Unauthorized("User not authenticated")
    return user_public_id
