from typing import Iterable, Optional, Tuple
from fastapi import Request, status
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware
from storefront.auth.constants import SESSION_HEADER_NAME
from storefront.auth.session import SessionIssuer, session_issuer
from storefront.common.custom_exceptions import InvalidToken, StorageError
from storefront.common.logging_setup import request_id_ctx
from storefront.common.utils import build_error, json_error
from storefront.middlewares.constants import logger
from storefront.user.repository import identify_user_by_pid


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session token header into request.state.

    `paths` are public prefixes and skip authentication entirely. Routes in
    `maybe_auth_routes` (method, path) accept anonymous callers , but a token
    that is present must still be valid.
    """

    def __init__(self, app, *, session_maker, paths: Iterable[str],
                 maybe_auth_routes: Optional[Iterable[Tuple[str, str]]] = None,
                 header_name: str = SESSION_HEADER_NAME, issuer: SessionIssuer = session_issuer):
        super().__init__(app)
        self.session_maker = session_maker
        self.paths = tuple(paths)
        self.maybe_auth_routes = {(m.upper(), p.rstrip("/")) for m, p in (maybe_auth_routes or ())}
        self.header_name = header_name
        self.issuer = issuer

    def _reject(self, request: Request, code: str, message: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        logger.warning("auth.middleware.failed", extra={
            "reason": code,
            "path": request.url.path,
            "method": request.method,
        })
        payload = build_error(code=code, details={"message": message}, request_id=request_id_ctx.get(None))
        return json_error(payload, status_code=status_code)

    async def dispatch(self, request: Request, call_next):

        path = request.url.path
        if any(path.startswith(p) for p in self.paths):
            return await call_next(request)

        request.state.user_identifier = None
        request.state.user_public_id = None
        request.state.user_role = None

        token = request.headers.get(self.header_name)
        if not token:
            if (request.method, path.rstrip("/")) in self.maybe_auth_routes:
                return await call_next(request)
            return self._reject(request, "INVALID_AUTH", "Missing or Invalid Auth Headers")

        try:
            user_pid = self.issuer.validate(token)
        except InvalidToken as e:
            return self._reject(request, e.code, e.message)

        try:
            async with self.session_maker() as session:
                user = await identify_user_by_pid(session, user_pid)
        except SQLAlchemyError as e:
            logger.error("auth.middleware.storage_error", extra={"path": path}, exc_info=e)
            return self._reject(request, StorageError().code, StorageError.default_message,
                                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if not user:
            logger.warning("auth.middleware.user_not_found", extra={"user_public_id": user_pid, "path": path})
            return self._reject(request, "INVALID_AUTH", "User unidentified and not authorized")

        request.state.user_identifier = user.id
        request.state.user_public_id = str(user.public_id)
        request.state.user_role = user.role

        logger.debug("auth.middleware.success", extra={"user_public_id": user_pid, "path": path})
        return await call_next(request)
