from typing import Any, List, Optional, Union
import httpx
from storefront.api import version_prefix
from storefront.auth.constants import SESSION_HEADER_NAME
from storefront.auth.models import Identity
from storefront.client.cache import CacheKey, ClientCache, session_token
from storefront.client.constants import DEFAULT_TIMEOUT_SECONDS, logger
from storefront.common.custom_exceptions import (
    ERRORS_BY_CODE, Forbidden, InvalidToken, NotFound, RateLimited, StorageError, ValidationError,
)
from storefront.orders.models import Order, OrderDraft

_FALLBACK_BY_STATUS = {
    401: InvalidToken,
    403: Forbidden,
    404: NotFound,
}


def error_from_response(resp: httpx.Response) -> Exception:
    """Turn a non-2xx response back into the domain error the server raised."""
    if resp.status_code >= 500:
        return StorageError(f"server responded {resp.status_code}")

    try:
        body = resp.json()
    except ValueError:
        body = None
    error = (body.get("error") if isinstance(body, dict) else None) or {}
    details = error.get("details") if isinstance(error.get("details"), dict) else {}
    message = details.get("message")
    if message is not None and not isinstance(message, str):
        message = str(message)

    exc_cls = ERRORS_BY_CODE.get(error.get("code")) or _FALLBACK_BY_STATUS.get(resp.status_code, ValidationError)
    if exc_cls is RateLimited:
        retry_after = details.get("retry_after") or resp.headers.get("Retry-After") or 0
        return RateLimited(message, retry_after=int(retry_after))
    return exc_cls(message)


class StorefrontClient:
    """
    Async client for the storefront REST api.

    The session token and the profile snapshot live in the client cache , so a
    client built on a FileClientCache stays logged in across runs. Transport
    failures and 5xx responses surface as StorageError.
    """

    def __init__(self, base_url: str, cache: ClientCache, *, api_prefix: str = version_prefix,
                 header_name: str = SESSION_HEADER_NAME, timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.cache = cache
        self.api_prefix = api_prefix
        self.header_name = header_name
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> dict:
        token = session_token(self.cache)
        return {self.header_name: token} if token else {}

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        url = f"{self.api_prefix}{path}"
        try:
            resp = await self._client.request(method, url, json=json, headers=self._headers())
        except httpx.TransportError as e:
            logger.warning("client.request.unreachable", extra={"method": method, "url": url, "error": str(e)})
            raise StorageError(f"{method} {url} failed: {e}") from e

        if resp.is_success:
            body = resp.json()
            return body.get("data") if isinstance(body, dict) else body

        exc = error_from_response(resp)
        if isinstance(exc, InvalidToken):
            # the server no longer accepts this session
            self.logout()
        logger.info("client.request.failed", extra={"method": method, "url": url, "status_code": resp.status_code})
        raise exc

    def _store_session(self, token: str, user: Optional[dict] = None) -> None:
        self.cache.save(CacheKey.SESSION_TOKEN, token)
        if user is not None:
            self.cache.save(CacheKey.CURRENT_USER, user)

    # ----- auth -----

    async def register(self, name: str, email: str, password: str) -> Identity:
        data = await self._request("POST", "/users/register", {"name": name, "email": email, "password": password})
        self._store_session(data["token"])
        return await self.profile()

    async def login(self, email: str, password: str) -> Identity:
        data = await self._request("POST", "/users/login", {"email": email, "password": password})
        self._store_session(data["token"])
        return await self.profile()

    async def federated_login(self, external_token: str) -> Identity:
        data = await self._request("POST", "/users/federated-login", {"externalToken": external_token})
        self._store_session(data["token"])
        return await self.profile()

    async def send_otp(self, email: str) -> None:
        await self._request("POST", "/users/send-otp", {"email": email})

    async def verify_otp(self, email: str, otp: str, name: Optional[str] = None) -> Identity:
        payload = {"email": email, "otp": otp}
        if name:
            payload["name"] = name
        data = await self._request("POST", "/users/verify-otp", payload)
        self._store_session(data["token"], data["user"])
        return Identity.model_validate(data["user"])

    async def profile(self) -> Identity:
        data = await self._request("GET", "/users/profile")
        self.cache.save(CacheKey.CURRENT_USER, data)
        return Identity.model_validate(data)

    def current_user(self) -> Optional[Identity]:
        snapshot = self.cache.load(CacheKey.CURRENT_USER)
        return Identity.model_validate(snapshot) if snapshot else None

    def logout(self) -> None:
        # sessions are stateless , dropping the token is the whole logout
        self.cache.clear(CacheKey.SESSION_TOKEN)
        self.cache.clear(CacheKey.CURRENT_USER)

    # ----- orders -----

    async def create_order(self, order: Union[Order, OrderDraft]) -> Order:
        draft = order.to_draft() if isinstance(order, Order) else order
        data = await self._request("POST", "/orders", draft.model_dump(by_alias=True, mode="json", exclude_none=True))
        return Order.model_validate(data)

    async def list_orders(self) -> List[Order]:
        return [Order.model_validate(o) for o in await self._request("GET", "/orders")]

    async def get_order(self, order_id: str) -> Order:
        return Order.model_validate(await self._request("GET", f"/orders/{order_id}"))

    async def list_all_orders(self) -> List[Order]:
        return [Order.model_validate(o) for o in await self._request("GET", "/orders/all")]
