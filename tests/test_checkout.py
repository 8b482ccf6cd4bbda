import asyncio
import httpx
import pytest
from httpx import ASGITransport
from conftest import STRONG_PASSWORD, FakeClock
from storefront.cart.models import ProductRef
from storefront.cart.state_machine import CartStateMachine
from storefront.checkout.models import CheckoutStage, StorageTier
from storefront.checkout.order_writer import (
    ApiOrderWriter, CachedOrderQueue, TieredOrderWriter, WriteResult, order_history,
)
from storefront.checkout.orchestrator import CheckoutOrchestrator
from storefront.client.api import StorefrontClient
from storefront.client.cache import CacheKey, InMemoryClientCache
from storefront.common.custom_exceptions import InvalidReference, ValidationError
from storefront.main import app
from storefront.schema.order import PaymentMethod

LIPSTICK = ProductRef(id="lip-01", name="Velvet Lipstick", price=100)
KAJAL = ProductRef(id="kajal-02", name="Kohl Kajal", price=50)

SHIPPING = {"name": "Asha Rao", "email": "asha@example.com", "phone": "9876543210",
            "address": "12 MG Road", "city": "Bengaluru"}


def filled_cart(cache):
    cart = CartStateMachine(cache)
    cart.add(LIPSTICK, {"shade": "Ruby"})
    cart.add(LIPSTICK, {"shade": "Ruby"})
    cart.add(KAJAL)
    return cart


def unreachable_transport():
    def handler(request):
        raise httpx.ConnectError("connection refused")
    return httpx.MockTransport(handler)


def tiered_writer(client, cache):
    return TieredOrderWriter(ApiOrderWriter(client), CachedOrderQueue(cache))


@pytest.fixture
async def live_client(ac_client):
    cache = InMemoryClientCache()
    async with StorefrontClient("http://test", cache, transport=ASGITransport(app=app)) as client:
        yield client


@pytest.fixture
async def offline_client():
    cache = InMemoryClientCache()
    async with StorefrontClient("http://test", cache, transport=unreachable_transport()) as client:
        yield client


def at_payment(client, method):
    checkout = CheckoutOrchestrator(filled_cart(client.cache), tiered_writer(client, client.cache), client.cache)
    checkout.submit_shipping(SHIPPING)
    checkout.select_payment(method)
    return checkout


def test_checkout_needs_items():
    cache = InMemoryClientCache()
    with pytest.raises(ValidationError):
        CheckoutOrchestrator(CartStateMachine(cache), CachedOrderQueue(cache), cache)


def test_blank_shipping_keeps_stage():
    cache = InMemoryClientCache()
    checkout = CheckoutOrchestrator(filled_cart(cache), CachedOrderQueue(cache), cache)

    with pytest.raises(ValidationError):
        checkout.submit_shipping({**SHIPPING, "phone": "  "})
    assert checkout.stage == CheckoutStage.SHIPPING_DETAILS

    assert checkout.submit_shipping(SHIPPING) == CheckoutStage.PAYMENT
    assert checkout.back() == CheckoutStage.SHIPPING_DETAILS


def test_payment_request_renders_upi_intent():
    cache = InMemoryClientCache()
    checkout = CheckoutOrchestrator(filled_cart(cache), CachedOrderQueue(cache), cache)
    checkout.submit_shipping(SHIPPING)
    checkout.select_payment(PaymentMethod.UPI)

    request = checkout.payment_request()

    assert request.amount == 250
    assert request.upi_uri.startswith("upi://pay?pa=merchant@upi&pn=")
    assert "am=250.00" in request.upi_uri
    assert "cu=INR" in request.upi_uri
    assert request.qr_image_url.startswith("https://api.qrserver.com/v1/create-qr-code/?size=250x250&data=upi")


def test_cancel_keeps_cart():
    cache = InMemoryClientCache()
    cart = filled_cart(cache)
    checkout = CheckoutOrchestrator(cart, CachedOrderQueue(cache), cache)
    checkout.submit_shipping(SHIPPING)

    assert checkout.cancel() == CheckoutStage.CANCELLED
    assert checkout.shipping is None
    assert cart.item_count() == 3


@pytest.mark.asyncio
async def test_short_upi_reference_writes_nothing(live_client):
    checkout = at_payment(live_client, PaymentMethod.UPI)

    with pytest.raises(InvalidReference):
        await checkout.place_order("1234567")

    assert checkout.stage == CheckoutStage.PAYMENT
    assert checkout.cart.item_count() == 3
    assert live_client.cache.load(CacheKey.FALLBACK_ORDERS) is None


@pytest.mark.asyncio
async def test_upi_order_with_valid_reference(live_client):
    checkout = at_payment(live_client, PaymentMethod.UPI)

    receipt = await checkout.place_order(" 12345678 ")

    assert receipt.stored_in == StorageTier.PRIMARY
    assert receipt.order.utr_reference == "12345678"
    assert checkout.stage == CheckoutStage.COMPLETED
    assert checkout.cart.is_empty


@pytest.mark.asyncio
async def test_guest_cod_checkout_reaches_order_store(live_client):
    checkout = at_payment(live_client, PaymentMethod.COD)

    receipt = await checkout.place_order()

    order = receipt.order
    assert receipt.persisted_remotely
    assert order.total_amount == 250
    assert order.user_id == "guest"
    assert order.utr_reference is None
    assert [(line.product_id, line.quantity) for line in order.items] == [("lip-01", 2), ("kajal-02", 1)]
    assert live_client.cache.load(CacheKey.CART) is None


@pytest.mark.asyncio
async def test_signed_in_checkout_is_listed_for_user(live_client):
    await live_client.register("Asha Rao", "asha@example.com", STRONG_PASSWORD)
    checkout = at_payment(live_client, PaymentMethod.COD)

    receipt = await checkout.place_order()

    orders = await live_client.list_orders()
    assert [o.id for o in orders] == [receipt.order.id]
    assert orders[0].user_id == live_client.current_user().id


@pytest.mark.asyncio
async def test_outage_falls_back_to_local_queue(offline_client):
    checkout = at_payment(offline_client, PaymentMethod.COD)

    receipt = await checkout.place_order()

    assert receipt.stored_in == StorageTier.FALLBACK
    assert checkout.stage == CheckoutStage.COMPLETED
    assert checkout.cart.is_empty
    queued = offline_client.cache.load(CacheKey.FALLBACK_ORDERS)
    assert [o["id"] for o in queued] == [receipt.order.id]
    assert queued[0]["totalAmount"] == 250


@pytest.mark.asyncio
async def test_reconcile_replays_queued_orders(ac_client):
    cache = InMemoryClientCache()
    async with StorefrontClient("http://test", cache, transport=unreachable_transport()) as offline:
        checkout = at_payment(offline, PaymentMethod.COD)
        parked = (await checkout.place_order()).order

    async with StorefrontClient("http://test", cache, transport=ASGITransport(app=app)) as online:
        writer = tiered_writer(online, cache)
        accepted = await writer.reconcile()
        assert [o.id for o in accepted] == [parked.id]
        assert cache.load(CacheKey.FALLBACK_ORDERS) is None

        # replaying again is harmless , the server already has the order
        CachedOrderQueue(cache).replace([parked])
        again = await writer.reconcile()
        assert [o.id for o in again] == [parked.id]


@pytest.mark.asyncio
async def test_reconcile_keeps_orders_while_backend_down(offline_client):
    checkout = at_payment(offline_client, PaymentMethod.COD)
    await checkout.place_order()

    writer = tiered_writer(offline_client, offline_client.cache)
    assert await writer.reconcile() == []
    assert len(offline_client.cache.load(CacheKey.FALLBACK_ORDERS)) == 1


class SlowWriter:
    def __init__(self):
        self.written = []

    async def write(self, order):
        self.written.append(order.id)
        await asyncio.sleep(0.01)
        return WriteResult(order=order, tier=StorageTier.PRIMARY)


class RejectOnceWriter:
    def __init__(self):
        self.attempts = []

    async def write(self, order):
        self.attempts.append(order.id)
        if len(self.attempts) == 1:
            raise ValidationError("rejected")
        return WriteResult(order=order, tier=StorageTier.PRIMARY)


def test_unknown_payment_method_is_validation_error():
    cache = InMemoryClientCache()
    checkout = CheckoutOrchestrator(filled_cart(cache), CachedOrderQueue(cache), cache)
    checkout.submit_shipping(SHIPPING)

    with pytest.raises(ValidationError):
        checkout.select_payment("CARD")
    assert checkout.payment_method is None
    assert checkout.stage == CheckoutStage.PAYMENT


def test_overlong_shipping_field_is_validation_error():
    cache = InMemoryClientCache()
    checkout = CheckoutOrchestrator(filled_cart(cache), CachedOrderQueue(cache), cache)

    with pytest.raises(ValidationError):
        checkout.submit_shipping({**SHIPPING, "phone": "9" * 40})
    assert checkout.stage == CheckoutStage.SHIPPING_DETAILS


@pytest.mark.asyncio
async def test_double_submit_writes_one_order():
    cache = InMemoryClientCache()
    writer = SlowWriter()
    checkout = CheckoutOrchestrator(filled_cart(cache), writer, cache)
    checkout.submit_shipping(SHIPPING)
    checkout.select_payment(PaymentMethod.COD)

    results = await asyncio.gather(checkout.place_order(), checkout.place_order(), return_exceptions=True)

    receipts = [r for r in results if not isinstance(r, Exception)]
    errors = [r for r in results if isinstance(r, Exception)]
    assert len(writer.written) == 1
    assert len(receipts) == 1 and receipts[0].order.id == writer.written[0]
    assert len(errors) == 1 and isinstance(errors[0], ValidationError)
    assert checkout.stage == CheckoutStage.COMPLETED


@pytest.mark.asyncio
async def test_retry_after_rejection_reuses_order_id():
    cache = InMemoryClientCache()
    writer = RejectOnceWriter()
    checkout = CheckoutOrchestrator(filled_cart(cache), writer, cache)
    checkout.submit_shipping(SHIPPING)
    checkout.select_payment(PaymentMethod.COD)

    with pytest.raises(ValidationError):
        await checkout.place_order()
    assert checkout.stage == CheckoutStage.PAYMENT
    assert checkout.cart.item_count() == 3

    receipt = await checkout.place_order()
    assert writer.attempts[0] == writer.attempts[1] == receipt.order.id


@pytest.mark.asyncio
async def test_reconcile_replays_only_orders_of_signed_in_identity(ac_client):
    cache = InMemoryClientCache()
    async with StorefrontClient("http://test", cache, transport=ASGITransport(app=app)) as online:
        asha = await online.register("Asha Rao", "asha@example.com", STRONG_PASSWORD)
        async with StorefrontClient("http://test", cache, transport=unreachable_transport()) as offline:
            parked = (await at_payment(offline, PaymentMethod.COD).place_order()).order
        assert parked.user_id == asha.id

        online.logout()
        await online.register("Ravi Kumar", "ravi@example.com", STRONG_PASSWORD)
        writer = tiered_writer(online, cache)
        assert await writer.reconcile() == []
        assert [o["id"] for o in cache.load(CacheKey.FALLBACK_ORDERS)] == [parked.id]
        assert await online.list_orders() == []

        online.logout()
        await online.login("asha@example.com", STRONG_PASSWORD)
        accepted = await writer.reconcile()
        assert [o.id for o in accepted] == [parked.id]
        assert accepted[0].user_id == asha.id
        assert cache.load(CacheKey.FALLBACK_ORDERS) is None


def checkout_at(client, clock):
    checkout = CheckoutOrchestrator(filled_cart(client.cache), tiered_writer(client, client.cache),
                                    client.cache, clock=clock)
    checkout.submit_shipping(SHIPPING)
    checkout.select_payment(PaymentMethod.COD)
    return checkout


@pytest.mark.asyncio
async def test_history_lists_parked_orders_while_offline(offline_client):
    cache = offline_client.cache
    clock = FakeClock()
    cache.save(CacheKey.SESSION_TOKEN, "token-of-asha")
    cache.save(CacheKey.CURRENT_USER, {"id": "asha-id"})
    first = (await checkout_at(offline_client, clock).place_order()).order
    clock.advance(60)
    second = (await checkout_at(offline_client, clock).place_order()).order

    cache.save(CacheKey.CURRENT_USER, {"id": "ravi-id"})
    clock.advance(60)
    await checkout_at(offline_client, clock).place_order()
    cache.save(CacheKey.CURRENT_USER, {"id": "asha-id"})

    history = await order_history(offline_client, CachedOrderQueue(cache))

    assert [entry.order.id for entry in history] == [second.id, first.id]
    assert all(entry.pending_sync for entry in history)


@pytest.mark.asyncio
async def test_history_merges_server_and_parked_orders(live_client):
    await live_client.register("Asha Rao", "asha@example.com", STRONG_PASSWORD)
    stored = (await at_payment(live_client, PaymentMethod.COD).place_order()).order

    async with StorefrontClient("http://test", live_client.cache, transport=unreachable_transport()) as offline:
        parked = (await at_payment(offline, PaymentMethod.COD).place_order()).order

    history = await order_history(live_client, CachedOrderQueue(live_client.cache))

    assert [(entry.order.id, entry.pending_sync) for entry in history] == [(parked.id, True), (stored.id, False)]
