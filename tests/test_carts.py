import pytest
from storefront.cart import reducer
from storefront.cart.models import ProductRef, line_key
from storefront.cart.state_machine import CartStateMachine
from storefront.client.cache import CacheKey, InMemoryClientCache

LIPSTICK = ProductRef(id="lip-01", name="Velvet Lipstick", price=100)
KAJAL = ProductRef(id="kajal-02", name="Kohl Kajal", price=50)


def test_add_same_product_and_variants_merges_lines():
    lines = reducer.add((), LIPSTICK, {"shade": "Ruby", "finish": "Matte"})
    lines = reducer.add(lines, LIPSTICK, {"finish": "Matte", "shade": "Ruby"})

    assert len(lines) == 1
    assert lines[0].quantity == 2


def test_add_different_variants_creates_new_line():
    lines = reducer.add((), LIPSTICK, {"shade": "Ruby"})
    lines = reducer.add(lines, LIPSTICK, {"shade": "Coral"})

    assert [line.selected_variants["shade"] for line in lines] == ["Ruby", "Coral"]
    assert all(line.quantity == 1 for line in lines)


def test_add_does_not_mutate_input():
    before = reducer.add((), LIPSTICK)
    after = reducer.add(before, LIPSTICK)

    assert before[0].quantity == 1
    assert after[0].quantity == 2


def test_set_quantity_never_drops_below_one():
    lines = reducer.add((), KAJAL)
    key = line_key(KAJAL.id)

    lines = reducer.set_quantity(lines, key, +3)
    assert lines[0].quantity == 4

    lines = reducer.set_quantity(lines, key, -10)
    assert lines[0].quantity == 1


def test_remove_only_drops_matching_line():
    lines = reducer.add((), LIPSTICK, {"shade": "Ruby"})
    lines = reducer.add(lines, LIPSTICK, {"shade": "Coral"})

    lines = reducer.remove(lines, line_key(LIPSTICK.id, {"shade": "Ruby"}))
    assert [line.selected_variants for line in lines] == [{"shade": "Coral"}]


def test_total_and_item_count():
    lines = reducer.add((), LIPSTICK)
    lines = reducer.add(lines, LIPSTICK)
    lines = reducer.add(lines, KAJAL)

    assert reducer.total(lines) == 250
    assert reducer.item_count(lines) == 3


def test_total_has_no_float_drift():
    cheap = ProductRef(id="pin-1", name="Hair pin", price=0.1)
    lines = reducer.add((), cheap)
    lines = reducer.set_quantity(lines, line_key(cheap.id), 2)
    assert reducer.total(lines) == 0.3


def test_clear_empties_cart():
    assert reducer.clear(reducer.add((), KAJAL)) == ()


def test_state_machine_persists_each_change():
    cache = InMemoryClientCache()
    cart = CartStateMachine(cache)
    cart.add(LIPSTICK, {"shade": "Ruby"})
    cart.add(KAJAL)

    snapshot = cache.load(CacheKey.CART)
    assert [item["productId"] for item in snapshot] == ["lip-01", "kajal-02"]
    assert snapshot[0]["selectedVariants"] == {"shade": "Ruby"}


def test_state_machine_restores_from_cache():
    cache = InMemoryClientCache()
    first = CartStateMachine(cache)
    first.add(LIPSTICK)
    first.set_quantity(line_key(LIPSTICK.id), 2)

    restored = CartStateMachine(cache)
    restored.restore()

    assert restored.item_count() == 3
    assert restored.total() == 300


def test_state_machine_clear_drops_snapshot():
    cache = InMemoryClientCache()
    cart = CartStateMachine(cache)
    cart.add(KAJAL)

    cart.clear()

    assert cart.is_empty
    assert cache.load(CacheKey.CART) is None


def test_restore_discards_unreadable_snapshot():
    cache = InMemoryClientCache()
    cache.save(CacheKey.CART, [{"productId": "lip-01"}])

    cart = CartStateMachine(cache)
    assert cart.restore() == ()
    assert cache.load(CacheKey.CART) is None


@pytest.mark.parametrize("variants", [None, {}])
def test_line_key_treats_missing_and_empty_variants_alike(variants):
    assert line_key("lip-01", variants) == ("lip-01", ())
