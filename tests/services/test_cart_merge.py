import pytest
from decimal import Decimal
from shop.services.cart import items_key, modifiers_key, selected_options_key

SESSION = "cart:session:anon-1"
USER = "cart:user:42"
THIRTY_DAYS = 30 * 24 * 3600

@pytest.mark.asyncio
async def test_merge_sums_overlapping_products(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "2", THIRTY_DAYS)
    await store.set_hash_field(items_key(USER), "P1", "1", THIRTY_DAYS)
    await store.set_hash_field(items_key(USER), "P2", "4", THIRTY_DAYS)

    cart = await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_fields(items_key(USER)) == {"P1": "3", "P2": "4"}
    assert await store.key_exists(items_key(SESSION)) is False
    assert cart.total_items == 7

@pytest.mark.asyncio
async def test_merge_into_empty_destination(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "3", THIRTY_DAYS)

    await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_fields(items_key(USER)) == {"P1": "3"}

@pytest.mark.asyncio
async def test_merge_of_empty_source_is_inert(cart_service, store, clock):
    await store.set_hash_field(items_key(USER), "P1", "1", 1000)
    clock.advance(400)

    cart = await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_fields(items_key(USER)) == {"P1": "1"}
    assert await store.get_ttl(items_key(USER)) == 600
    assert cart.total_items == 1

@pytest.mark.asyncio
async def test_merge_of_two_missing_carts_creates_nothing(cart_service, store):
    cart = await cart_service.merge_carts(SESSION, USER)

    assert cart.items == []
    assert await store.key_exists(items_key(USER)) is False

@pytest.mark.asyncio
async def test_merge_deletes_source_even_when_all_fields_invalid(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "0", THIRTY_DAYS)
    await store.set_hash_field(items_key(SESSION), "P2", "lots", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(SESSION), "P1", "5.00", THIRTY_DAYS)
    await store.set_hash_field(items_key(USER), "P2", "1", THIRTY_DAYS)

    await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_fields(items_key(USER)) == {"P2": "1"}
    for key in (items_key(SESSION), modifiers_key(SESSION), selected_options_key(SESSION)):
        assert await store.key_exists(key) is False

@pytest.mark.asyncio
async def test_merge_carries_customization_when_destination_has_none(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "1", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(SESSION), "P1", "7.50", THIRTY_DAYS)
    await store.set_hash_field(selected_options_key(SESSION), "P1", '[{"optionGroupName": "Rim"}]', THIRTY_DAYS)

    cart = await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_field(modifiers_key(USER), "P1") == "7.50"
    assert await store.get_hash_field(selected_options_key(USER), "P1") == '[{"optionGroupName": "Rim"}]'
    assert cart.items[0].unit_price == Decimal("17.50")

@pytest.mark.asyncio
async def test_merge_keeps_destination_customization(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "1", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(SESSION), "P1", "7.50", THIRTY_DAYS)
    await store.set_hash_field(selected_options_key(SESSION), "P1", '["session"]', THIRTY_DAYS)
    await store.set_hash_field(items_key(USER), "P1", "2", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(USER), "P1", "0", THIRTY_DAYS)
    await store.set_hash_field(selected_options_key(USER), "P1", '["user"]', THIRTY_DAYS)

    await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_field(items_key(USER), "P1") == "3"
    assert await store.get_hash_field(modifiers_key(USER), "P1") == "0"
    assert await store.get_hash_field(selected_options_key(USER), "P1") == '["user"]'

@pytest.mark.asyncio
async def test_merge_keeps_destination_default_options(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "1", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(SESSION), "P1", "7.50", THIRTY_DAYS)
    await store.set_hash_field(selected_options_key(SESSION), "P1", '["session"]', THIRTY_DAYS)
    await store.set_hash_field(items_key(USER), "P1", "2", THIRTY_DAYS)

    cart = await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_field(items_key(USER), "P1") == "3"
    assert await store.get_hash_field(modifiers_key(USER), "P1") is None
    assert await store.get_hash_field(selected_options_key(USER), "P1") is None
    assert cart.items[0].unit_price == Decimal("10.00")
    assert cart.items[0].subtotal == Decimal("30.00")

@pytest.mark.asyncio
async def test_merge_skips_malformed_source_customization(cart_service, store):
    await store.set_hash_field(items_key(SESSION), "P1", "1", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(SESSION), "P1", "abc", THIRTY_DAYS)
    await store.set_hash_field(selected_options_key(SESSION), "P1", "{oops", THIRTY_DAYS)

    await cart_service.merge_carts(SESSION, USER)

    assert await store.get_hash_fields(modifiers_key(USER)) == {}
    assert await store.get_hash_fields(selected_options_key(USER)) == {}

@pytest.mark.asyncio
async def test_merge_refreshes_destination_ttl(cart_service, store, clock):
    await store.set_hash_field(items_key(USER), "P2", "1", THIRTY_DAYS)
    await store.set_hash_field(modifiers_key(USER), "P2", "1.00", THIRTY_DAYS)
    clock.advance(86400)
    await store.set_hash_field(items_key(SESSION), "P1", "1", THIRTY_DAYS)

    await cart_service.merge_carts(SESSION, USER)

    assert await store.get_ttl(items_key(USER)) == THIRTY_DAYS
    assert await store.get_ttl(modifiers_key(USER)) == THIRTY_DAYS
