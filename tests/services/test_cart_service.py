import json
import pytest
from decimal import Decimal
from shop.schemas.cart import SelectedOption
from shop.services.cart import items_key, modifiers_key, selected_options_key
from shop.services.result import Err, InvalidQuantity, ItemNotInCart, Ok, ProductNotFound

CART = "cart:session:abc"
THIRTY_DAYS = 30 * 24 * 3600

def _options(*component_ids):
    return [
        SelectedOption(
            option_group_name="Grip",
            selected_component_id=component_id,
            selected_component_name=f"Grip {component_id}",
        )
        for component_id in component_ids
    ]

@pytest.mark.asyncio
async def test_empty_cart(cart_service):
    cart = await cart_service.get_cart(CART)

    assert cart.items == []
    assert cart.total_items == 0
    assert cart.total == Decimal("0")

@pytest.mark.asyncio
async def test_add_remove_scenario(cart_service, store):
    result = await cart_service.add_item(CART, "P1", 2)
    assert isinstance(result, Ok)
    assert result.value.total_items == 2
    assert result.value.subtotal == Decimal("20.00")

    result = await cart_service.add_item(CART, "P1", 3)
    assert isinstance(result, Ok)
    assert result.value.items[0].quantity == 5
    assert await store.get_hash_field(items_key(CART), "P1") == "5"

    await cart_service.remove_item(CART, "P1")
    cart = await cart_service.get_cart(CART)
    assert cart.total_items == 0
    assert cart.items == []

@pytest.mark.asyncio
async def test_adding_twice_doubles_quantity(cart_service, store):
    await cart_service.add_item(CART, "P2", 4)
    await cart_service.add_item(CART, "P2", 4)

    assert await store.get_hash_field(items_key(CART), "P2") == "8"

@pytest.mark.asyncio
async def test_totals_use_per_line_vat(cart_service):
    await cart_service.add_item(CART, "P1", 3)
    await cart_service.add_item(CART, "P2", 2)

    cart = await cart_service.get_cart(CART)

    assert [line.product_id for line in cart.items] == ["P1", "P2"]
    assert cart.total_items == 5
    assert cart.subtotal == Decimal("81.00")
    # 30.00 * 21% + 51.00 * 10%
    assert cart.vat_amount == Decimal("11.40")
    assert cart.total == Decimal("92.40")

@pytest.mark.asyncio
async def test_money_rounds_half_to_even(cart_service, catalog):
    catalog.add_product("P3", "0.125", vat_rate="0")
    await cart_service.add_item(CART, "P3", 1)

    cart = await cart_service.get_cart(CART)

    assert cart.items[0].subtotal == Decimal("0.12")

@pytest.mark.asyncio
async def test_add_rejects_non_positive_quantity(cart_service, store):
    for quantity in (0, -3):
        result = await cart_service.add_item(CART, "P1", quantity)
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidQuantity)

    assert await store.key_exists(items_key(CART)) is False

@pytest.mark.asyncio
async def test_add_unknown_product(cart_service, store):
    result = await cart_service.add_item(CART, "nope", 1)

    assert isinstance(result, Err)
    assert result.error == ProductNotFound("nope")
    assert await store.key_exists(items_key(CART)) is False

@pytest.mark.asyncio
async def test_add_inactive_product(cart_service, catalog):
    catalog.add_product("OLD", "5.00", is_purchasable=False)

    result = await cart_service.add_item(CART, "OLD", 1)

    assert isinstance(result, Err)
    assert isinstance(result.error, ProductNotFound)

@pytest.mark.asyncio
async def test_add_beyond_cap_is_rejected(cart_service, store):
    await cart_service.add_item(CART, "P1", 98)

    result = await cart_service.add_item(CART, "P1", 2)

    assert isinstance(result, Err)
    assert result.error.quantity == 100
    assert await store.get_hash_field(items_key(CART), "P1") == "98"

@pytest.mark.asyncio
async def test_add_with_options_stores_modifier_and_json(cart_service, catalog, store):
    catalog.add_delta("P1", "C1", "15.00")
    catalog.add_delta("P1", "C2", "-2.50")

    result = await cart_service.add_item(CART, "P1", 2, _options("C1", "C2", "UNKNOWN"))

    assert isinstance(result, Ok)
    line = result.value.items[0]
    assert line.price_modifier == Decimal("12.50")
    assert line.unit_price == Decimal("22.50")
    assert line.subtotal == Decimal("45.00")

    assert Decimal(await store.get_hash_field(modifiers_key(CART), "P1")) == Decimal("12.50")
    stored = json.loads(await store.get_hash_field(selected_options_key(CART), "P1"))
    assert stored[0] == {
        "optionGroupName": "Grip",
        "selectedComponentId": "C1",
        "selectedComponentName": "Grip C1",
    }
    assert json.loads(line.configuration_json) == stored

@pytest.mark.asyncio
async def test_add_refreshes_ttl_of_all_sibling_keys(cart_service, catalog, store, clock):
    catalog.add_delta("P1", "C1", "1.00")
    await cart_service.add_item(CART, "P1", 1, _options("C1"))
    clock.advance(3600)

    await cart_service.add_item(CART, "P2", 1)

    for key in (items_key(CART), modifiers_key(CART), selected_options_key(CART)):
        assert await store.get_ttl(key) == THIRTY_DAYS

@pytest.mark.asyncio
async def test_update_quantity(cart_service, store):
    await cart_service.add_item(CART, "P1", 2)

    result = await cart_service.update_item_quantity(CART, "P1", 7)

    assert isinstance(result, Ok)
    assert result.value.total_items == 7
    assert await store.get_hash_field(items_key(CART), "P1") == "7"

@pytest.mark.asyncio
async def test_update_absent_item(cart_service):
    result = await cart_service.update_item_quantity(CART, "P1", 3)

    assert isinstance(result, Err)
    assert result.error == ItemNotInCart("P1")

@pytest.mark.asyncio
async def test_update_invalid_quantity(cart_service):
    await cart_service.add_item(CART, "P1", 2)

    for quantity in (0, 100):
        result = await cart_service.update_item_quantity(CART, "P1", quantity)
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidQuantity)

@pytest.mark.asyncio
async def test_remove_item_clears_all_fields(cart_service, catalog, store):
    catalog.add_delta("P1", "C1", "3.00")
    await cart_service.add_item(CART, "P1", 1, _options("C1"))
    await cart_service.add_item(CART, "P2", 1)

    await cart_service.remove_item(CART, "P1")
    await cart_service.remove_item(CART, "P1")

    assert await store.get_hash_field(items_key(CART), "P1") is None
    assert await store.get_hash_field(modifiers_key(CART), "P1") is None
    assert await store.get_hash_field(selected_options_key(CART), "P1") is None
    cart = await cart_service.get_cart(CART)
    assert [line.product_id for line in cart.items] == ["P2"]

@pytest.mark.asyncio
async def test_clear_cart(cart_service, catalog, store):
    catalog.add_delta("P1", "C1", "3.00")
    await cart_service.add_item(CART, "P1", 1, _options("C1"))

    await cart_service.clear_cart(CART)

    for key in (items_key(CART), modifiers_key(CART), selected_options_key(CART)):
        assert await store.key_exists(key) is False

@pytest.mark.asyncio
async def test_malformed_stored_values_are_skipped(cart_service, store):
    await store.set_hash_field(items_key(CART), "P1", "2", 60)
    await store.set_hash_field(items_key(CART), "P2", "abc", 60)
    await store.set_hash_field(items_key(CART), "P3", "0", 60)
    await store.set_hash_field(modifiers_key(CART), "P1", "not-a-number", 60)
    await store.set_hash_field(selected_options_key(CART), "P1", "{broken", 60)

    assert await cart_service.get_items(CART) == {"P1": 2}
    cart = await cart_service.get_cart(CART)

    assert len(cart.items) == 1
    assert cart.items[0].price_modifier == Decimal("0")
    assert cart.items[0].configuration_json is None

@pytest.mark.asyncio
async def test_lines_for_vanished_products_are_dropped(cart_service, catalog):
    await cart_service.add_item(CART, "P1", 1)
    await cart_service.add_item(CART, "P2", 1)
    catalog.products["P2"] = catalog.products["P2"].model_copy(update={"is_purchasable": False})

    cart = await cart_service.get_cart(CART)

    assert [line.product_id for line in cart.items] == ["P1"]
    assert cart.total_items == 1

@pytest.mark.asyncio
async def test_get_cart_prices_in_one_batch(cart_service, catalog, store):
    await store.set_hash_field(items_key(CART), "P1", "1", 60)
    await store.set_hash_field(items_key(CART), "P2", "1", 60)
    catalog.priced_calls = 0

    await cart_service.get_cart(CART)

    assert catalog.priced_calls == 1

@pytest.mark.asyncio
async def test_modifier_accessors(cart_service, store):
    await cart_service.set_price_modifier(CART, "P1", Decimal("4.75"))
    await store.set_hash_field(modifiers_key(CART), "P2", "garbage", 60)

    assert await cart_service.get_all_price_modifiers(CART) == {"P1": Decimal("4.75")}

    await cart_service.remove_price_modifier(CART, "P1")
    assert await cart_service.get_all_price_modifiers(CART) == {}

@pytest.mark.asyncio
async def test_selected_options_are_opaque(cart_service):
    await cart_service.set_selected_options(CART, "P1", '[{"anything": true}]')
    await cart_service.set_selected_options(CART, "P2", "not json")

    assert await cart_service.get_all_selected_options(CART) == {"P1": '[{"anything": true}]'}
