"""Shopping cart engine.

A cart is three sibling hashes in the keyed store, all keyed by product id:

    {cart_key}                  -> quantity
    {cart_key}:modifiers        -> price delta from selected customizations
    {cart_key}:selectedoptions  -> JSON array describing those customizations

There is no cart record: a cart exists while its items hash has fields. The
service itself holds no state, so one instance per request is fine.
"""
import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Dict, List, Optional
import logging

from shop.core.cache_config import CART_KEYS
from shop.core.config import settings
from shop.core.store import KeyedStore
from shop.schemas.cart import CartItem, CartView, SelectedOption
from shop.services.catalog import CatalogRepository
from shop.services.result import (
    CartError,
    Err,
    InvalidQuantity,
    ItemNotInCart,
    Ok,
    ProductNotFound,
    Result,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)

def items_key(cart_key: str) -> str:
    return CART_KEYS["items"].format(cart_key)

def modifiers_key(cart_key: str) -> str:
    return CART_KEYS["modifiers"].format(cart_key)

def selected_options_key(cart_key: str) -> str:
    return CART_KEYS["selected_options"].format(cart_key)

def _parse_quantity(raw: Optional[str]) -> Optional[int]:
    try:
        quantity = int(raw)
    except (TypeError, ValueError):
        return None
    return quantity if quantity > 0 else None

def _parse_decimal(raw: Optional[str]) -> Optional[Decimal]:
    try:
        value = Decimal(raw)
    except (InvalidOperation, TypeError, ValueError):
        return None
    return value if value.is_finite() else None

def _is_decimal(raw: Optional[str]) -> bool:
    return _parse_decimal(raw) is not None

def _is_json(raw: Optional[str]) -> bool:
    try:
        json.loads(raw)
    except (TypeError, ValueError):
        return False
    return True

class CartService:

    def __init__(
        self,
        store: KeyedStore,
        catalog: CatalogRepository,
        ttl_seconds: int = settings.CART_TTL_SECONDS,
        max_quantity: int = settings.MAX_QUANTITY_PER_PRODUCT,
    ):
        self.store = store
        self.catalog = catalog
        self.ttl = ttl_seconds
        self.max_quantity = max_quantity

    # Reads

    async def get_items(self, cart_key: str) -> Dict[str, int]:
        """Quantities by product id; zero or garbage fields are skipped."""
        entries = await self.store.get_hash_fields(items_key(cart_key))
        items = {}
        for product_id, raw in entries.items():
            quantity = _parse_quantity(raw)
            if quantity is None:
                logger.debug(f"Cart {cart_key}: ignoring invalid quantity {raw!r} for {product_id}")
                continue
            items[product_id] = quantity
        return items

    async def get_cart(self, cart_key: str, locale: str = settings.DEFAULT_LOCALE) -> CartView:
        items = await self.get_items(cart_key)
        if not items:
            return CartView()

        products = await self.catalog.get_priced_products(list(items), locale)
        modifiers = await self.get_all_price_modifiers(cart_key)
        options = await self.get_all_selected_options(cart_key)

        lines: List[CartItem] = []
        for product_id in sorted(items):
            product = products.get(product_id)
            if product is None or not product.is_purchasable:
                logger.warning(f"Cart {cart_key}: product {product_id} not found or inactive, skipping")
                continue

            quantity = items[product_id]
            modifier = modifiers.get(product_id, Decimal("0"))
            unit_price = product.unit_price + modifier
            lines.append(CartItem(
                product_id=product_id,
                sku=product.sku,
                name=product.name,
                quantity=quantity,
                unit_price=unit_price,
                price_modifier=modifier,
                vat_rate=product.vat_rate,
                subtotal=round_money(unit_price * quantity),
                configuration_json=options.get(product_id),
            ))

        subtotal = sum((line.subtotal for line in lines), Decimal("0"))
        # VAT is summed per line since products carry different rates (percentages)
        vat_amount = round_money(sum((line.subtotal * line.vat_rate / 100 for line in lines), Decimal("0")))

        return CartView(
            items=lines,
            total_items=sum(line.quantity for line in lines),
            subtotal=subtotal,
            vat_amount=vat_amount,
            total=round_money(subtotal + vat_amount),
        )

    # Mutations

    async def add_item(
        self,
        cart_key: str,
        product_id: str,
        quantity: int,
        selected_options: Optional[List[SelectedOption]] = None,
        locale: str = settings.DEFAULT_LOCALE,
    ) -> Result[CartView, CartError]:
        if quantity < 1:
            return Err(InvalidQuantity(quantity, "quantity must be at least 1"))

        products = await self.catalog.get_priced_products([product_id], locale)
        product = products.get(product_id)
        if product is None or not product.is_purchasable:
            logger.warning(f"Cart {cart_key}: cannot add unknown or inactive product {product_id}")
            return Err(ProductNotFound(product_id))

        # Read-then-write: concurrent adds of the same product may lose an increment
        current = _parse_quantity(await self.store.get_hash_field(items_key(cart_key), product_id)) or 0
        new_quantity = current + quantity
        if new_quantity > self.max_quantity:
            return Err(InvalidQuantity(new_quantity, f"at most {self.max_quantity} units per product"))

        await self.store.set_hash_field(items_key(cart_key), product_id, str(new_quantity), self.ttl)

        if selected_options:
            component_ids = [option.selected_component_id for option in selected_options]
            deltas = await self.catalog.get_component_price_deltas(product_id, component_ids)
            modifier = sum(deltas.values(), Decimal("0"))
            await self.set_price_modifier(cart_key, product_id, modifier)
            await self.set_selected_options(
                cart_key,
                product_id,
                json.dumps([option.model_dump(by_alias=True) for option in selected_options]),
            )
            logger.info(
                f"Cart {cart_key}: added {quantity} of {product_id} (total {new_quantity}), price modifier {modifier}"
            )
        else:
            logger.info(f"Cart {cart_key}: added {quantity} of {product_id} (total {new_quantity}), no customization")

        await self._refresh_ttl(cart_key)
        return Ok(await self.get_cart(cart_key, locale))

    async def update_item_quantity(
        self,
        cart_key: str,
        product_id: str,
        new_quantity: int,
        locale: str = settings.DEFAULT_LOCALE,
    ) -> Result[CartView, CartError]:
        if new_quantity < 1:
            return Err(InvalidQuantity(new_quantity, "quantity must be at least 1, remove the item instead"))
        if new_quantity > self.max_quantity:
            return Err(InvalidQuantity(new_quantity, f"at most {self.max_quantity} units per product"))

        current = _parse_quantity(await self.store.get_hash_field(items_key(cart_key), product_id))
        if current is None:
            return Err(ItemNotInCart(product_id))

        await self.store.set_hash_field(items_key(cart_key), product_id, str(new_quantity), self.ttl)
        await self._refresh_ttl(cart_key)

        logger.info(f"Cart {cart_key}: updated product {product_id} to qty {new_quantity}")
        return Ok(await self.get_cart(cart_key, locale))

    async def remove_item(self, cart_key: str, product_id: str) -> None:
        existed = await self.store.delete_hash_field(items_key(cart_key), product_id)
        await self.remove_price_modifier(cart_key, product_id)
        await self.remove_selected_options(cart_key, product_id)
        logger.info(f"Cart {cart_key}: removed product {product_id} (existed: {existed})")

    async def clear_cart(self, cart_key: str) -> None:
        await self.store.delete_key(items_key(cart_key))
        await self.store.delete_key(modifiers_key(cart_key))
        await self.store.delete_key(selected_options_key(cart_key))
        logger.info(f"Cart {cart_key}: cleared")

    async def merge_carts(
        self, source_cart_key: str, dest_cart_key: str, locale: str = settings.DEFAULT_LOCALE
    ) -> CartView:
        """Fold the source cart into the destination and delete the source.

        Quantities are summed. A source line's modifier and options only move
        over for products the destination does not hold yet; an existing
        destination line keeps its own selection, default or customized. An
        empty source leaves everything as is.
        """
        source_items = await self.store.get_hash_fields(items_key(source_cart_key))
        if not source_items:
            logger.debug(f"Merge skipped: source cart {source_cart_key} is empty")
            return await self.get_cart(dest_cart_key, locale)

        source_modifiers = await self.store.get_hash_fields(modifiers_key(source_cart_key))
        source_options = await self.store.get_hash_fields(selected_options_key(source_cart_key))

        merged = 0
        for product_id, raw in source_items.items():
            source_quantity = _parse_quantity(raw)
            if source_quantity is None:
                continue

            dest_quantity = _parse_quantity(
                await self.store.get_hash_field(items_key(dest_cart_key), product_id)
            ) or 0
            await self.store.set_hash_field(
                items_key(dest_cart_key), product_id, str(dest_quantity + source_quantity), self.ttl
            )
            merged += 1

            # Existing destination lines keep their selection, even the default one
            if dest_quantity == 0:
                await self._carry_over(
                    modifiers_key(dest_cart_key), product_id, source_modifiers.get(product_id), _is_decimal
                )
                await self._carry_over(
                    selected_options_key(dest_cart_key), product_id, source_options.get(product_id), _is_json
                )

        await self._refresh_ttl(dest_cart_key)
        await self.store.delete_key(items_key(source_cart_key))
        await self.store.delete_key(modifiers_key(source_cart_key))
        await self.store.delete_key(selected_options_key(source_cart_key))

        logger.info(
            f"Merged cart {source_cart_key} into {dest_cart_key} ({merged} of {len(source_items)} items)"
        )
        return await self.get_cart(dest_cart_key, locale)

    # Price modifiers and selected options

    async def set_price_modifier(self, cart_key: str, product_id: str, modifier: Decimal) -> None:
        await self.store.set_hash_field(modifiers_key(cart_key), product_id, str(modifier), self.ttl)

    async def get_all_price_modifiers(self, cart_key: str) -> Dict[str, Decimal]:
        entries = await self.store.get_hash_fields(modifiers_key(cart_key))
        modifiers = {}
        for product_id, raw in entries.items():
            value = _parse_decimal(raw)
            if value is not None:
                modifiers[product_id] = value
        return modifiers

    async def remove_price_modifier(self, cart_key: str, product_id: str) -> None:
        await self.store.delete_hash_field(modifiers_key(cart_key), product_id)

    async def set_selected_options(self, cart_key: str, product_id: str, options_json: str) -> None:
        await self.store.set_hash_field(selected_options_key(cart_key), product_id, options_json, self.ttl)

    async def get_all_selected_options(self, cart_key: str) -> Dict[str, str]:
        """Raw JSON per product. Only well-formedness is checked, the content is never interpreted."""
        entries = await self.store.get_hash_fields(selected_options_key(cart_key))
        return {product_id: raw for product_id, raw in entries.items() if _is_json(raw)}

    async def remove_selected_options(self, cart_key: str, product_id: str) -> None:
        await self.store.delete_hash_field(selected_options_key(cart_key), product_id)

    # Helpers

    async def _carry_over(self, dest_key: str, product_id: str, raw: Optional[str], is_valid) -> None:
        if raw is None or not is_valid(raw):
            return
        if await self.store.get_hash_field(dest_key, product_id) is not None:
            return
        await self.store.set_hash_field(dest_key, product_id, raw, self.ttl)

    async def _refresh_ttl(self, cart_key: str) -> None:
        # All three hashes expire together so no sibling outlives the others
        for key in (items_key(cart_key), modifiers_key(cart_key), selected_options_key(cart_key)):
            await self.store.refresh_ttl(key, self.ttl)
