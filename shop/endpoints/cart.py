from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from shop.core.cache_config import CART_KEYS
from shop.core.config import settings
from shop.schemas.cart import AddToCartRequest, CartView, MergeCartRequest, UpdateCartItemRequest
from shop.schemas.response import APIResponse
from shop.services.cart import CartService
from shop.services.result import CartError, Err, InvalidQuantity
from shop.utils import deps

router = APIRouter()

def _raise_for_error(error: CartError):
    if isinstance(error, InvalidQuantity):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)


@router.get("", response_model=APIResponse[CartView])
async def get_cart(
    locale: str = Query(settings.DEFAULT_LOCALE),
    cart_key: str = Depends(deps.resolve_cart_key),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    cart = await cart_service.get_cart(cart_key, locale)
    return APIResponse(message="Cart retrieved successfully", data=cart)


@router.post("/items", response_model=APIResponse[CartView])
async def add_item(
    item_in: AddToCartRequest,
    locale: str = Query(settings.DEFAULT_LOCALE),
    cart_key: str = Depends(deps.resolve_cart_key),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    result = await cart_service.add_item(
        cart_key, item_in.product_id, item_in.quantity, item_in.selected_options, locale
    )
    if isinstance(result, Err):
        _raise_for_error(result.error)
    return APIResponse(message="Item added to cart", data=result.value)


@router.put("/items/{product_id}", response_model=APIResponse[CartView])
async def update_item(
    product_id: str,
    item_in: UpdateCartItemRequest,
    locale: str = Query(settings.DEFAULT_LOCALE),
    cart_key: str = Depends(deps.resolve_cart_key),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    result = await cart_service.update_item_quantity(cart_key, product_id, item_in.quantity, locale)
    if isinstance(result, Err):
        _raise_for_error(result.error)
    return APIResponse(message="Cart item updated", data=result.value)


@router.delete("/items/{product_id}", response_model=APIResponse[CartView])
async def remove_item(
    product_id: str,
    locale: str = Query(settings.DEFAULT_LOCALE),
    cart_key: str = Depends(deps.resolve_cart_key),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    await cart_service.remove_item(cart_key, product_id)
    cart = await cart_service.get_cart(cart_key, locale)
    return APIResponse(message="Item removed from cart", data=cart)


@router.delete("", response_model=APIResponse[CartView])
async def clear_cart(
    cart_key: str = Depends(deps.resolve_cart_key),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    await cart_service.clear_cart(cart_key)
    return APIResponse(message="Cart cleared", data=CartView())


@router.post("/merge", response_model=APIResponse[CartView])
async def merge_cart(
    merge_in: MergeCartRequest,
    locale: str = Query(settings.DEFAULT_LOCALE),
    user_id: Optional[str] = Depends(deps.get_current_user_id),
    cart_service: CartService = Depends(deps.get_cart_service),
):
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Login required to merge carts")

    cart = await cart_service.merge_carts(
        CART_KEYS["session_cart"].format(merge_in.session_id),
        CART_KEYS["user_cart"].format(user_id),
        locale,
    )
    return APIResponse(message="Carts merged successfully", data=cart)
