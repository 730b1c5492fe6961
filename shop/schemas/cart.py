from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class SelectedOption(BaseModel):
    """One customization choice carried by a cart line.

    Stored in camelCase so the persisted JSON matches what order creation
    and other clients of the store expect.
    """
    option_group_name: str
    selected_component_id: str
    selected_component_name: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PricedProduct(BaseModel):
    """What the cart needs to know about a catalog product."""
    product_id: str
    sku: str
    name: str
    unit_price: Decimal
    vat_rate: Decimal
    is_purchasable: bool = True

class CartItem(BaseModel):
    product_id: str
    sku: str
    name: str
    quantity: int
    unit_price: Decimal
    price_modifier: Decimal = Decimal("0")
    vat_rate: Decimal
    subtotal: Decimal
    configuration_json: Optional[str] = None

class CartView(BaseModel):
    items: List[CartItem] = Field(default_factory=list)
    total_items: int = 0
    subtotal: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

class AddToCartRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = 1
    selected_options: Optional[List[SelectedOption]] = None

class UpdateCartItemRequest(BaseModel):
    quantity: int

class MergeCartRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=100)
