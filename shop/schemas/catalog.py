from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from shop.core.config import settings

# Filters. Every field takes part in the list cache key, so anything that
# changes the query result must live here.

class ProductFilter(BaseModel):
    search: Optional[str] = None
    category_slug: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_active: Optional[bool] = True
    is_customizable: Optional[bool] = None
    locale: str = settings.DEFAULT_LOCALE
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=12, ge=1, le=50)
    sort_by: Optional[str] = None
    sort_descending: bool = False

class CategoryFilter(BaseModel):
    search: Optional[str] = None
    parent_id: Optional[str] = None
    is_active: Optional[bool] = True
    locale: str = settings.DEFAULT_LOCALE
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=12, ge=1, le=50)
    sort_by: Optional[str] = None
    sort_descending: bool = False

# Read models

class ProductComponentOption(BaseModel):
    component_id: str
    option_group: str
    price_modifier: Decimal
    is_default: bool = False
    display_order: int = 0

    model_config = ConfigDict(from_attributes=True)

class ProductListItem(BaseModel):
    id: str
    sku: str
    name: str
    slug: str
    short_description: Optional[str] = None
    base_price: Decimal
    vat_rate: Decimal
    is_active: bool
    is_customizable: bool

class ProductDetail(ProductListItem):
    long_description: Optional[str] = None
    base_production_days: int = 0
    weight_grams: Optional[int] = None
    created_at: Optional[datetime] = None
    component_options: List[ProductComponentOption] = Field(default_factory=list)

class CategoryListItem(BaseModel):
    id: str
    parent_id: Optional[str] = None
    name: str
    slug: str
    short_description: Optional[str] = None
    is_active: bool

class CategoryDetail(CategoryListItem):
    created_at: Optional[datetime] = None

# Admin write models

class ProductTranslationIn(BaseModel):
    locale: str
    name: str
    slug: str
    short_description: Optional[str] = None
    long_description: Optional[str] = None

class ProductComponentOptionIn(BaseModel):
    component_id: str
    option_group: str
    price_modifier: Decimal = Decimal("0")
    is_default: bool = False
    display_order: int = 0

class ProductCreate(BaseModel):
    sku: str
    base_price: Decimal
    vat_rate: Decimal = Decimal("21")
    is_active: bool = True
    is_customizable: bool = False
    base_production_days: int = 0
    weight_grams: Optional[int] = None
    translations: List[ProductTranslationIn] = Field(default_factory=list)
    component_options: List[ProductComponentOptionIn] = Field(default_factory=list)

class ProductUpdate(BaseModel):
    sku: Optional[str] = None
    base_price: Optional[Decimal] = None
    vat_rate: Optional[Decimal] = None
    is_active: Optional[bool] = None
    is_customizable: Optional[bool] = None
    base_production_days: Optional[int] = None
    weight_grams: Optional[int] = None

class CategoryTranslationIn(BaseModel):
    locale: str
    name: str
    slug: str
    short_description: Optional[str] = None

class CategoryCreate(BaseModel):
    parent_id: Optional[str] = None
    is_active: bool = True
    translations: List[CategoryTranslationIn] = Field(default_factory=list)

class CategoryUpdate(BaseModel):
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None

# Admin read-back

class ProductAdmin(BaseModel):
    id: str
    sku: str
    base_price: Decimal
    vat_rate: Decimal
    is_active: bool
    is_customizable: bool
    base_production_days: int = 0
    weight_grams: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class CategoryAdmin(BaseModel):
    id: str
    parent_id: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
