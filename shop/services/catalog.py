from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, TypeVar
from sqlalchemy.orm import Session

from shop.crud.base import PaginatedResponse
from shop.crud.category import category as category_crud
from shop.crud.product import product as product_crud
from shop.schemas.cart import PricedProduct
from shop.schemas.catalog import (
    CategoryDetail,
    CategoryFilter,
    CategoryListItem,
    ProductDetail,
    ProductFilter,
    ProductListItem,
)

FilterT = TypeVar("FilterT")
ListItemT = TypeVar("ListItemT")
DetailT = TypeVar("DetailT")

class CatalogRepository(Protocol):
    """Pricing lookups the cart depends on."""

    async def get_priced_products(self, ids: Iterable[str], locale: str) -> Dict[str, PricedProduct]:
        ...

    async def get_component_price_deltas(self, product_id: str, component_ids: Iterable[str]) -> Dict[str, Decimal]:
        ...

class CatalogReadRepository(Protocol[FilterT, ListItemT, DetailT]):
    """Read side of one catalog domain; what ReadThroughCache wraps."""

    async def get_list(self, filter: FilterT) -> PaginatedResponse[ListItemT]:
        ...

    async def get_by_id(self, id: str, locale: str) -> Optional[DetailT]:
        ...

    async def get_by_slug(self, slug: str, locale: str) -> Optional[DetailT]:
        ...

class SqlCatalogRepository:

    def __init__(self, db: Session):
        self.db = db

    async def get_priced_products(self, ids: Iterable[str], locale: str) -> Dict[str, PricedProduct]:
        return product_crud.get_priced_products(self.db, ids=ids, locale=locale)

    async def get_component_price_deltas(self, product_id: str, component_ids: Iterable[str]) -> Dict[str, Decimal]:
        return product_crud.get_component_price_deltas(self.db, product_id=product_id, component_ids=component_ids)

class SqlProductReadRepository:

    def __init__(self, db: Session):
        self.db = db

    async def get_list(self, filter: ProductFilter) -> PaginatedResponse[ProductListItem]:
        return product_crud.get_products(self.db, filter=filter)

    async def get_by_id(self, id: str, locale: str) -> Optional[ProductDetail]:
        return product_crud.get_detail_by_id(self.db, id=id, locale=locale)

    async def get_by_slug(self, slug: str, locale: str) -> Optional[ProductDetail]:
        return product_crud.get_detail_by_slug(self.db, slug=slug, locale=locale)

class SqlCategoryReadRepository:

    def __init__(self, db: Session):
        self.db = db

    async def get_list(self, filter: CategoryFilter) -> PaginatedResponse[CategoryListItem]:
        return category_crud.get_categories(self.db, filter=filter)

    async def get_by_id(self, id: str, locale: str) -> Optional[CategoryDetail]:
        return category_crud.get_detail_by_id(self.db, id=id, locale=locale)

    async def get_by_slug(self, slug: str, locale: str) -> Optional[CategoryDetail]:
        return category_crud.get_detail_by_slug(self.db, slug=slug, locale=locale)
