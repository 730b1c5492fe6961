import hashlib
import json
from typing import Generic, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError

from shop.core.cache_config import CACHE_KEYS, CACHE_TTL, CATEGORIES_DOMAIN, PRODUCTS_DOMAIN
from shop.core.store import KeyedStore
from shop.crud.base import PaginatedResponse
from shop.schemas.catalog import (
    CategoryDetail,
    CategoryFilter,
    CategoryListItem,
    ProductDetail,
    ProductFilter,
    ProductListItem,
)
from shop.services.catalog import CatalogReadRepository

logger = logging.getLogger(__name__)

FilterT = TypeVar("FilterT", bound=BaseModel)
ListItemT = TypeVar("ListItemT", bound=BaseModel)
DetailT = TypeVar("DetailT", bound=BaseModel)
ModelT = TypeVar("ModelT", bound=BaseModel)

def build_list_cache_key(domain: str, filter: BaseModel) -> str:
    # Sorted JSON of every field, so equal filters map to one key and any changed field to another
    canonical = json.dumps(filter.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    filter_hash = hashlib.md5(canonical.encode()).hexdigest()
    return CACHE_KEYS["list"].format(domain, filter_hash)

def detail_key_by_id(domain: str, id: str, locale: str) -> str:
    return CACHE_KEYS["detail_by_id"].format(domain, id, locale)

def detail_key_by_slug(domain: str, slug: str, locale: str) -> str:
    return CACHE_KEYS["detail_by_slug"].format(domain, slug, locale)

class ReadThroughCache(Generic[FilterT, ListItemT, DetailT]):
    """Cache-aside wrapper around one catalog read repository.

    Hits are served from the store without touching the inner repository.
    Misses go to the repository and the result is written back with the
    domain's TTL, except for ``None`` results, which are never cached.
    Writes never go through here; see ``CatalogCacheInvalidator``.
    """

    def __init__(
        self,
        inner: CatalogReadRepository,
        store: KeyedStore,
        domain: str,
        list_model: Type[PaginatedResponse],
        detail_model: Type[DetailT],
        list_ttl: int,
        detail_ttl: int,
        enabled: bool = True,
    ):
        self.inner = inner
        self.store = store
        self.domain = domain
        self.list_model = list_model
        self.detail_model = detail_model
        self.list_ttl = list_ttl
        self.detail_ttl = detail_ttl
        self.enabled = enabled
        # HIT, MISS or BYPASS for the most recent read
        self.last_status: Optional[str] = None

    async def get_list(self, filter: FilterT) -> PaginatedResponse[ListItemT]:
        if not self.enabled:
            self.last_status = "BYPASS"
            return await self.inner.get_list(filter)

        cache_key = build_list_cache_key(self.domain, filter)
        cached = await self._read(cache_key, self.list_model)
        if cached is not None:
            logger.debug(f"Cache HIT for {self.domain} list: {cache_key}")
            self.last_status = "HIT"
            return cached

        logger.debug(f"Cache MISS for {self.domain} list: {cache_key}")
        self.last_status = "MISS"
        result = await self.inner.get_list(filter)
        await self.store.set_value(cache_key, result.model_dump_json(), self.list_ttl)
        return result

    async def get_by_id(self, id: str, locale: str) -> Optional[DetailT]:
        return await self._get_detail(
            detail_key_by_id(self.domain, id, locale),
            lambda: self.inner.get_by_id(id, locale),
        )

    async def get_by_slug(self, slug: str, locale: str) -> Optional[DetailT]:
        return await self._get_detail(
            detail_key_by_slug(self.domain, slug, locale),
            lambda: self.inner.get_by_slug(slug, locale),
        )

    async def _get_detail(self, cache_key: str, load) -> Optional[DetailT]:
        if not self.enabled:
            self.last_status = "BYPASS"
            return await load()

        cached = await self._read(cache_key, self.detail_model)
        if cached is not None:
            logger.debug(f"Cache HIT for {self.domain} detail: {cache_key}")
            self.last_status = "HIT"
            return cached

        logger.debug(f"Cache MISS for {self.domain} detail: {cache_key}")
        self.last_status = "MISS"
        result = await load()
        if result is not None:
            await self.store.set_value(cache_key, result.model_dump_json(), self.detail_ttl)
        return result

    async def _read(self, cache_key: str, model: Type[ModelT]) -> Optional[ModelT]:
        payload = await self.store.get_value(cache_key)
        if payload is None:
            return None
        try:
            return model.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {cache_key}: {e}")
            return None

class CachedProductRepository(ReadThroughCache[ProductFilter, ProductListItem, ProductDetail]):

    def __init__(self, inner: CatalogReadRepository, store: KeyedStore, enabled: bool = True):
        super().__init__(
            inner,
            store,
            domain=PRODUCTS_DOMAIN,
            list_model=PaginatedResponse[ProductListItem],
            detail_model=ProductDetail,
            list_ttl=CACHE_TTL["product_list"],
            detail_ttl=CACHE_TTL["product_detail"],
            enabled=enabled,
        )

class CachedCategoryRepository(ReadThroughCache[CategoryFilter, CategoryListItem, CategoryDetail]):

    def __init__(self, inner: CatalogReadRepository, store: KeyedStore, enabled: bool = True):
        super().__init__(
            inner,
            store,
            domain=CATEGORIES_DOMAIN,
            list_model=PaginatedResponse[CategoryListItem],
            detail_model=CategoryDetail,
            list_ttl=CACHE_TTL["category_list"],
            detail_ttl=CACHE_TTL["category_detail"],
            enabled=enabled,
        )
