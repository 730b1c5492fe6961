from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional
import logging

from shop.core.cache_config import INVALIDATION_PATTERNS, PRODUCTS_DOMAIN, CATEGORIES_DOMAIN
from shop.core.store import KeyedStore
from shop.services.catalog_cache import detail_key_by_id, detail_key_by_slug

logger = logging.getLogger(__name__)

SWEEP_PATTERNS = {
    PRODUCTS_DOMAIN: INVALIDATION_PATTERNS["product_write"],
    CATEGORIES_DOMAIN: INVALIDATION_PATTERNS["category_write"],
}

class ListCacheSweeper(ABC):
    """Finds and drops every cached list page of a domain."""

    @abstractmethod
    async def sweep(self, domain: str) -> int:
        pass

class PatternScanSweeper(ListCacheSweeper):
    """Scans the keyspace for the domain's list patterns.

    Best effort and O(keyspace): keys written during the scan can survive it.
    """

    def __init__(self, store: KeyedStore):
        self.store = store

    async def sweep(self, domain: str) -> int:
        deleted = 0
        for pattern in SWEEP_PATTERNS.get(domain, [f"{domain}:list:*"]):
            keys = await self.store.scan_keys(pattern)
            if keys:
                deleted += await self.store.delete_keys(*keys)
            logger.info(f"Invalidated {len(keys)} cache entries for pattern {pattern}")
        return deleted

class CatalogCacheInvalidator:
    """Cache bookkeeping for catalog writes.

    Detail entries are deleted by exact key for every locale touched. List
    entries are swept; a failed sweep is only logged, since stale pages
    expire within the list TTL anyway.
    """

    def __init__(self, store: KeyedStore, sweeper: Optional[ListCacheSweeper] = None):
        self.store = store
        self.sweeper = sweeper or PatternScanSweeper(store)

    async def invalidate_detail(
        self, domain: str, locale: str, *, id: Optional[str] = None, slug: Optional[str] = None
    ) -> None:
        keys = []
        if id is not None:
            keys.append(detail_key_by_id(domain, id, locale))
        if slug is not None:
            keys.append(detail_key_by_slug(domain, slug, locale))
        if keys:
            await self.store.delete_keys(*keys)
            logger.debug(f"Invalidated detail cache keys {keys}")

    async def sweep_list_cache(self, domain: str) -> int:
        try:
            return await self.sweeper.sweep(domain)
        except Exception as e:
            logger.warning(f"List cache sweep for {domain} failed, entries will expire by TTL: {e}")
            return 0

    async def invalidate_entity(
        self,
        domain: str,
        id: str,
        slugs_by_locale: Dict[str, str],
        *,
        locales: Iterable[str] = (),
        sweep_lists: bool = True,
    ) -> None:
        """Drop every detail key of one entity, then sweep the domain's lists.

        ``locales`` adds locales that have no slug (any more), so their
        id-keyed entries still get dropped.
        """
        for locale in set(slugs_by_locale) | set(locales):
            await self.invalidate_detail(domain, locale, id=id, slug=slugs_by_locale.get(locale))

        if sweep_lists:
            await self.sweep_list_cache(domain)

        logger.info(f"Invalidated cache for {domain} {id}")
