from typing import Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from shop.core.cache_config import CATEGORIES_DOMAIN, PRODUCTS_DOMAIN
from shop.core.config import settings
from shop.crud.category import category as category_crud
from shop.crud.product import product as product_crud
from shop.models.category import Category
from shop.models.product import Product
from shop.schemas.catalog import (
    CategoryCreate,
    CategoryTranslationIn,
    CategoryUpdate,
    ProductComponentOptionIn,
    ProductCreate,
    ProductTranslationIn,
    ProductUpdate,
)
from shop.services.cache_service import CatalogCacheInvalidator

logger = logging.getLogger(__name__)

class CatalogAdminService:
    """Catalog writes followed by the cache invalidation each write requires.

    The database write commits first; cache bookkeeping runs afterwards and
    cannot undo it.
    """

    def __init__(self, invalidator: CatalogCacheInvalidator, locales: List[str] = settings.SUPPORTED_LOCALES):
        self.invalidator = invalidator
        self.locales = list(locales)

    # Products

    async def create_product(self, db: Session, product_in: ProductCreate) -> Product:
        try:
            product = product_crud.create(db, obj_in=product_in)
        except Exception as e:
            logger.error(f"Product creation failed: {e}")
            raise

        await self._invalidate_product(product.id, {t.locale: t.slug for t in product_in.translations})
        return product

    async def update_product(self, db: Session, product_id: str, update_in: ProductUpdate) -> Optional[Product]:
        product = product_crud.get(db, id=product_id)
        if not product:
            return None

        product = product_crud.update(db, db_obj=product, obj_in=update_in)
        await self._invalidate_product(product_id, product_crud.get_slugs_by_locale(db, product_id=product_id))
        return product

    async def delete_product(self, db: Session, product_id: str) -> bool:
        slugs = product_crud.get_slugs_by_locale(db, product_id=product_id)
        if product_crud.delete(db, id=product_id) is None:
            return False

        await self._invalidate_product(product_id, slugs)
        return True

    async def replace_product_translations(
        self, db: Session, product_id: str, translations: List[ProductTranslationIn]
    ) -> Optional[Product]:
        product = product_crud.get(db, id=product_id)
        if not product:
            return None

        old_slugs = product_crud.get_slugs_by_locale(db, product_id=product_id)
        product = product_crud.replace_translations(db, db_obj=product, translations=translations)

        # Both the retired slugs and the new ones may have cached entries
        await self._invalidate_product(product_id, old_slugs, sweep_lists=False)
        await self._invalidate_product(product_id, {t.locale: t.slug for t in translations})
        return product

    async def replace_component_options(
        self, db: Session, product_id: str, options: List[ProductComponentOptionIn]
    ) -> Optional[Product]:
        product = product_crud.get(db, id=product_id)
        if not product:
            return None

        product = product_crud.replace_component_options(db, db_obj=product, options=options)
        # Options only show on detail pages
        await self._invalidate_product(
            product_id, product_crud.get_slugs_by_locale(db, product_id=product_id), sweep_lists=False
        )
        return product

    # Categories

    async def create_category(self, db: Session, category_in: CategoryCreate) -> Category:
        try:
            category = category_crud.create(db, obj_in=category_in)
        except Exception as e:
            logger.error(f"Category creation failed: {e}")
            raise

        await self._invalidate_category(category.id, {t.locale: t.slug for t in category_in.translations})
        return category

    async def update_category(self, db: Session, category_id: str, update_in: CategoryUpdate) -> Optional[Category]:
        category = category_crud.get(db, id=category_id)
        if not category:
            return None

        category = category_crud.update(db, db_obj=category, obj_in=update_in)
        await self._invalidate_category(category_id, category_crud.get_slugs_by_locale(db, category_id=category_id))
        return category

    async def delete_category(self, db: Session, category_id: str) -> bool:
        slugs = category_crud.get_slugs_by_locale(db, category_id=category_id)
        if category_crud.delete(db, id=category_id) is None:
            return False

        await self._invalidate_category(category_id, slugs)
        return True

    async def replace_category_translations(
        self, db: Session, category_id: str, translations: List[CategoryTranslationIn]
    ) -> Optional[Category]:
        category = category_crud.get(db, id=category_id)
        if not category:
            return None

        old_slugs = category_crud.get_slugs_by_locale(db, category_id=category_id)
        category = category_crud.replace_translations(db, db_obj=category, translations=translations)

        await self._invalidate_category(category_id, old_slugs, sweep_lists=False)
        await self._invalidate_category(category_id, {t.locale: t.slug for t in translations})
        return category

    async def _invalidate_product(self, product_id: str, slugs: Dict[str, str], sweep_lists: bool = True):
        await self.invalidator.invalidate_entity(
            PRODUCTS_DOMAIN, product_id, slugs, locales=self.locales, sweep_lists=sweep_lists
        )

    async def _invalidate_category(self, category_id: str, slugs: Dict[str, str], sweep_lists: bool = True):
        await self.invalidator.invalidate_entity(
            CATEGORIES_DOMAIN, category_id, slugs, locales=self.locales, sweep_lists=sweep_lists
        )
