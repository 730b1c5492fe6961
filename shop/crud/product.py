from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Query, Session
from shop.crud.base import CRUDBase, PaginatedResponse
from shop.models.category import Category, CategoryTranslation
from shop.models.product import Product, ProductComponentOption, ProductTranslation
from shop.schemas.cart import PricedProduct
from shop.schemas.catalog import (
    ProductComponentOption as ProductComponentOptionSchema,
    ProductComponentOptionIn,
    ProductCreate,
    ProductDetail,
    ProductFilter,
    ProductListItem,
    ProductTranslationIn,
    ProductUpdate,
)

class CRUDProduct(CRUDBase[Product, ProductCreate, ProductUpdate]):

    def create(self, db: Session, *, obj_in: ProductCreate, commit: bool = True) -> Product:
        db_obj = Product(**obj_in.model_dump(exclude={"translations", "component_options"}))
        db_obj.translations = [ProductTranslation(**t.model_dump()) for t in obj_in.translations]
        db_obj.component_options = [ProductComponentOption(**o.model_dump()) for o in obj_in.component_options]
        db.add(db_obj)
        db.flush()
        if commit:
            db.commit()
        db.refresh(db_obj)
        return db_obj

    def replace_translations(self, db: Session, *, db_obj: Product, translations: List[ProductTranslationIn]) -> Product:
        children = [ProductTranslation(**t.model_dump()) for t in translations]
        return self.replace_children(db, db_obj=db_obj, relation="translations", children=children)

    def replace_component_options(self, db: Session, *, db_obj: Product, options: List[ProductComponentOptionIn]) -> Product:
        children = [ProductComponentOption(**o.model_dump()) for o in options]
        return self.replace_children(db, db_obj=db_obj, relation="component_options", children=children)

    def get_slugs_by_locale(self, db: Session, *, product_id: str) -> Dict[str, str]:
        rows = db.query(ProductTranslation.locale, ProductTranslation.slug)\
            .filter(ProductTranslation.product_id == product_id)\
            .all()
        return {locale: slug for locale, slug in rows}

    def _translated(self, db: Session, locale: str) -> Query:
        return db.query(Product, ProductTranslation)\
            .join(ProductTranslation, ProductTranslation.product_id == Product.id)\
            .filter(ProductTranslation.locale == locale)

    def get_products(self, db: Session, *, filter: ProductFilter) -> PaginatedResponse[ProductListItem]:
        query = self._translated(db, filter.locale)

        if filter.is_active is not None:
            query = query.filter(Product.is_active == filter.is_active)
        if filter.is_customizable is not None:
            query = query.filter(Product.is_customizable == filter.is_customizable)
        if filter.min_price is not None:
            query = query.filter(Product.base_price >= filter.min_price)
        if filter.max_price is not None:
            query = query.filter(Product.base_price <= filter.max_price)

        if filter.category_slug:
            query = query.filter(Product.categories.any(
                Category.translations.any(and_(
                    CategoryTranslation.locale == filter.locale,
                    CategoryTranslation.slug == filter.category_slug,
                ))
            ))

        if filter.search and filter.search.strip():
            pattern = f"%{filter.search.strip()}%"
            query = query.filter(
                ProductTranslation.name.ilike(pattern) | ProductTranslation.short_description.ilike(pattern)
            )

        sort_by = (filter.sort_by or "").lower()
        if sort_by == "price":
            order = Product.base_price.desc() if filter.sort_descending else Product.base_price.asc()
        elif sort_by == "name":
            order = ProductTranslation.name.desc() if filter.sort_descending else ProductTranslation.name.asc()
        else:
            order = Product.created_at.desc()
        query = query.order_by(order, Product.id)

        total = query.count()
        rows = query.offset((filter.page - 1) * filter.page_size).limit(filter.page_size).all()

        items = [self._to_list_item(product, translation) for product, translation in rows]
        return PaginatedResponse[ProductListItem].build(items, total, filter.page, filter.page_size)

    def get_detail_by_id(self, db: Session, *, id: str, locale: str) -> Optional[ProductDetail]:
        row = self._translated(db, locale).filter(Product.id == id).first()
        return self._to_detail(*row) if row else None

    def get_detail_by_slug(self, db: Session, *, slug: str, locale: str) -> Optional[ProductDetail]:
        row = self._translated(db, locale).filter(ProductTranslation.slug == slug).first()
        return self._to_detail(*row) if row else None

    def get_priced_products(self, db: Session, *, ids: Iterable[str], locale: str) -> Dict[str, PricedProduct]:
        ids = list(ids)
        if not ids:
            return {}

        rows = db.query(Product, ProductTranslation)\
            .outerjoin(ProductTranslation, and_(
                ProductTranslation.product_id == Product.id,
                ProductTranslation.locale == locale,
            ))\
            .filter(Product.id.in_(ids))\
            .all()

        return {
            product.id: PricedProduct(
                product_id=product.id,
                sku=product.sku,
                name=translation.name if translation else product.sku,
                unit_price=Decimal(product.base_price),
                vat_rate=Decimal(product.vat_rate),
                is_purchasable=bool(product.is_active),
            )
            for product, translation in rows
        }

    def get_component_price_deltas(
        self, db: Session, *, product_id: str, component_ids: Iterable[str]
    ) -> Dict[str, Decimal]:
        component_ids = list(component_ids)
        if not component_ids:
            return {}

        rows = db.query(ProductComponentOption.component_id, ProductComponentOption.price_modifier)\
            .filter(
                ProductComponentOption.product_id == product_id,
                ProductComponentOption.component_id.in_(component_ids),
            )\
            .all()
        # A component offered in several option groups contributes every delta
        deltas: Dict[str, Decimal] = {}
        for component_id, delta in rows:
            deltas[component_id] = deltas.get(component_id, Decimal("0")) + Decimal(delta)
        return deltas

    @staticmethod
    def _to_list_item(product: Product, translation: ProductTranslation) -> ProductListItem:
        return ProductListItem(
            id=product.id,
            sku=product.sku,
            name=translation.name,
            slug=translation.slug,
            short_description=translation.short_description,
            base_price=Decimal(product.base_price),
            vat_rate=Decimal(product.vat_rate),
            is_active=product.is_active,
            is_customizable=product.is_customizable,
        )

    @staticmethod
    def _to_detail(product: Product, translation: ProductTranslation) -> ProductDetail:
        return ProductDetail(
            **CRUDProduct._to_list_item(product, translation).model_dump(),
            long_description=translation.long_description,
            base_production_days=product.base_production_days,
            weight_grams=product.weight_grams,
            created_at=product.created_at,
            component_options=[
                ProductComponentOptionSchema.model_validate(option)
                for option in product.component_options
            ],
        )

product = CRUDProduct(Product)
