from typing import Dict, List, Optional
from sqlalchemy.orm import Query, Session
from shop.crud.base import CRUDBase, PaginatedResponse
from shop.models.category import Category, CategoryTranslation
from shop.schemas.catalog import (
    CategoryCreate,
    CategoryDetail,
    CategoryFilter,
    CategoryListItem,
    CategoryTranslationIn,
    CategoryUpdate,
)

class CRUDCategory(CRUDBase[Category, CategoryCreate, CategoryUpdate]):

    def create(self, db: Session, *, obj_in: CategoryCreate, commit: bool = True) -> Category:
        db_obj = Category(**obj_in.model_dump(exclude={"translations"}))
        db_obj.translations = [CategoryTranslation(**t.model_dump()) for t in obj_in.translations]
        db.add(db_obj)
        db.flush()
        if commit:
            db.commit()
        db.refresh(db_obj)
        return db_obj

    def replace_translations(self, db: Session, *, db_obj: Category, translations: List[CategoryTranslationIn]) -> Category:
        children = [CategoryTranslation(**t.model_dump()) for t in translations]
        return self.replace_children(db, db_obj=db_obj, relation="translations", children=children)

    def get_slugs_by_locale(self, db: Session, *, category_id: str) -> Dict[str, str]:
        rows = db.query(CategoryTranslation.locale, CategoryTranslation.slug)\
            .filter(CategoryTranslation.category_id == category_id)\
            .all()
        return {locale: slug for locale, slug in rows}

    def _translated(self, db: Session, locale: str) -> Query:
        return db.query(Category, CategoryTranslation)\
            .join(CategoryTranslation, CategoryTranslation.category_id == Category.id)\
            .filter(CategoryTranslation.locale == locale)

    def get_categories(self, db: Session, *, filter: CategoryFilter) -> PaginatedResponse[CategoryListItem]:
        query = self._translated(db, filter.locale)

        if filter.is_active is not None:
            query = query.filter(Category.is_active == filter.is_active)
        if filter.parent_id:
            query = query.filter(Category.parent_id == filter.parent_id)
        if filter.search and filter.search.strip():
            pattern = f"%{filter.search.strip()}%"
            query = query.filter(
                CategoryTranslation.name.ilike(pattern) | CategoryTranslation.short_description.ilike(pattern)
            )

        if (filter.sort_by or "").lower() == "newest":
            order = Category.created_at.asc() if not filter.sort_descending else Category.created_at.desc()
        else:
            order = CategoryTranslation.name.desc() if filter.sort_descending else CategoryTranslation.name.asc()
        query = query.order_by(order, Category.id)

        total = query.count()
        rows = query.offset((filter.page - 1) * filter.page_size).limit(filter.page_size).all()

        items = [self._to_list_item(category, translation) for category, translation in rows]
        return PaginatedResponse[CategoryListItem].build(items, total, filter.page, filter.page_size)

    def get_detail_by_id(self, db: Session, *, id: str, locale: str) -> Optional[CategoryDetail]:
        row = self._translated(db, locale).filter(Category.id == id).first()
        return self._to_detail(*row) if row else None

    def get_detail_by_slug(self, db: Session, *, slug: str, locale: str) -> Optional[CategoryDetail]:
        row = self._translated(db, locale).filter(CategoryTranslation.slug == slug).first()
        return self._to_detail(*row) if row else None

    @staticmethod
    def _to_list_item(category: Category, translation: CategoryTranslation) -> CategoryListItem:
        return CategoryListItem(
            id=category.id,
            parent_id=category.parent_id,
            name=translation.name,
            slug=translation.slug,
            short_description=translation.short_description,
            is_active=category.is_active,
        )

    @staticmethod
    def _to_detail(category: Category, translation: CategoryTranslation) -> CategoryDetail:
        return CategoryDetail(
            **CRUDCategory._to_list_item(category, translation).model_dump(),
            created_at=category.created_at,
        )

category = CRUDCategory(Category)
