from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from shop.core.cache_config import CART_KEYS
from shop.core.config import settings
from shop.core.database import get_db
from shop.core.store import KeyedStore
from shop.services.cache_service import CatalogCacheInvalidator
from shop.services.cart import CartService
from shop.services.catalog import SqlCatalogRepository, SqlCategoryReadRepository, SqlProductReadRepository
from shop.services.catalog_admin import CatalogAdminService
from shop.services.catalog_cache import CachedCategoryRepository, CachedProductRepository

def get_store(request: Request) -> KeyedStore:
    return request.app.state.store

def get_current_user_id(request: Request) -> Optional[str]:
    """User id set by the authentication layer in front of the shop, if any."""
    return getattr(request.state, "user_id", None)

def resolve_cart_key(
    request: Request,
    user_id: Optional[str] = Depends(get_current_user_id),
) -> str:
    if user_id:
        return CART_KEYS["user_cart"].format(user_id)

    session_id = request.headers.get(settings.CART_SESSION_HEADER)
    if session_id:
        return CART_KEYS["session_cart"].format(session_id)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Either an authenticated user or a {settings.CART_SESSION_HEADER} header is required",
    )

def get_cart_service(
    db: Session = Depends(get_db),
    store: KeyedStore = Depends(get_store),
) -> CartService:
    return CartService(store, SqlCatalogRepository(db))

def get_product_repository(
    db: Session = Depends(get_db),
    store: KeyedStore = Depends(get_store),
) -> CachedProductRepository:
    return CachedProductRepository(SqlProductReadRepository(db), store, enabled=settings.CACHE_ENABLED)

def get_category_repository(
    db: Session = Depends(get_db),
    store: KeyedStore = Depends(get_store),
) -> CachedCategoryRepository:
    return CachedCategoryRepository(SqlCategoryReadRepository(db), store, enabled=settings.CACHE_ENABLED)

def require_admin(request: Request) -> None:
    """The authentication layer in front of the shop flags administrators on request.state."""
    if not getattr(request.state, "is_admin", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator access required")

def get_catalog_admin_service(store: KeyedStore = Depends(get_store)) -> CatalogAdminService:
    return CatalogAdminService(CatalogCacheInvalidator(store))
