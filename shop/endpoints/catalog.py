from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from shop.core.config import settings
from shop.crud.base import PaginatedResponse
from shop.schemas.catalog import (
    CategoryDetail,
    CategoryFilter,
    CategoryListItem,
    ProductDetail,
    ProductFilter,
    ProductListItem,
)
from shop.schemas.response import APIResponse
from shop.services.catalog_cache import CachedCategoryRepository, CachedProductRepository
from shop.utils import deps

products_router = APIRouter()
categories_router = APIRouter()

def _mark_cache(response: Response, repository):
    if repository.last_status:
        response.headers["X-Cache"] = repository.last_status


@products_router.get("", response_model=APIResponse[PaginatedResponse[ProductListItem]])
async def list_products(
    response: Response,
    search: Optional[str] = None,
    category_slug: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    is_customizable: Optional[bool] = None,
    locale: str = Query(settings.DEFAULT_LOCALE),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=50),
    sort_by: Optional[str] = None,
    sort_descending: bool = False,
    repository: CachedProductRepository = Depends(deps.get_product_repository),
):
    filter = ProductFilter(
        search=search,
        category_slug=category_slug,
        min_price=min_price,
        max_price=max_price,
        is_customizable=is_customizable,
        locale=locale,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    products = await repository.get_list(filter)
    _mark_cache(response, repository)
    return APIResponse(message="Products retrieved successfully", data=products)


@products_router.get("/slug/{slug}", response_model=APIResponse[ProductDetail])
async def get_product_by_slug(
    slug: str,
    response: Response,
    locale: str = Query(settings.DEFAULT_LOCALE),
    repository: CachedProductRepository = Depends(deps.get_product_repository),
):
    product = await repository.get_by_slug(slug, locale)
    _mark_cache(response, repository)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return APIResponse(message="Product retrieved successfully", data=product)


@products_router.get("/{product_id}", response_model=APIResponse[ProductDetail])
async def get_product(
    product_id: str,
    response: Response,
    locale: str = Query(settings.DEFAULT_LOCALE),
    repository: CachedProductRepository = Depends(deps.get_product_repository),
):
    product = await repository.get_by_id(product_id, locale)
    _mark_cache(response, repository)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return APIResponse(message="Product retrieved successfully", data=product)


@categories_router.get("", response_model=APIResponse[PaginatedResponse[CategoryListItem]])
async def list_categories(
    response: Response,
    search: Optional[str] = None,
    parent_id: Optional[str] = None,
    locale: str = Query(settings.DEFAULT_LOCALE),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=50),
    sort_by: Optional[str] = None,
    sort_descending: bool = False,
    repository: CachedCategoryRepository = Depends(deps.get_category_repository),
):
    filter = CategoryFilter(
        search=search,
        parent_id=parent_id,
        locale=locale,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_descending=sort_descending,
    )
    categories = await repository.get_list(filter)
    _mark_cache(response, repository)
    return APIResponse(message="Categories retrieved successfully", data=categories)


@categories_router.get("/slug/{slug}", response_model=APIResponse[CategoryDetail])
async def get_category_by_slug(
    slug: str,
    response: Response,
    locale: str = Query(settings.DEFAULT_LOCALE),
    repository: CachedCategoryRepository = Depends(deps.get_category_repository),
):
    category = await repository.get_by_slug(slug, locale)
    _mark_cache(response, repository)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return APIResponse(message="Category retrieved successfully", data=category)


@categories_router.get("/{category_id}", response_model=APIResponse[CategoryDetail])
async def get_category(
    category_id: str,
    response: Response,
    locale: str = Query(settings.DEFAULT_LOCALE),
    repository: CachedCategoryRepository = Depends(deps.get_category_repository),
):
    category = await repository.get_by_id(category_id, locale)
    _mark_cache(response, repository)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return APIResponse(message="Category retrieved successfully", data=category)
