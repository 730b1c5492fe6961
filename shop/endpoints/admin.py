from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging

from shop.schemas.catalog import (
    CategoryAdmin,
    CategoryCreate,
    CategoryTranslationIn,
    CategoryUpdate,
    ProductAdmin,
    ProductComponentOptionIn,
    ProductCreate,
    ProductTranslationIn,
    ProductUpdate,
)
from shop.schemas.response import APIResponse
from shop.services.catalog_admin import CatalogAdminService
from shop.utils import deps

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(deps.require_admin)])

def _not_found(entity: str):
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{entity} not found")

def _conflict(db: Session, e: IntegrityError):
    db.rollback()
    logger.warning(f"Catalog write rejected: {e.orig}")
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU or slug already in use")


# Products

@router.post("/products", response_model=APIResponse[ProductAdmin], status_code=status.HTTP_201_CREATED)
async def create_product(
    *,
    product_in: ProductCreate,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    try:
        product = await admin_service.create_product(db, product_in)
    except IntegrityError as e:
        _conflict(db, e)
    return APIResponse(message="Product created successfully", data=ProductAdmin.model_validate(product))


@router.put("/products/{product_id}", response_model=APIResponse[ProductAdmin])
async def update_product(
    *,
    product_id: str,
    product_in: ProductUpdate,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    try:
        product = await admin_service.update_product(db, product_id, product_in)
    except IntegrityError as e:
        _conflict(db, e)
    if product is None:
        _not_found("Product")
    return APIResponse(message="Product updated successfully", data=ProductAdmin.model_validate(product))


@router.delete("/products/{product_id}", response_model=APIResponse[dict])
async def delete_product(
    *,
    product_id: str,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    if not await admin_service.delete_product(db, product_id):
        _not_found("Product")
    return APIResponse(message="Product deleted successfully", data={"id": product_id})


@router.put("/products/{product_id}/translations", response_model=APIResponse[ProductAdmin])
async def replace_product_translations(
    *,
    product_id: str,
    translations: List[ProductTranslationIn],
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    try:
        product = await admin_service.replace_product_translations(db, product_id, translations)
    except IntegrityError as e:
        _conflict(db, e)
    if product is None:
        _not_found("Product")
    return APIResponse(message="Product translations replaced", data=ProductAdmin.model_validate(product))


@router.put("/products/{product_id}/component-options", response_model=APIResponse[ProductAdmin])
async def replace_component_options(
    *,
    product_id: str,
    options: List[ProductComponentOptionIn],
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    product = await admin_service.replace_component_options(db, product_id, options)
    if product is None:
        _not_found("Product")
    return APIResponse(message="Product component options replaced", data=ProductAdmin.model_validate(product))


# Categories

@router.post("/categories", response_model=APIResponse[CategoryAdmin], status_code=status.HTTP_201_CREATED)
async def create_category(
    *,
    category_in: CategoryCreate,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    try:
        category = await admin_service.create_category(db, category_in)
    except IntegrityError as e:
        _conflict(db, e)
    return APIResponse(message="Category created successfully", data=CategoryAdmin.model_validate(category))


@router.put("/categories/{category_id}", response_model=APIResponse[CategoryAdmin])
async def update_category(
    *,
    category_id: str,
    category_in: CategoryUpdate,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    category = await admin_service.update_category(db, category_id, category_in)
    if category is None:
        _not_found("Category")
    return APIResponse(message="Category updated successfully", data=CategoryAdmin.model_validate(category))


@router.delete("/categories/{category_id}", response_model=APIResponse[dict])
async def delete_category(
    *,
    category_id: str,
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    if not await admin_service.delete_category(db, category_id):
        _not_found("Category")
    return APIResponse(message="Category deleted successfully", data={"id": category_id})


@router.put("/categories/{category_id}/translations", response_model=APIResponse[CategoryAdmin])
async def replace_category_translations(
    *,
    category_id: str,
    translations: List[CategoryTranslationIn],
    db: Session = Depends(deps.get_db),
    admin_service: CatalogAdminService = Depends(deps.get_catalog_admin_service),
):
    try:
        category = await admin_service.replace_category_translations(db, category_id, translations)
    except IntegrityError as e:
        _conflict(db, e)
    if category is None:
        _not_found("Category")
    return APIResponse(message="Category translations replaced", data=CategoryAdmin.model_validate(category))
