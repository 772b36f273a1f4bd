"""
Product Routes

Thin HTTP surface over ProductService. Request bodies are validated by the
pydantic models; domain errors (404, 409, 400, 500) are raised as
CatalogError subclasses and rendered by the registered exception handler.
"""

from fastapi import APIRouter, Query, Response, status

from src.application.api.dependencies import ProductServiceDep, SettingsDep, UserIdDep
from src.catalog.models.product import (
    Product,
    ProductCreate,
    ProductListResponse,
    ProductQuery,
    ProductUpdate,
)
from src.core.exceptions import NotFoundError

router = APIRouter(prefix="/products", tags=["Products"])


@router.post("", response_model=Product, status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreate, service: ProductServiceDep, user_id: UserIdDep):
    return await service.create_product(payload, user_id=user_id)


@router.get("", response_model=ProductListResponse)
async def list_products(
    service: ProductServiceDep,
    settings: SettingsDep,
    page: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    category: str | None = Query(default=None),
    name: str | None = Query(default=None),
):
    query = ProductQuery(
        page=page or settings.PRODUCT_DEFAULT_PAGE,
        limit=limit or settings.PRODUCT_DEFAULT_LIMIT,
        category=category or None,
        name=name or None,
    )
    return await service.list_products(query)


# Declared before /{product_id} so "search" is not parsed as an id
@router.get("/search", response_model=ProductListResponse)
async def search_products(
    service: ProductServiceDep,
    q: str = Query(..., description="Search term (matched against product names)"),
    page: int | None = Query(default=None, ge=1),
    limit: int | None = Query(default=None, ge=1),
    category: str | None = Query(default=None),
):
    return await service.search_products(q, page=page, limit=limit, category=category)


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: int, service: ProductServiceDep, user_id: UserIdDep):
    product = await service.get_product(product_id, user_id=user_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


@router.put("/{product_id}", response_model=Product)
async def update_product(
    product_id: int, payload: ProductUpdate, service: ProductServiceDep, user_id: UserIdDep
):
    product = await service.update_product(product_id, payload, user_id=user_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(product_id: int, service: ProductServiceDep, user_id: UserIdDep):
    deleted = await service.delete_product(product_id, user_id=user_id)
    if not deleted:
        raise NotFoundError("Product", product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
