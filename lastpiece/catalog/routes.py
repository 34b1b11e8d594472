from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional, List

from lastpiece.shared.auth import require_admin
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.security_config import limiter, search_limit
from lastpiece.shared.utils import SuccessResponse, PaginatedResponse

from lastpiece.catalog import service
from lastpiece.catalog.schemas import (
    ProductCreate, ProductUpdate, ProductResponse,
    CategoryCreate, CategoryUpdate, CategoryResponse,
)

router = APIRouter(prefix="/api/products", tags=["products"])
category_router = APIRouter(prefix="/api/categories", tags=["categories"])

# --- Products ---

@router.get("", response_model=PaginatedResponse[List[ProductResponse]])
async def list_products(
    page: int = Query(1),
    limit: int = Query(10),
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = "-createdAt",
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    db: Database = Depends(require_db),
):
    products, pagination = await service.list_products(
        db, page, limit, category, search, sort, min_price, max_price
    )
    return PaginatedResponse(data=products, pagination=pagination)

@router.get("/search", response_model=SuccessResponse[List[ProductResponse]])
@limiter.limit(search_limit)
async def search_products(
    request: Request,
    query: Optional[str] = None,
    limit: int = Query(10),
    db: Database = Depends(require_db),
):
    return SuccessResponse(data=await service.search_products(db, query, limit))

@router.get("/{slug}", response_model=SuccessResponse[ProductResponse])
async def get_product(slug: str, db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_product(db, slug))

@router.get("/{product_id}/related", response_model=SuccessResponse[List[ProductResponse]])
async def related_products(product_id: str, limit: int = Query(4), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.related_products(db, product_id, limit))

@router.post("", response_model=SuccessResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    created = await service.create_product(db, product, user["id"])
    return SuccessResponse(data=created, message="Product created successfully")

@router.put("/{product_id}", response_model=SuccessResponse[ProductResponse])
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    updated = await service.update_product(db, product_id, product_update, user["id"])
    return SuccessResponse(data=updated, message="Product updated successfully")

@router.delete("/{product_id}", response_model=SuccessResponse[dict])
async def delete_product(
    product_id: str,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    await service.delete_product(db, product_id)
    return SuccessResponse(message="Product deleted successfully")

# --- Categories ---

@category_router.get("", response_model=SuccessResponse[List[CategoryResponse]])
async def list_categories(db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.list_categories(db))

@category_router.get("/{slug}", response_model=SuccessResponse[CategoryResponse])
async def get_category(slug: str, db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_category(db, slug))

@category_router.post("", response_model=SuccessResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(
    category: CategoryCreate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    created = await service.create_category(db, category)
    return SuccessResponse(data=created, message="Category created successfully")

@category_router.put("/{category_id}", response_model=SuccessResponse[CategoryResponse])
async def update_category(
    category_id: str,
    category: CategoryUpdate,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    updated = await service.update_category(db, category_id, category)
    return SuccessResponse(data=updated, message="Category updated successfully")

@category_router.delete("/{category_id}", response_model=SuccessResponse[dict])
async def delete_category(
    category_id: str,
    user: dict = Depends(require_admin),
    db: Database = Depends(require_db),
):
    await service.delete_category(db, category_id)
    return SuccessResponse(message="Category deleted successfully")
