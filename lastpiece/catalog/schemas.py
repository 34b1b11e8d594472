from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime

from lastpiece.shared.security_config import sanitize_input
from lastpiece.shared.utils import APIModel
from lastpiece.catalog.models import ProductStatus

class CategoryCreate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    icon: Optional[str] = None
    parent: Optional[str] = None
    order: int = 0

    @field_validator('name', 'description')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class CategoryUpdate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    icon: Optional[str] = None
    parent: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None

class CategoryResponse(APIModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    icon: Optional[str] = None
    parent: Optional[str] = None
    level: int = 0
    order: int = 0
    is_active: bool = True
    product_count: int = 0

class ProductImage(APIModel):
    url: Optional[str] = None
    alt: Optional[str] = None
    is_primary: bool = False

class ProductCreate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    images: List[ProductImage] = []
    thumbnail: Optional[str] = None
    stock: int = Field(1, ge=0)
    brand: Optional[str] = None
    materials: List[str] = []
    tags: List[str] = []
    dimensions: Optional[dict] = None
    weight: Optional[dict] = None
    promotion: Optional[dict] = None
    seo: Optional[dict] = None

    @field_validator('name', 'description', 'short_description', 'brand')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ProductUpdate(APIModel):
    name: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    images: Optional[List[ProductImage]] = None
    thumbnail: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None
    brand: Optional[str] = None
    materials: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    dimensions: Optional[dict] = None
    weight: Optional[dict] = None
    promotion: Optional[dict] = None
    seo: Optional[dict] = None
    status: Optional[ProductStatus] = None

class Rating(APIModel):
    average: float = 0
    count: int = 0

class ProductResponse(APIModel):
    id: str
    name: str
    slug: str
    sku: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    category: Optional[str] = None
    images: List[ProductImage] = []
    thumbnail: Optional[str] = None
    stock: int = 0
    is_available: bool = True
    brand: Optional[str] = None
    materials: List[str] = []
    tags: List[str] = []
    dimensions: Optional[dict] = None
    weight: Optional[dict] = None
    promotion: Optional[dict] = None
    seo: Optional[dict] = None
    rating: Rating = Rating()
    view_count: int = 0
    wishlist_count: int = 0
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProductSummary(APIModel):
    """Product fields embedded in cart and wishlist line items."""
    id: str
    name: str
    slug: Optional[str] = None
    sku: Optional[str] = None
    price: float
    thumbnail: Optional[str] = None
    images: List[ProductImage] = []
    stock: int = 0
    status: Optional[str] = None
