from datetime import datetime
from typing import Optional, List, Literal
from pydantic import BaseModel, ConfigDict, Field

ProductStatus = Literal["draft", "active", "inactive", "discontinued"]

# statuses shown in the storefront; new products start as draft
VISIBLE_STATUSES = ["active", "draft"]

class ProductImageDB(BaseModel):
    url: str
    alt: Optional[str] = None
    is_primary: bool = False

class RatingDB(BaseModel):
    average: float = 0
    count: int = 0

class ProductDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str
    slug: str
    sku: str
    description: str
    short_description: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    category: str
    images: List[ProductImageDB] = []
    thumbnail: Optional[str] = None
    stock: int = 1
    is_available: bool = True
    brand: Optional[str] = None
    materials: List[str] = []
    tags: List[str] = []
    dimensions: Optional[dict] = None
    weight: Optional[dict] = None
    promotion: Optional[dict] = None
    seo: Optional[dict] = None
    rating: RatingDB = Field(default_factory=RatingDB)
    view_count: int = 0
    wishlist_count: int = 0
    status: ProductStatus = "draft"
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class CategoryDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
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
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
