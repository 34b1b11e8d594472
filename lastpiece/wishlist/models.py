from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

class WishlistItemDB(BaseModel):
    product_id: str
    added_at: datetime = Field(default_factory=datetime.utcnow)

class WishlistDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    items: List[WishlistItemDB] = []
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
