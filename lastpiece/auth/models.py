from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["customer", "admin", "super-admin"]
UserStatus = Literal["active", "inactive", "blocked"]

class AddressDB(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: Optional[bool] = None

class PreferencesDB(BaseModel):
    newsletter: bool = True
    notifications: bool = True
    theme: Literal["light", "dark"] = "light"

class UserMetadataDB(BaseModel):
    total_orders: int = 0
    total_spent: float = 0
    average_order_value: float = 0

class UserDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    first_name: str = Field(..., max_length=50)
    last_name: str = Field(..., max_length=50)
    email: EmailStr
    password: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: Role = "customer"
    status: UserStatus = "active"
    email_verified: bool = False
    email_verification_token: Optional[str] = None
    email_verification_expires: Optional[datetime] = None
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    last_login: Optional[datetime] = None
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    address: Optional[AddressDB] = None
    preferences: PreferencesDB = Field(default_factory=PreferencesDB)
    metadata: UserMetadataDB = Field(default_factory=UserMetadataDB)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
