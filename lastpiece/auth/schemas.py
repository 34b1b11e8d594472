from pydantic import EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from lastpiece.shared.security_config import sanitize_input
from lastpiece.shared.utils import APIModel

class UserRegister(APIModel):
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None

    @field_validator('first_name', 'last_name')
    def sanitize_names(cls, v):
        return sanitize_input(v)

    @field_validator('email')
    def normalize_email(cls, v):
        return v.lower() if v else v

class UserLogin(APIModel):
    email: Optional[str] = None
    password: Optional[str] = None

class Token(APIModel):
    access_token: str
    refresh_token: str

class RefreshTokenRequest(APIModel):
    refresh_token: Optional[str] = None

class VerifyEmailRequest(APIModel):
    token: Optional[str] = None

class ForgotPasswordRequest(APIModel):
    email: Optional[str] = None

class ResetPasswordRequest(APIModel):
    token: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None

class Address(APIModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: Optional[bool] = None

class ProfileUpdate(APIModel):
    first_name: Optional[str] = Field(None, max_length=50)
    last_name: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = None
    address: Optional[Address] = None

    @field_validator('first_name', 'last_name', 'phone')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class Preferences(APIModel):
    newsletter: bool = True
    notifications: bool = True
    theme: str = "light"

class UserMetadata(APIModel):
    total_orders: int = 0
    total_spent: float = 0
    average_order_value: float = 0

class UserResponse(APIModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    status: str
    email_verified: bool = False
    last_login: Optional[datetime] = None
    address: Optional[Address] = None
    preferences: Optional[Preferences] = None
    metadata: Optional[UserMetadata] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class LoginResponse(APIModel):
    user: UserResponse
    tokens: Token
