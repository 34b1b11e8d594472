from datetime import datetime, timedelta
from typing import Optional, Generic, TypeVar, List
from fastapi import HTTPException, status
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict
from jose import JWTError, jwt
import uuid

# --- Configuration ---
class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENVIRONMENT: str = "development"
    SERVICE_NAME: str = "lastpiece-api"
    LOG_LEVEL: str = "INFO"

    MONGODB_URI: Optional[str] = None
    MONGODB_LOCAL_URI: str = "mongodb://127.0.0.1:27017/lastpiece"
    DATABASE_NAME: str = "lastpiece"
    DB_MAX_RETRIES: int = 2
    DB_RETRY_DELAY_SECONDS: float = 2.0
    DB_SERVER_SELECTION_TIMEOUT_MS: int = 5000

    SECRET_KEY: str = "secret"
    REFRESH_SECRET_KEY: str = "refresh_secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    BCRYPT_ROUNDS: int = 10
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_REQUIRE_MIXED: bool = False
    REQUIRE_EMAIL_VERIFICATION: bool = True
    MAX_LOGIN_ATTEMPTS: int = 5
    LOCK_TIME_MINUTES: int = 120

    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SENDER_NAME: str = "Last Piece"
    SENDER_EMAIL: str = "no-reply@lastpiece.shop"
    FRONTEND_URL: str = "http://localhost:3000"
    BACKEND_PUBLIC_URL: str = ""
    CORS_ORIGINS: List[str] = ["*"]

    RATE_LIMIT_ENABLED: bool = True
    API_RATE_LIMIT: str = "200/15minutes"
    AUTH_RATE_LIMIT: str = "10/15minutes"
    SEARCH_RATE_LIMIT: str = "30/minute"

    TAX_RATE: float = 0.10
    COUPON_DISCOUNT_PERCENT: float = 10.0
    CURRENCY: str = "USD"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

settings = Settings()

# --- Authentication ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def _encode(data: dict, secret: str, expire: datetime) -> str:
    to_encode = data.copy()
    if "jti" not in to_encode:
        to_encode.update({"jti": str(uuid.uuid4())})
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, settings.SECRET_KEY, expire)

def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _encode(data, settings.REFRESH_SECRET_KEY, expire)

def generate_tokens(user_id: str, role: str) -> dict:
    claims = {"sub": user_id, "role": role}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
    }

def verify_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Not authorized, token failed")

def verify_refresh_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.REFRESH_SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise UnauthorizedException("Invalid or expired refresh token")

# --- Response Models ---
T = TypeVar("T")

class APIModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Pagination(APIModel):
    total: int
    pages: int
    current_page: int
    page_size: int

class SuccessResponse(APIModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None

class PaginatedResponse(SuccessResponse[T], Generic[T]):
    pagination: Pagination

class ErrorResponse(APIModel):
    success: bool = False
    message: str
    error: Optional[str] = None
    stack: Optional[str] = None

class HealthResponse(APIModel):
    service: str
    status: str
    timestamp: datetime
    version: str
    database: Optional[str] = None


# --- Exceptions ---
class AppException(HTTPException):
    def __init__(
        self,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        detail: str = "An error occurred",
        headers: Optional[dict] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class ValidationException(AppException):
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InsufficientStockException(AppException):
    def __init__(self, detail: str = "Insufficient stock"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InvalidStateException(AppException):
    def __init__(self, detail: str = "Operation not allowed in current state"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class NotFoundException(AppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class ItemNotInCartException(NotFoundException):
    def __init__(self, detail: str = "Item not in cart"):
        super().__init__(detail=detail)

class UnauthorizedException(AppException):
    def __init__(self, detail: str = "Unauthorized"):
         super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )

class ForbiddenException(AppException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class ConflictException(AppException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class AccountLockedException(AppException):
    def __init__(self, detail: str = "Account is locked. Please try again later or reset your password."):
        super().__init__(status_code=status.HTTP_423_LOCKED, detail=detail)

class DatabaseUnavailableException(AppException):
    def __init__(self, detail: str = "Database connection unavailable. Please check MongoDB configuration."):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
