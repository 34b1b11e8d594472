from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import re
import html

from lastpiece.shared.utils import settings

# --- Rate Limiting ---
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.API_RATE_LIMIT],
    enabled=settings.RATE_LIMIT_ENABLED,
)

RATE_LIMIT_MESSAGES = {
    "auth": "Too many login attempts, please try again later",
    "search": "Too many search requests, please try again later",
}

def auth_limit() -> str:
    return settings.AUTH_RATE_LIMIT

def search_limit() -> str:
    return settings.SEARCH_RATE_LIMIT

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    path = request.url.path
    if path.startswith("/api/auth"):
        message = RATE_LIMIT_MESSAGES["auth"]
    elif path.endswith("/search"):
        message = RATE_LIMIT_MESSAGES["search"]
    else:
        message = "Too many requests from this IP, please try again later"
    return JSONResponse(status_code=429, content={"success": False, "message": message})

def setup_rate_limiting(app: FastAPI):
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

# --- Security Headers Middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response

# --- Input Sanitization ---
def sanitize_input(text: str) -> str:
    """
    Sanitize input string:
    - HTML escape
    - Strip whitespace
    """
    if not isinstance(text, str):
        return text

    return html.escape(text.strip())

def validate_password_strength(password: str) -> bool:
    """
    Validate password against the configured policy:
    - At least PASSWORD_MIN_LENGTH chars
    - With PASSWORD_REQUIRE_MIXED: one uppercase, one lowercase and one digit
    """
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        return False
    if not settings.PASSWORD_REQUIRE_MIXED:
        return True
    if not re.search(r"[A-Z]", password):
        return False
    if not re.search(r"[a-z]", password):
        return False
    if not re.search(r"\d", password):
        return False
    return True

def password_policy_message() -> str:
    if settings.PASSWORD_REQUIRE_MIXED:
        return (
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long "
            "and contain uppercase, lowercase, and numbers"
        )
    return f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
