import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from pymongo import ReturnDocument

from lastpiece.auth.models import UserDB
from lastpiece.auth.schemas import ProfileUpdate, ResetPasswordRequest, UserRegister
from lastpiece.shared.database import Database
from lastpiece.shared.email import Mailer
from lastpiece.shared.helpers import generate_verification_token, hash_token, sanitize_user, to_object_id
from lastpiece.shared.security_config import password_policy_message, validate_password_strength
from lastpiece.shared.utils import (
    AccountLockedException, ConflictException, ForbiddenException, NotFoundException,
    UnauthorizedException, ValidationException, generate_tokens, get_password_hash,
    settings, verify_password, verify_refresh_token,
)

logger = logging.getLogger(__name__)

VERIFICATION_TTL = timedelta(hours=24)
RESET_TTL = timedelta(hours=1)


def _check_new_password(password: str, confirm_password: Optional[str]) -> None:
    if password != confirm_password:
        raise ValidationException("Passwords do not match")
    if not validate_password_strength(password):
        raise ValidationException(password_policy_message())


def is_locked(user: dict) -> bool:
    lock_until = user.get("lock_until")
    return bool(lock_until and lock_until > datetime.utcnow())


async def register(db: Database, mailer: Mailer, body: UserRegister) -> Tuple[dict, str]:
    if not body.first_name or not body.last_name or not body.email or not body.password:
        raise ValidationException("Please provide all required fields")
    _check_new_password(body.password, body.confirm_password)

    if await db.users.find_one({"email": body.email}, {"_id": 1}):
        raise ConflictException("Email already registered")

    verification_required = settings.REQUIRE_EMAIL_VERIFICATION
    token = generate_verification_token() if verification_required else None

    user = UserDB(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=get_password_hash(body.password),
        email_verified=not verification_required,
        email_verification_token=hash_token(token) if token else None,
        email_verification_expires=datetime.utcnow() + VERIFICATION_TTL if token else None,
    )
    doc = user.model_dump(by_alias=True, exclude={"id"})
    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("User registered", extra={"user_id": str(result.inserted_id)})

    if token:
        await mailer.send_email_verification(body.email, token)
        return sanitize_user(doc), "Registration successful. Please verify your email."
    return sanitize_user(doc), "Registration successful. You can now log in."


async def _register_failed_login(db: Database, user: dict) -> None:
    # an expired lock starts a fresh count
    if user.get("lock_until") and not is_locked(user):
        await db.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"login_attempts": 1, "lock_until": None}},
        )
        return

    updates = {"$inc": {"login_attempts": 1}}
    if user.get("login_attempts", 0) + 1 >= settings.MAX_LOGIN_ATTEMPTS:
        updates["$set"] = {"lock_until": datetime.utcnow() + timedelta(minutes=settings.LOCK_TIME_MINUTES)}
        logger.warning("Account locked after repeated failed logins", extra={"user_id": str(user["_id"])})
    await db.users.update_one({"_id": user["_id"]}, updates)


async def login(db: Database, email: Optional[str], password: Optional[str]) -> dict:
    if not email or not password:
        raise ValidationException("Please provide email and password")

    user = await db.users.find_one({"email": email.strip().lower()})
    if not user:
        raise UnauthorizedException("Invalid email or password")
    if is_locked(user):
        raise AccountLockedException()

    if not verify_password(password, user["password"]):
        await _register_failed_login(db, user)
        raise UnauthorizedException("Invalid email or password")

    if settings.REQUIRE_EMAIL_VERIFICATION and not user.get("email_verified"):
        raise ForbiddenException("Please verify your email before logging in")
    if user.get("status") == "blocked":
        raise ForbiddenException("Your account has been blocked")

    user = await db.users.find_one_and_update(
        {"_id": user["_id"]},
        {"$set": {"login_attempts": 0, "lock_until": None, "last_login": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    user_id = str(user["_id"])
    logger.info("User logged in", extra={"user_id": user_id})
    return {"user": sanitize_user(user), "tokens": generate_tokens(user_id, user["role"])}


async def refresh(db: Database, refresh_token: Optional[str]) -> dict:
    if not refresh_token:
        raise ValidationException("Refresh token is required")

    payload = verify_refresh_token(refresh_token)
    user = await db.users.find_one({"_id": to_object_id(payload.get("sub"), "User")}, {"role": 1, "status": 1})
    if not user:
        raise UnauthorizedException("User not found")
    if user.get("status") == "blocked":
        raise ForbiddenException("Your account has been blocked")
    return generate_tokens(str(user["_id"]), user["role"])


async def verify_email(db: Database, token: Optional[str]) -> dict:
    if not token:
        raise ValidationException("Verification token is required")

    user = await db.users.find_one_and_update(
        {
            "email_verification_token": hash_token(token),
            "email_verification_expires": {"$gt": datetime.utcnow()},
        },
        {"$set": {
            "email_verified": True,
            "email_verification_token": None,
            "email_verification_expires": None,
            "updated_at": datetime.utcnow(),
        }},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise ValidationException("Invalid or expired verification token")
    return sanitize_user(user)


async def forgot_password(db: Database, mailer: Mailer, email: Optional[str]) -> None:
    if not email:
        raise ValidationException("Email is required")

    email = email.strip().lower()
    token = generate_verification_token()
    user = await db.users.find_one_and_update(
        {"email": email},
        {"$set": {
            "password_reset_token": hash_token(token),
            "password_reset_expires": datetime.utcnow() + RESET_TTL,
        }},
    )
    if not user:
        raise NotFoundException("User not found")

    await mailer.send_password_reset(email, token)


async def reset_password(db: Database, body: ResetPasswordRequest) -> None:
    if not body.token or not body.password or not body.confirm_password:
        raise ValidationException("All fields are required")
    _check_new_password(body.password, body.confirm_password)

    result = await db.users.update_one(
        {
            "password_reset_token": hash_token(body.token),
            "password_reset_expires": {"$gt": datetime.utcnow()},
        },
        {"$set": {
            "password": get_password_hash(body.password),
            "password_reset_token": None,
            "password_reset_expires": None,
            "login_attempts": 0,
            "lock_until": None,
            "updated_at": datetime.utcnow(),
        }},
    )
    if result.matched_count == 0:
        raise ValidationException("Invalid or expired reset token")


async def get_profile(db: Database, user_id: str) -> dict:
    user = await db.users.find_one({"_id": to_object_id(user_id, "User")})
    if not user:
        raise NotFoundException("User not found")
    return sanitize_user(user)


async def update_profile(db: Database, user_id: str, body: ProfileUpdate) -> dict:
    changes = body.model_dump(exclude_none=True)
    changes["updated_at"] = datetime.utcnow()

    user = await db.users.find_one_and_update(
        {"_id": to_object_id(user_id, "User")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundException("User not found")
    return sanitize_user(user)
