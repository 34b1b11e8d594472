from fastapi import APIRouter, Depends, Request, status

from lastpiece.shared.auth import get_current_user
from lastpiece.shared.database import Database, require_db
from lastpiece.shared.email import Mailer, get_mailer
from lastpiece.shared.security_config import auth_limit, limiter
from lastpiece.shared.utils import SuccessResponse

from lastpiece.auth import service
from lastpiece.auth.schemas import (
    ForgotPasswordRequest, LoginResponse, ProfileUpdate, RefreshTokenRequest,
    ResetPasswordRequest, Token, UserLogin, UserRegister, UserResponse, VerifyEmailRequest,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", response_model=SuccessResponse[UserResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit(auth_limit)
async def register(
    request: Request,
    user: UserRegister,
    db: Database = Depends(require_db),
    mailer: Mailer = Depends(get_mailer),
):
    created, message = await service.register(db, mailer, user)
    return SuccessResponse(data=created, message=message)

@router.post("/login", response_model=SuccessResponse[LoginResponse])
@limiter.limit(auth_limit)
async def login(request: Request, user_credentials: UserLogin, db: Database = Depends(require_db)):
    result = await service.login(db, user_credentials.email, user_credentials.password)
    return SuccessResponse(data=result, message="Login successful")

@router.post("/refresh", response_model=SuccessResponse[Token])
async def refresh_token(body: RefreshTokenRequest, db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.refresh(db, body.refresh_token))

@router.post("/verify-email", response_model=SuccessResponse[UserResponse])
async def verify_email(body: VerifyEmailRequest, db: Database = Depends(require_db)):
    user = await service.verify_email(db, body.token)
    return SuccessResponse(data=user, message="Email verified successfully")

@router.post("/forgot-password", response_model=SuccessResponse[dict])
@limiter.limit(auth_limit)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Database = Depends(require_db),
    mailer: Mailer = Depends(get_mailer),
):
    await service.forgot_password(db, mailer, body.email)
    return SuccessResponse(message="Password reset email sent")

@router.post("/reset-password", response_model=SuccessResponse[dict])
async def reset_password(body: ResetPasswordRequest, db: Database = Depends(require_db)):
    await service.reset_password(db, body)
    return SuccessResponse(message="Password reset successful")

@router.get("/profile", response_model=SuccessResponse[UserResponse])
async def get_profile(user: dict = Depends(get_current_user), db: Database = Depends(require_db)):
    return SuccessResponse(data=await service.get_profile(db, user["id"]))

@router.put("/profile", response_model=SuccessResponse[UserResponse])
async def update_profile(
    profile: ProfileUpdate,
    user: dict = Depends(get_current_user),
    db: Database = Depends(require_db),
):
    updated = await service.update_profile(db, user["id"], profile)
    return SuccessResponse(data=updated, message="Profile updated successfully")
