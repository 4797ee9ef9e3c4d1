"""Authentication routes: login, password change, profile, current account."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field

from busops.core.logging import get_logger
from busops.middleware.auth import get_current_claims
from busops.services.user_auth import UserAuthService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    phone: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    user: UserResponse


def get_user_auth_service(request: Request) -> UserAuthService:
    return request.app.state.container.user_auth_service()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """
    Login with email and password.
    Returns a bearer token valid for 24 hours and the account summary.
    """
    return await user_auth.login(email=request.email, password=request.password)


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    claims: Dict[str, Any] = Depends(get_current_claims),
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Change the password of the authenticated account."""
    return await user_auth.change_password(
        account_id=int(claims["id"]),
        current_password=request.current_password,
        new_password=request.new_password
    )


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    claims: Dict[str, Any] = Depends(get_current_claims),
    user_auth: UserAuthService = Depends(get_user_auth_service)
):
    """Update name, email or phone of the authenticated account."""
    return await user_auth.update_profile(
        account_id=int(claims["id"]),
        name=request.name,
        email=request.email,
        phone=request.phone
    )


@router.get("/me")
async def get_current_account(claims: Dict[str, Any] = Depends(get_current_claims)):
    """Claims of the presented token."""
    return {
        "id": claims.get("id"),
        "email": claims.get("email"),
        "role": claims.get("role"),
        "iat": claims.get("iat"),
        "exp": claims.get("exp"),
    }
