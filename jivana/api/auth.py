"""
Authentication API Routes
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from jivana.api.dependencies import get_current_user, get_db, get_identity_provider
from jivana.models import User
from jivana.schemas.auth import IdentityVerify, TokenResponse, UserLogin, UserRegister, UserResponse
from jivana.services import records
from jivana.services.identity_service import IdentityProvider
from jivana.utils.exceptions import NotFoundError
from jivana.utils.security import create_access_token


router = APIRouter()


def _token_response(user: User) -> dict:
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user)
    ).model_dump(mode="json")


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider)
):
    """
    Register a new user
    """
    user = identity.register(
        db,
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        external_id=user_data.external_id
    )
    return {"success": True, "data": _token_response(user)}


@router.post("/auth/login")
async def login(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider)
):
    """
    Login with username and password
    """
    user = identity.authenticate(db, credentials.username, credentials.password)
    return {"success": True, "data": _token_response(user)}


@router.get("/auth/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """
    Get current user information
    """
    return {
        "success": True,
        "data": UserResponse.model_validate(current_user).model_dump(mode="json")
    }


@router.post("/auth/verify")
async def verify_identity(data: IdentityVerify, db: Session = Depends(get_db)):
    """
    Find the user behind an identity provider subject
    """
    user = records.get_user_by_external_id(db, data.external_id)
    if not user:
        raise NotFoundError("User not found", resource="user")
    return {
        "success": True,
        "data": UserResponse.model_validate(user).model_dump(mode="json")
    }
