"""
Authentication routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from garage_api.auth import get_current_active_user, token_for
from garage_api.database import get_db
from garage_api.models.user import User, UserRole
from garage_api.schemas.user import LoginRequest, Token, User as UserSchema, UserRegister, UserResponse
from garage_api.services import directory

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    user_in: UserRegister,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new customer account and return an access token.
    """
    user = await directory.create_user(db, user_in.model_dump(), UserRole.CUSTOMER)
    await db.commit()
    await db.refresh(user)
    return Token(access_token=token_for(user), user=UserSchema.model_validate(user))


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Log in with username (or email) and password.
    """
    user = await directory.authenticate(db, credentials.username, credentials.password)
    return Token(access_token=token_for(user), user=UserSchema.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_active_user)):
    """Get the current user."""
    return UserResponse(user=UserSchema.model_validate(current_user))
