"""
Authentication API endpoints and dependencies.

A session starts in user mode after login; entering the admin code switches
it to admin mode by issuing a new token with ``is_admin`` set. The mode
lives only in the token, so every request carries its own ``AuthContext``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsboard.api.common import MessageResponse
from opsboard.config import get_settings
from opsboard.database import get_db
from opsboard.models.user import User

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# --- Pydantic Schemas ---

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    is_admin: bool = False


class UserCreate(BaseModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6)
    admin_code: str = Field(min_length=4)
    full_name: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str]
    is_active: bool
    last_login_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MeResponse(UserResponse):
    is_admin: bool = False


class AdminCodeRequest(BaseModel):
    admin_code: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class AdminCodeChange(BaseModel):
    current_admin_code: str
    new_admin_code: str = Field(min_length=4)


# --- Security helpers ---

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(data: dict, is_admin: bool = False, expires_delta: Optional[timedelta] = None) -> str:
    """Signed token carrying ``sub`` (e-mail), ``ver`` (token version) and the session mode"""
    to_encode = data.copy()
    to_encode.setdefault("is_admin", is_admin)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@dataclass
class AuthContext:
    user: User
    is_admin: bool = False


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_auth_context(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise _credentials_exception("Invalid or expired token")

    email = payload.get("sub")
    if not email:
        raise _credentials_exception()

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        raise _credentials_exception("User belonging to this token no longer exists")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been deactivated")
    if payload.get("ver", 0) != user.token_version:
        raise _credentials_exception("Session has been logged out")

    return AuthContext(user=user, is_admin=bool(payload.get("is_admin", False)))


async def get_current_user(auth: AuthContext = Depends(get_auth_context)) -> User:
    return auth.user


async def require_admin(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Guard for admin-only routes"""
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Access denied. Admin privileges required.")
    return auth


# --- Endpoints ---

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """Log in with e-mail and password; the session starts in user mode"""
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise _credentials_exception("Incorrect email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Your account has been deactivated")

    user.last_login_at = datetime.utcnow()
    await db.commit()

    logger.info(f"User {user.email} logged in")
    return Token(access_token=create_access_token(data={"sub": user.email, "ver": user.token_version}))


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Create an account"""
    result = await db.execute(select(User).where(User.email == data.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=data.email,
        full_name=data.full_name,
        hashed_password=get_password_hash(data.password),
        hashed_admin_code=get_password_hash(data.admin_code),
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered user {user.email}")
    return user


@router.post("/switch-to-admin", response_model=Token)
async def switch_to_admin(
    data: AdminCodeRequest,
    auth: AuthContext = Depends(get_auth_context)
):
    """Verify the admin code and issue an admin-mode token"""
    if not verify_password(data.admin_code, auth.user.hashed_admin_code):
        raise HTTPException(status_code=401, detail="Invalid admin code")

    logger.info(f"User {auth.user.email} switched to admin mode")
    return Token(
        access_token=create_access_token(data={"sub": auth.user.email, "ver": auth.user.token_version}, is_admin=True),
        is_admin=True,
    )


@router.post("/switch-to-user", response_model=Token)
async def switch_to_user(auth: AuthContext = Depends(get_auth_context)):
    """Drop admin mode"""
    return Token(access_token=create_access_token(data={"sub": auth.user.email, "ver": auth.user.token_version}))


@router.get("/me", response_model=MeResponse)
async def get_me(auth: AuthContext = Depends(get_auth_context)):
    """Current user and session mode"""
    response = MeResponse.model_validate(auth.user)
    response.is_admin = auth.is_admin
    return response


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """Replace the password after checking the current one"""
    if data.current_password == data.new_password:
        raise HTTPException(status_code=400, detail="New password cannot be the same as the current password")
    if not verify_password(data.current_password, auth.user.hashed_password):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    auth.user.hashed_password = get_password_hash(data.new_password)
    await db.commit()

    logger.info(f"User {auth.user.email} changed their password")
    return {"message": "Password changed successfully"}


@router.post("/change-admin-code", response_model=MessageResponse)
async def change_admin_code(
    data: AdminCodeChange,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """Replace the admin code after checking the current one"""
    if data.current_admin_code == data.new_admin_code:
        raise HTTPException(status_code=400, detail="New admin code cannot be the same as the current admin code")
    if not verify_password(data.current_admin_code, auth.user.hashed_admin_code):
        raise HTTPException(status_code=400, detail="Current admin code is incorrect")

    auth.user.hashed_admin_code = get_password_hash(data.new_admin_code)
    await db.commit()

    logger.info(f"User {auth.user.email} changed their admin code")
    return {"message": "Admin code changed successfully"}


@router.post("/logout", response_model=MessageResponse)
async def logout(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db)
):
    """End every session of the current user by revoking their tokens"""
    auth.user.token_version += 1
    await db.commit()

    logger.info(f"User {auth.user.email} logged out")
    return {"message": "Logout successfully"}
