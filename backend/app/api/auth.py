"""
Authentication API routes
"""
from datetime import datetime
from fastapi import APIRouter, HTTPException, status, Depends
from uuid import uuid4
import logging

from app.core.config import settings
from app.core.database import get_collection
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
)
from app.models.user import (
    UserCreate,
    UserInDB,
    UserResponse,
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def user_response(user_doc: dict) -> UserResponse:
    return UserResponse(
        id=user_doc["_id"],
        email=user_doc["email"],
        username=user_doc["username"],
        full_name=user_doc.get("full_name"),
        is_active=user_doc.get("is_active", True),
        created_at=user_doc["created_at"],
        updated_at=user_doc["updated_at"],
        last_login=user_doc.get("last_login"),
    )


def issue_tokens(user_doc: dict) -> TokenResponse:
    token_data = {"sub": user_doc["_id"], "email": user_doc["email"]}
    return TokenResponse(
        access_token=create_access_token(token_data),
        refresh_token=create_refresh_token(token_data),
        expires_in=settings.JWT_EXPIRATION_HOURS * 3600,
        user=user_response(user_doc),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate):
    """Register a new student account"""
    users = get_collection("users")

    if await users.find_one({"email": user_data.email}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    if await users.find_one({"username": user_data.username}):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already taken"
        )

    now = datetime.utcnow()
    user_doc = {
        "_id": str(uuid4()),
        "email": user_data.email,
        "username": user_data.username,
        "full_name": user_data.full_name,
        "is_active": True,
        "hashed_password": get_password_hash(user_data.password),
        "created_at": now,
        "updated_at": now,
        "last_login": now,
    }

    await users.insert_one(user_doc)
    logger.info(f"Registered user {user_doc['_id']}")

    return issue_tokens(user_doc)


@router.post("/login", response_model=TokenResponse)
async def login(credentials: LoginRequest):
    """Login with email and password"""
    users = get_collection("users")
    user_doc = await users.find_one({"email": credentials.email})

    if not user_doc or not verify_password(credentials.password, user_doc["hashed_password"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user_doc.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
            headers={"WWW-Authenticate": "Bearer"},
        )

    now = datetime.utcnow()
    await users.update_one(
        {"_id": user_doc["_id"]},
        {"$set": {"last_login": now}}
    )
    user_doc["last_login"] = now

    return issue_tokens(user_doc)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshTokenRequest):
    """Refresh access token using refresh token"""
    payload = decode_token(request.refresh_token)

    if payload.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    users = get_collection("users")
    user_doc = await users.find_one({"_id": payload.get("sub")})

    if not user_doc or not user_doc.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or disabled",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return issue_tokens(user_doc)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: UserInDB = Depends(get_current_user)):
    """Get current user information"""
    return UserResponse(
        id=current_user.id,
        email=current_user.email,
        username=current_user.username,
        full_name=current_user.full_name,
        is_active=current_user.is_active,
        created_at=current_user.created_at,
        updated_at=current_user.updated_at,
        last_login=current_user.last_login,
    )


@router.post("/logout")
async def logout(current_user: UserInDB = Depends(get_current_user)):
    """Logout current user (client should discard tokens)"""
    return {"success": True, "message": "Successfully logged out"}
