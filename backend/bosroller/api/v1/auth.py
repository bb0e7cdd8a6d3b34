import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from bosroller.core.constants import TeamRole, MIN_PASSWORD_LENGTH
from bosroller.core.database import get_db
from bosroller.models.user import User
from bosroller.models.team_member import TeamMember
from bosroller.core.security import create_access_token, verify_password, get_password_hash, get_current_active_user
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

logger = logging.getLogger(__name__)

router = APIRouter()

class UserCreate(BaseModel):
    """Registration request"""
    email: EmailStr
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    full_name: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "username": "example_user",
                "password": "secure_password123",
                "full_name": "Example User"
            }
        }

class UserResponse(BaseModel):
    id: int
    email: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str

    class Config:
        json_schema_extra = {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer"
            }
        }

class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str

@router.post("/register", response_model=UserResponse, summary="Register", operation_id="register")
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user account.

    Email and username must be unique. The very first account registered
    also becomes the admin of the team roster.

    Args:
        user_data (UserCreate): registration details
        db (AsyncSession): database session

    Returns:
        UserResponse: the created user

    Raises:
        HTTPException:
            - 400: email already registered or username taken
    """
    stmt = select(User).where(User.email == user_data.email)
    result = await db.execute(stmt)
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    stmt = select(User).where(User.username == user_data.username)
    result = await db.execute(stmt)
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already taken"
        )

    member_count = (await db.execute(select(func.count(TeamMember.id)))).scalar()

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=get_password_hash(user_data.password),
        full_name=user_data.full_name
    )
    db.add(user)
    await db.flush()

    if member_count == 0:
        db.add(TeamMember(
            user_id=user.id,
            name=user_data.full_name or user_data.username,
            email=user_data.email,
            role=TeamRole.ADMIN.value
        ))
        logger.info(f"First user {user_data.username} registered as team admin")

    await db.commit()
    await db.refresh(user)

    return user

@router.post("/login", response_model=Token, summary="Login", operation_id="login")
async def login(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Exchange credentials for an access token.

    Accepts an OAuth2 form or a JSON body. The `username` field may hold
    either the username or the email address.

    Raises:
        HTTPException:
            - 400: missing fields, unreadable body or inactive account
            - 401: wrong credentials
    """
    content_type = request.headers.get("content-type", "").lower()

    username_val = None
    password_val = None

    try:
        if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
            form = await request.form()
            username_val = form.get("username")
            password_val = form.get("password")
        else:
            body = await request.json()
            username_val = body.get("username") or body.get("email")
            password_val = body.get("password")
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Failed to parse request body: {str(e)}"
        )

    if not username_val or not password_val:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username and password are required. Provide them as JSON or form data."
        )

    stmt = select(User).where(or_(User.username == username_val, User.email == username_val))
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if not user or not verify_password(password_val, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    access_token = create_access_token(data={"sub": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/me", response_model=UserResponse, summary="Current user", operation_id="get_current_user")
async def get_current_user_info(current_user: User = Depends(get_current_active_user)):
    return current_user

@router.post("/change-password", summary="Change password", operation_id="change_password")
async def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Change the current user's password.

    Raises:
        HTTPException:
            - 400: confirmation mismatch, new password too short or current password wrong
    """
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Passwords do not match")

    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect")

    current_user.hashed_password = get_password_hash(data.new_password)
    await db.commit()
    logger.info(f"Password changed for user_id={current_user.id}")
    return {"message": "Password updated successfully"}
