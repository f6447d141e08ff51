import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select, func

from database import get_session
from models import User
from schemas.user_schema import LoginSchema, RegisterSchema, Token, UserReadSchema
from security.token_jwt import token_for_user
from security.oauth2 import get_current_user, get_optional_user
from security.hashing import hash_password, verify_password
from core.roles import Capability, has_capability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=Token)
def login(req: LoginSchema, db: Session = Depends(get_session)):
    user = db.exec(select(User).where(User.email == req.email)).first()
    if not user or not verify_password(req.password, user.password_hash):
        logger.info("Failed login for %s", req.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    logger.info("User %s logged in", user.id)
    return Token(access_token=token_for_user(user), user=UserReadSchema.model_validate(user))


# -------------------------------
# Register a user. Open only while no user exists; after that, admin only.
# -------------------------------
@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(
    req: RegisterSchema,
    db: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    has_users = db.exec(select(func.count()).select_from(User)).one() > 0
    if has_users:
        if current_user is None:
            raise HTTPException(status_code=401, detail="Authentication required", headers={"WWW-Authenticate": "Bearer"})
        if not has_capability(current_user.role, Capability.MANAGE_USERS):
            raise HTTPException(status_code=403, detail="Admin role required")

    existing = db.exec(
        select(User).where((User.email == req.email) | (User.username == req.username))
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="User with this email or username already exists")

    try:
        user = User(
            username=req.username,
            email=req.email,
            password_hash=hash_password(req.password),
            role=req.role.value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        db.rollback()
        logger.exception("Registration failed for %s", req.email)
        raise HTTPException(status_code=500, detail="Server error during registration")

    logger.info("Registered user %s (%s)", user.id, user.role)
    return Token(access_token=token_for_user(user), user=UserReadSchema.model_validate(user))


@router.get("/me", response_model=UserReadSchema)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information"""
    return current_user


@router.post("/refresh", response_model=Token)
def refresh_token(current_user: User = Depends(get_current_user)):
    return Token(access_token=token_for_user(current_user), user=UserReadSchema.model_validate(current_user))


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    # tokens are stateless; the client drops its copy
    logger.info("User %s logged out", current_user.id)
    return {"message": "Logged out successfully"}
