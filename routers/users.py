import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from database import get_session
from models import Job, User
from security.oauth2 import get_current_user
from security.permissions import require_capability, user_can
from security.hashing import hash_password, verify_password
from schemas.user_schema import DriverReadSchema, PasswordChangeSchema, UserReadSchema, UserUpdateSchema
from core.roles import Capability, Role

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["User"],
    dependencies=[Depends(get_current_user)]
)


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=list[UserReadSchema], status_code=status.HTTP_200_OK)
def get_users(
    db: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.VIEW_USERS, "Admin or office role required")),
):
    try:
        return db.exec(select(User).order_by(User.created_at.desc())).all()
    except Exception as e:
        logger.exception("Failed to fetch users")
        raise HTTPException(status_code=500, detail=f"Failed to fetch users: {str(e)}")


@router.get("/drivers", response_model=list[DriverReadSchema], status_code=status.HTTP_200_OK)
def get_drivers(db: Session = Depends(get_session)):
    try:
        return db.exec(select(User).where(User.role == Role.DRIVER.value).order_by(User.username)).all()
    except Exception as e:
        logger.exception("Failed to fetch drivers")
        raise HTTPException(status_code=500, detail=f"Failed to fetch drivers: {str(e)}")


@router.get("/{user_id}", response_model=UserReadSchema, status_code=status.HTTP_200_OK)
def get_user(
    user_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if current_user.id != user_id and not user_can(current_user, Capability.VIEW_USERS):
        raise HTTPException(status_code=403, detail="Access denied - can only view your own profile")
    return _get_user_or_404(db, user_id)


# -------------------------------
# Update user (self, or admin for anyone)
# -------------------------------
@router.put("/{user_id}", response_model=UserReadSchema, status_code=status.HTTP_200_OK)
def update_user(
    payload: UserUpdateSchema,
    user_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    is_admin = user_can(current_user, Capability.MANAGE_USERS)
    if current_user.id != user_id and not is_admin:
        raise HTTPException(status_code=403, detail="Access denied - can only update your own profile or admin required")

    update_data = payload.model_dump(exclude_unset=True)
    if "role" in update_data and not is_admin:
        raise HTTPException(status_code=403, detail="Access denied - only admins can change user roles")

    try:
        user = _get_user_or_404(db, user_id)

        for field in ("username", "email", "role"):
            if field in update_data and update_data[field] is None:
                raise HTTPException(status_code=400, detail=f"{field} cannot be empty")

        for field in ("username", "email"):
            if field in update_data:
                column = getattr(User, field)
                clash = db.exec(select(User).where(column == update_data[field], User.id != user_id)).first()
                if clash:
                    raise HTTPException(status_code=400, detail=f"{field.capitalize()} already exists")

        if not update_data:
            raise HTTPException(status_code=400, detail="No valid fields to update")

        for key, value in update_data.items():
            setattr(user, key, value.value if isinstance(value, Role) else value)
        user.updated_at = datetime.now(timezone.utc)

        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("User %s updated by %s", user_id, current_user.id)
        return user

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception("Failed to update user %s", user_id)
        raise HTTPException(status_code=500, detail=f"Failed to update user: {str(e)}")


@router.put("/{user_id}/password", status_code=status.HTTP_200_OK)
def change_password(
    payload: PasswordChangeSchema,
    user_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if current_user.id != user_id and not user_can(current_user, Capability.MANAGE_USERS):
        raise HTTPException(status_code=403, detail="Access denied - can only change your own password or admin required")

    user = _get_user_or_404(db, user_id)

    # an admin resetting someone else's password skips the current-password check
    if current_user.id == user_id:
        if not payload.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")
        if not verify_password(payload.current_password, user.password_hash):
            raise HTTPException(status_code=401, detail="Current password is incorrect")

    try:
        user.password_hash = hash_password(payload.new_password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    user.updated_at = datetime.now(timezone.utc)
    db.add(user)
    db.commit()
    logger.info("Password changed for user %s by %s", user_id, current_user.id)
    return {"message": "Password updated successfully"}


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
def delete_user(
    user_id: int = Path(...),
    db: Session = Depends(get_session),
    current_user: User = Depends(require_capability(Capability.MANAGE_USERS, "Admin role required")),
):
    if current_user.id == user_id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    user = _get_user_or_404(db, user_id)

    has_jobs = db.exec(
        select(Job.id).where((Job.assigned_driver == user_id) | (Job.created_by == user_id)).limit(1)
    ).first()
    if has_jobs is not None:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete user - they have associated jobs. Please reassign or remove them first.",
        )

    try:
        username = user.username
        db.delete(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Cannot delete user - they have associated data")

    logger.info("User %s (%s) deleted by %s", user_id, username, current_user.id)
    return {"message": "User deleted successfully", "deleted_user": username}
