from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import UserCreate, UserDetailOut, UserOut, UserUpdate, page_of
from app.security.auth import require_admin
from app.services import audit, users

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_admin)])

@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    status: str | None = None,
    is_premium: bool | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = users.list_users(db, page, limit, search=search, status=status, is_premium=is_premium)
    return page_of(UserOut, items, pagination)

@router.get("/stats")
def user_stats(db: Session = Depends(get_db)):
    return users.user_stats(db)

@router.get("/{user_id}", response_model=UserDetailOut)
def get_user(user_id: int, db: Session = Depends(get_db)):
    user = users.get_user(db, user_id)
    out = UserDetailOut.model_validate(user)
    out.counts = users.user_counts(db, user_id)
    return out

@router.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = users.create_user(db, payload.model_dump(exclude_none=True))
    audit.log_action(db, admin, "create", "user", user.id, {"email": user.email}, request)
    return user

@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    user = users.update_user(db, user_id, changes)
    audit.log_action(db, admin, "update", "user", user.id, {"fields": sorted(changes)}, request)
    return user

@router.delete("/{user_id}", response_model=UserOut)
def delete_user(
    user_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = users.deactivate_user(db, user_id)
    audit.log_action(db, admin, "delete", "user", user.id, None, request)
    return user

@router.post("/{user_id}/ban", response_model=UserOut)
def ban_user(
    user_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = users.ban_user(db, user_id)
    audit.log_action(db, admin, "ban", "user", user.id, None, request)
    return user

@router.post("/{user_id}/unban", response_model=UserOut)
def unban_user(
    user_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = users.unban_user(db, user_id)
    audit.log_action(db, admin, "unban", "user", user.id, None, request)
    return user
