from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import RelapseCreate, RelapseOut, RelapseUpdate, page_of
from app.security.auth import require_admin
from app.services import audit, relapses

router = APIRouter(prefix="/relapses", tags=["relapses"], dependencies=[Depends(require_admin)])

@router.get("")
def list_relapses(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: int | None = None,
    severity: str | None = None,
    window: Literal["today", "week", "month"] | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = relapses.list_relapses(
        db, page, limit, user_id=user_id, severity=severity, window=window, search=search,
    )
    return page_of(RelapseOut, items, pagination)

@router.get("/stats")
def relapse_stats(db: Session = Depends(get_db)):
    return relapses.relapse_stats(db)

@router.get("/{relapse_id}", response_model=RelapseOut)
def get_relapse(relapse_id: int, db: Session = Depends(get_db)):
    return relapses.get_relapse(db, relapse_id)

@router.post("", response_model=RelapseOut, status_code=201)
def create_relapse(
    payload: RelapseCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    relapse = relapses.create_relapse(db, payload.model_dump())
    audit.log_action(db, admin, "create", "relapse", relapse.id, {"user_id": relapse.user_id}, request)
    return relapse

@router.put("/{relapse_id}", response_model=RelapseOut)
def update_relapse(
    relapse_id: int,
    payload: RelapseUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    relapse = relapses.update_relapse(db, relapse_id, changes)
    audit.log_action(db, admin, "update", "relapse", relapse.id, {"fields": sorted(changes)}, request)
    return relapse

@router.delete("/{relapse_id}", status_code=204)
def delete_relapse(
    relapse_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    relapses.delete_relapse(db, relapse_id)
    audit.log_action(db, admin, "delete", "relapse", relapse_id, None, request)
