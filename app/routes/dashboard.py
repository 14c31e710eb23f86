from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas import UserOut
from app.security.auth import require_admin
from app.services import dashboard

router = APIRouter(prefix="/dashboard", tags=["dashboard"], dependencies=[Depends(require_admin)])

@router.get("/stats")
def dashboard_stats(db: Session = Depends(get_db)):
    return dashboard.dashboard_stats(db)

@router.get("/popular-categories")
def popular_categories(limit: int = Query(5, ge=1, le=50), db: Session = Depends(get_db)):
    return dashboard.popular_categories(db, limit)

@router.get("/top-users", response_model=list[UserOut])
def top_users(limit: int = Query(5, ge=1, le=50), db: Session = Depends(get_db)):
    return dashboard.top_users_by_streak(db, limit)
