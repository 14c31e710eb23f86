from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import AdCreate, AdOut, AdSpendIn, AdUpdate, SettingOut, page_of
from app.security.auth import require_admin
from app.services import ads, audit, settings_store

router = APIRouter(prefix="/ads", tags=["ads"], dependencies=[Depends(require_admin)])

ADS_SETTINGS_CATEGORY = "ads"
STATUS_ACTIONS = {"pause": "paused", "resume": "active", "complete": "completed"}

@router.get("")
def list_ads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: str | None = None,
    status: str | None = None,
    placement: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = ads.list_ads(db, page, limit, type=type, status=status, placement=placement, search=search)
    return page_of(AdOut, items, pagination)

@router.get("/stats")
def ad_stats(db: Session = Depends(get_db)):
    return ads.ad_stats(db)

@router.get("/top", response_model=list[AdOut])
def top_ads(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return ads.top_performing(db, limit)

@router.get("/settings")
def get_ads_settings(db: Session = Depends(get_db)) -> dict[str, Any]:
    return {
        s.key: settings_store.parse_value(s.value, s.type)
        for s in settings_store.by_category(db, ADS_SETTINGS_CATEGORY)
    }

@router.put("/settings", response_model=list[SettingOut])
def update_ads_settings(
    payload: dict[str, Any],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updated = settings_store.update_category(db, ADS_SETTINGS_CATEGORY, payload, admin.email)
    audit.log_action(db, admin, "update", "ads_settings", None, {"keys": sorted(payload)}, request)
    return updated

@router.get("/{ad_id}", response_model=AdOut)
def get_ad(ad_id: int, db: Session = Depends(get_db)):
    return ads.get_ad(db, ad_id)

@router.post("", response_model=AdOut, status_code=201)
def create_ad(
    payload: AdCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ad = ads.create_ad(db, payload.model_dump())
    audit.log_action(db, admin, "create", "ad", ad.id, None, request)
    return ad

@router.put("/{ad_id}", response_model=AdOut)
def update_ad(
    ad_id: int,
    payload: AdUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    ad = ads.update_ad(db, ad_id, changes)
    audit.log_action(db, admin, "update", "ad", ad.id, {"fields": sorted(changes)}, request)
    return ad

@router.delete("/{ad_id}", status_code=204)
def delete_ad(
    ad_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ads.delete_ad(db, ad_id)
    audit.log_action(db, admin, "delete", "ad", ad_id, None, request)

@router.post("/{ad_id}/impression", response_model=AdOut)
def record_impression(ad_id: int, db: Session = Depends(get_db)):
    return ads.record_impression(db, ad_id)

@router.post("/{ad_id}/click", response_model=AdOut)
def record_click(ad_id: int, db: Session = Depends(get_db)):
    return ads.record_click(db, ad_id)

@router.post("/{ad_id}/spend", response_model=AdOut)
def add_spend(
    ad_id: int,
    payload: AdSpendIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ad = ads.add_spend(db, ad_id, payload.amount)
    audit.log_action(db, admin, "spend", "ad", ad.id, {"amount": payload.amount}, request)
    return ad

@router.post("/{ad_id}/status/{action}", response_model=AdOut)
def change_status(
    ad_id: int,
    action: Literal["pause", "resume", "complete"],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ad = ads.set_status(db, ad_id, STATUS_ACTIONS[action])
    audit.log_action(db, admin, action, "ad", ad.id, None, request)
    return ad
