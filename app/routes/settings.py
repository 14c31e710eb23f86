from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import (
    MaintenanceIn,
    SettingBulkItem,
    SettingCreate,
    SettingImportIn,
    SettingOut,
    SettingUpdate,
    SettingValueIn,
    page_of,
)
from app.security.auth import require_admin
from app.security.rbac import require_superadmin
from app.services import audit, settings_store

router = APIRouter(prefix="/settings", tags=["settings"])

@router.get("/public")
def public_settings(db: Session = Depends(get_db)):
    return settings_store.public_settings(db)

@router.get("", dependencies=[Depends(require_admin)])
def list_settings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: str | None = None,
    is_public: bool | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = settings_store.list_settings(
        db, page, limit, category=category, is_public=is_public, search=search,
    )
    return page_of(SettingOut, items, pagination)

@router.get("/categories", dependencies=[Depends(require_admin)])
def setting_categories(db: Session = Depends(get_db)):
    return settings_store.categories(db)

@router.get("/export", dependencies=[Depends(require_admin)])
def export_settings(category: str | None = None, db: Session = Depends(get_db)):
    return settings_store.export_settings(db, category)

@router.post("/import")
def import_settings(
    payload: SettingImportIn,
    request: Request,
    admin: AdminUser = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    results = settings_store.import_settings(db, payload.settings, admin.email, payload.overwrite)
    audit.log_action(db, admin, "import", "setting", None, {"count": len(results), "overwrite": payload.overwrite}, request)
    return results

@router.put("/bulk", response_model=list[SettingOut])
def bulk_update(
    payload: list[SettingBulkItem],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    updated = settings_store.bulk_update(db, [item.model_dump() for item in payload], admin.email)
    audit.log_action(db, admin, "bulk_update", "setting", None, {"keys": [i.key for i in payload]}, request)
    return updated

@router.get("/maintenance", dependencies=[Depends(require_admin)])
def get_maintenance(db: Session = Depends(get_db)):
    return {"enabled": settings_store.get_maintenance_mode(db)}

@router.put("/maintenance")
def set_maintenance(
    payload: MaintenanceIn,
    request: Request,
    admin: AdminUser = Depends(require_superadmin),
    db: Session = Depends(get_db),
):
    settings_store.set_maintenance_mode(db, payload.enabled, admin.email)
    audit.log_action(db, admin, "maintenance", "setting", settings_store.MAINTENANCE_MODE_KEY, {"enabled": payload.enabled}, request)
    return {"enabled": payload.enabled}

@router.post("", response_model=SettingOut, status_code=201)
def create_setting(
    payload: SettingCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    setting = settings_store.create_setting(db, payload.model_dump(), admin.email)
    audit.log_action(db, admin, "create", "setting", setting.key, None, request)
    return setting

@router.get("/{key}", response_model=SettingOut, dependencies=[Depends(require_admin)])
def get_setting(key: str, db: Session = Depends(get_db)):
    return settings_store.get_setting(db, key)

@router.get("/{key}/value", dependencies=[Depends(require_admin)])
def get_setting_value(key: str, db: Session = Depends(get_db)):
    setting = settings_store.get_setting(db, key)
    return {"key": key, "value": settings_store.parse_value(setting.value, setting.type)}

@router.put("/{key}/value", response_model=SettingOut)
def set_setting_value(
    key: str,
    payload: SettingValueIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    setting = settings_store.set_value(db, key, payload.value, admin.email)
    audit.log_action(db, admin, "update", "setting", key, None, request)
    return setting

@router.post("/{key}/validate", dependencies=[Depends(require_admin)])
def validate_setting(key: str, payload: SettingValueIn, db: Session = Depends(get_db)):
    return settings_store.validate_value(db, key, payload.value)

@router.put("/{key}", response_model=SettingOut)
def update_setting(
    key: str,
    payload: SettingUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    setting = settings_store.update_setting(db, key, changes, admin.email)
    audit.log_action(db, admin, "update", "setting", key, {"fields": sorted(changes)}, request)
    return setting

@router.delete("/{key}", status_code=204)
def delete_setting(
    key: str,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    settings_store.delete_setting(db, key)
    audit.log_action(db, admin, "delete", "setting", key, None, request)
