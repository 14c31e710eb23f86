from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import BulkActionIn, DeviceCreate, DeviceOut, DeviceTouchIn, DeviceUpdate, page_of
from app.security.auth import require_admin
from app.services import audit, devices

router = APIRouter(prefix="/devices", tags=["devices"], dependencies=[Depends(require_admin)])

FLAG_ACTIONS = {
    "trust": {"is_trusted": True},
    "untrust": {"is_trusted": False},
    "deactivate": {"is_active": False},
    "reactivate": {"is_active": True},
}

@router.get("")
def list_devices(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user_id: int | None = None,
    device_type: str | None = None,
    os: str | None = None,
    is_active: bool | None = None,
    is_trusted: bool | None = None,
    window: Literal["today", "week", "month"] | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = devices.list_devices(
        db, page, limit,
        user_id=user_id, device_type=device_type, os=os,
        is_active=is_active, is_trusted=is_trusted, window=window, search=search,
    )
    return page_of(DeviceOut, items, pagination)

@router.get("/stats")
def device_stats(db: Session = Depends(get_db)):
    return devices.device_stats(db)

@router.get("/distributions")
def device_distributions(db: Session = Depends(get_db)):
    return devices.distributions(db)

@router.get("/suspicious")
def suspicious_devices(db: Session = Depends(get_db)):
    return [
        {
            "user_id": entry["user_id"],
            "device_count": entry["device_count"],
            "devices": [DeviceOut.model_validate(d) for d in entry["devices"]],
        }
        for entry in devices.suspicious_devices(db)
    ]

@router.get("/by-ip/{ip_address}", response_model=list[DeviceOut])
def devices_by_ip(ip_address: str, db: Session = Depends(get_db)):
    return devices.devices_by_ip(db, ip_address)

@router.post("/register", response_model=DeviceOut)
def register_device(
    payload: DeviceCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    device = devices.register_or_update(db, payload.model_dump())
    audit.log_action(db, admin, "register", "device", device.id, {"device_id": device.device_id}, request)
    return device

@router.post("/touch", response_model=DeviceOut)
def touch_device(payload: DeviceTouchIn, db: Session = Depends(get_db)):
    return devices.touch_last_seen(db, payload.device_id, payload.ip_address, payload.location)

@router.post("/bulk")
def bulk_devices(
    payload: BulkActionIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = devices.bulk_action(db, payload.ids, payload.action)
    audit.log_action(db, admin, f"bulk_{payload.action}", "device", None, {"ids": payload.ids}, request)
    return {"affected": count}

@router.post("/cleanup")
def cleanup_devices(
    request: Request,
    days: int | None = Query(None, ge=1),
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = devices.cleanup_inactive_devices(db, days)
    audit.log_action(db, admin, "cleanup", "device", None, {"deleted": count}, request)
    return {"deleted": count}

@router.get("/{device_pk}", response_model=DeviceOut)
def get_device(device_pk: int, db: Session = Depends(get_db)):
    return devices.get_device(db, device_pk)

@router.post("", response_model=DeviceOut, status_code=201)
def create_device(
    payload: DeviceCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    device = devices.create_device(db, payload.model_dump())
    audit.log_action(db, admin, "create", "device", device.id, {"device_id": device.device_id}, request)
    return device

@router.put("/{device_pk}", response_model=DeviceOut)
def update_device(
    device_pk: int,
    payload: DeviceUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    device = devices.update_device(db, device_pk, changes)
    audit.log_action(db, admin, "update", "device", device.id, {"fields": sorted(changes)}, request)
    return device

@router.delete("/{device_pk}", status_code=204)
def delete_device(
    device_pk: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    devices.delete_device(db, device_pk)
    audit.log_action(db, admin, "delete", "device", device_pk, None, request)

@router.post("/{device_pk}/{action}", response_model=DeviceOut)
def flag_device(
    device_pk: int,
    action: Literal["trust", "untrust", "deactivate", "reactivate"],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    device = devices.set_flags(db, device_pk, **FLAG_ACTIONS[action])
    audit.log_action(db, admin, action, "device", device.id, None, request)
    return device
