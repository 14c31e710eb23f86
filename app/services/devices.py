import logging
import re
from datetime import timedelta

from sqlalchemy.orm import Session

from app.config import settings
from app.errors import conflict, not_found, validation_error
from app.models import Device, User
from app.services.common import count_by, paginate, search_filter, utcnow, window_start

logger = logging.getLogger(__name__)

IPV4_RE = re.compile(r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$")
SUSPICIOUS_DEVICE_COUNT = 3


def validate_device_data(data: dict) -> list[str]:
    errors = []
    name = data.get("device_name")
    if name is not None:
        if len(name.strip()) < 2:
            errors.append("Device name must be at least 2 characters long")
        if len(name) > 100:
            errors.append("Device name must be less than 100 characters")
    device_type = data.get("device_type")
    if device_type is not None and len(device_type.strip()) < 2:
        errors.append("Device type must be at least 2 characters long")
    ip = data.get("ip_address")
    if ip is not None and not IPV4_RE.match(ip):
        errors.append("Invalid IP address format")
    return errors


def _check(data: dict) -> None:
    errors = validate_device_data(data)
    if errors:
        raise validation_error("Invalid device data", errors)


def get_device(db: Session, device_pk: int) -> Device:
    device = db.query(Device).filter(Device.id == device_pk).first()
    if not device:
        raise not_found("Device")
    return device


def get_by_device_id(db: Session, device_id: str) -> Device | None:
    return db.query(Device).filter(Device.device_id == device_id).first()


def list_devices(
    db: Session,
    page: int = 1,
    limit: int = 10,
    user_id: int | None = None,
    device_type: str | None = None,
    os: str | None = None,
    is_active: bool | None = None,
    is_trusted: bool | None = None,
    window: str | None = None,
    search: str | None = None,
):
    query = db.query(Device)
    if user_id:
        query = query.filter(Device.user_id == user_id)
    if device_type:
        query = query.filter(Device.device_type == device_type)
    if os:
        query = query.filter(Device.os == os)
    if is_active is not None:
        query = query.filter(Device.is_active == is_active)
    if is_trusted is not None:
        query = query.filter(Device.is_trusted == is_trusted)
    start = window_start(window)
    if start:
        query = query.filter(Device.last_seen >= start)
    condition = search_filter(search, [
        Device.device_name, Device.device_type, Device.os,
        Device.browser, Device.ip_address, Device.location,
    ])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Device.last_seen.desc(), Device.id.desc()), page, limit)


def create_device(db: Session, data: dict) -> Device:
    _check(data)
    if not db.query(User).filter(User.id == data["user_id"]).first():
        raise not_found("User")
    if get_by_device_id(db, data["device_id"]):
        raise conflict("Device already registered")
    device = Device(**data)
    db.add(device)
    db.commit()
    db.refresh(device)
    logger.info("Device registered", extra={"device_id": device.device_id, "user_id": device.user_id})
    return device


def update_device(db: Session, device_pk: int, data: dict) -> Device:
    _check(data)
    device = get_device(db, device_pk)
    for key, value in data.items():
        setattr(device, key, value)
    db.commit()
    db.refresh(device)
    return device


def register_or_update(db: Session, data: dict) -> Device:
    existing = get_by_device_id(db, data["device_id"])
    if not existing:
        return create_device(db, data)
    fields = ("device_name", "device_type", "os", "browser", "ip_address", "location")
    # Omitted fields keep their stored values
    changes = {k: data[k] for k in fields if data.get(k) is not None}
    return update_device(db, existing.id, changes)


def delete_device(db: Session, device_pk: int) -> None:
    device = get_device(db, device_pk)
    db.delete(device)
    db.commit()


def touch_last_seen(db: Session, device_id: str, ip_address: str | None = None, location: str | None = None) -> Device:
    device = get_by_device_id(db, device_id)
    if not device:
        raise not_found("Device")
    data = {}
    if ip_address:
        data["ip_address"] = ip_address
    if location:
        data["location"] = location
    _check(data)
    device.last_seen = utcnow()
    for key, value in data.items():
        setattr(device, key, value)
    db.commit()
    db.refresh(device)
    return device


def set_flags(db: Session, device_pk: int, **flags) -> Device:
    """trust/untrust/deactivate/reactivate are flag flips on is_trusted / is_active."""
    return update_device(db, device_pk, flags)


def bulk_action(db: Session, device_ids: list[int], action: str) -> int:
    query = db.query(Device).filter(Device.id.in_(device_ids))
    if action == "delete":
        count = query.delete(synchronize_session=False)
    elif action in ("trust", "untrust", "deactivate"):
        values = {
            "trust": {Device.is_trusted: True},
            "untrust": {Device.is_trusted: False},
            "deactivate": {Device.is_active: False},
        }[action]
        count = query.update(values, synchronize_session=False)
    else:
        raise validation_error(f"Unknown bulk action: {action}")
    db.commit()
    return count


def device_stats(db: Session) -> dict:
    return {
        "total": db.query(Device).count(),
        "active": db.query(Device).filter(Device.is_active.is_(True)).count(),
        "trusted": db.query(Device).filter(Device.is_trusted.is_(True)).count(),
        "untrusted": db.query(Device).filter(Device.is_trusted.is_(False)).count(),
    }


def distributions(db: Session) -> dict:
    return {
        "types": count_by(db, Device.device_type),
        "os": count_by(db, Device.os),
        "browsers": count_by(db, Device.browser),
        "locations": count_by(db, Device.location),
    }


def suspicious_devices(db: Session) -> list[dict]:
    """Users with more than three untrusted devices seen within the last hour."""
    since = utcnow() - timedelta(hours=1)
    recent = (
        db.query(Device)
        .filter(Device.last_seen >= since, Device.is_trusted.is_(False))
        .order_by(Device.user_id, Device.last_seen.desc())
        .all()
    )
    by_user: dict[int, list[Device]] = {}
    for device in recent:
        by_user.setdefault(device.user_id, []).append(device)

    suspicious = []
    for user_id, user_devices in by_user.items():
        if len(user_devices) > SUSPICIOUS_DEVICE_COUNT:
            suspicious.append({"user_id": user_id, "device_count": len(user_devices), "devices": user_devices})
    return suspicious


def devices_by_ip(db: Session, ip_address: str) -> list[Device]:
    return (
        db.query(Device)
        .filter(Device.ip_address == ip_address)
        .order_by(Device.last_seen.desc(), Device.id.desc())
        .all()
    )


def cleanup_inactive_devices(db: Session, days_inactive: int | None = None) -> int:
    days = days_inactive or settings.device_retention_days
    cutoff = utcnow() - timedelta(days=days)
    count = (
        db.query(Device)
        .filter(Device.last_seen < cutoff, Device.is_active.is_(False), Device.is_trusted.is_(False))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Inactive devices cleaned up", extra={"count": count, "days_inactive": days})
    return count
