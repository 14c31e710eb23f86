import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.errors import ApiError, conflict, not_found, validation_error
from app.models import SystemSetting
from app.services.common import count_by, paginate, search_filter, utcnow

logger = logging.getLogger(__name__)

SETTING_TYPES = ("string", "number", "boolean", "json")
MAINTENANCE_MODE_KEY = "system.maintenance_mode"
# Path segments under /settings that are routes of their own
RESERVED_KEYS = ("public", "categories", "export", "import", "bulk", "maintenance")


def parse_value(raw: str, setting_type: str) -> Any:
    if setting_type == "boolean":
        return raw == "true"
    if setting_type == "number":
        try:
            return float(raw)
        except ValueError:
            return None
    if setting_type == "json":
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


def serialize_value(value: Any, setting_type: str) -> str:
    if setting_type == "boolean":
        if isinstance(value, str):
            return "true" if value.lower() == "true" else "false"
        return "true" if value else "false"
    if setting_type == "number":
        number = float(value)
        return str(int(number)) if number.is_integer() else str(number)
    if setting_type == "json":
        return value if isinstance(value, str) else json.dumps(value)
    return str(value)


def check_value(value: Any, setting_type: str) -> str | None:
    """Returns an error message when value does not fit the type, else None."""
    if setting_type == "boolean":
        if not isinstance(value, bool) and value not in ("true", "false"):
            return "Value must be a boolean"
    elif setting_type == "number":
        if isinstance(value, bool):
            return "Value must be a number"
        try:
            float(value)
        except (TypeError, ValueError):
            return "Value must be a number"
    elif setting_type == "json":
        if isinstance(value, str):
            try:
                json.loads(value)
            except ValueError as e:
                return f"Invalid JSON: {e}"
    elif not isinstance(value, str):
        return "Value must be a string"
    return None


def get_setting(db: Session, key: str) -> SystemSetting:
    setting = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if not setting:
        raise not_found(f"Setting '{key}'")
    return setting


def list_settings(
    db: Session,
    page: int = 1,
    limit: int = 10,
    category: str | None = None,
    is_public: bool | None = None,
    search: str | None = None,
):
    query = db.query(SystemSetting)
    if category:
        query = query.filter(SystemSetting.category == category)
    if is_public is not None:
        query = query.filter(SystemSetting.is_public == is_public)
    condition = search_filter(search, [SystemSetting.key, SystemSetting.description])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(SystemSetting.category.asc(), SystemSetting.key.asc()), page, limit)


def by_category(db: Session, category: str) -> list[SystemSetting]:
    return (
        db.query(SystemSetting)
        .filter(SystemSetting.category == category)
        .order_by(SystemSetting.key.asc())
        .all()
    )


def categories(db: Session) -> list[dict]:
    return [{"category": r["value"], "count": r["count"]} for r in count_by(db, SystemSetting.category)]


def public_settings(db: Session) -> dict[str, Any]:
    settings = (
        db.query(SystemSetting)
        .filter(SystemSetting.is_public.is_(True))
        .order_by(SystemSetting.key.asc())
        .all()
    )
    return {s.key: parse_value(s.value, s.type) for s in settings}


def create_setting(db: Session, data: dict, updated_by: str) -> SystemSetting:
    setting_type = data.get("type") or "string"
    if setting_type not in SETTING_TYPES:
        raise validation_error(f"Invalid setting type: {setting_type}")
    if data["key"] in RESERVED_KEYS:
        raise validation_error(f"Setting key '{data['key']}' is reserved")
    if db.query(SystemSetting).filter(SystemSetting.key == data["key"]).first():
        raise conflict(f"Setting '{data['key']}' already exists")

    value = data["value"]
    error = check_value(value, setting_type)
    if error:
        raise validation_error(error)

    setting = SystemSetting(
        key=data["key"],
        value=value if isinstance(value, str) else serialize_value(value, setting_type),
        type=setting_type,
        category=data.get("category") or "app",
        description=data.get("description"),
        is_public=bool(data.get("is_public", False)),
        updated_by=updated_by,
    )
    db.add(setting)
    db.commit()
    db.refresh(setting)
    return setting


def update_setting(db: Session, key: str, data: dict, updated_by: str) -> SystemSetting:
    setting = get_setting(db, key)
    setting_type = data.get("type") or setting.type
    if setting_type not in SETTING_TYPES:
        raise validation_error(f"Invalid setting type: {setting_type}")
    if "value" in data and data["value"] is not None:
        error = check_value(data["value"], setting_type)
        if error:
            raise validation_error(error)
        value = data["value"]
        setting.value = value if isinstance(value, str) else serialize_value(value, setting_type)
    elif setting_type != setting.type:
        error = check_value(setting.value, setting_type)
        if error:
            raise validation_error(f"Stored value does not fit type '{setting_type}': {error}")
    setting.type = setting_type
    for field in ("category", "description", "is_public"):
        if data.get(field) is not None:
            setattr(setting, field, data[field])
    setting.updated_by = updated_by
    db.commit()
    db.refresh(setting)
    return setting


def delete_setting(db: Session, key: str) -> None:
    setting = get_setting(db, key)
    db.delete(setting)
    db.commit()


def get_value(db: Session, key: str) -> Any:
    setting = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if not setting:
        return None
    return parse_value(setting.value, setting.type)


def set_value(db: Session, key: str, value: Any, updated_by: str) -> SystemSetting:
    setting = get_setting(db, key)
    error = check_value(value, setting.type)
    if error:
        raise validation_error(error)
    setting.value = serialize_value(value, setting.type)
    setting.updated_by = updated_by
    db.commit()
    db.refresh(setting)
    logger.info("Setting updated", extra={"setting_key": key, "updated_by": updated_by})
    return setting


def validate_value(db: Session, key: str, value: Any) -> dict:
    setting = db.query(SystemSetting).filter(SystemSetting.key == key).first()
    if not setting:
        return {"valid": False, "error": "Setting not found"}
    error = check_value(value, setting.type)
    return {"valid": False, "error": error} if error else {"valid": True}


def bulk_update(db: Session, updates: list[dict], updated_by: str) -> list[SystemSetting]:
    return [set_value(db, u["key"], u["value"], updated_by) for u in updates]


def export_settings(db: Session, category: str | None = None) -> dict:
    query = db.query(SystemSetting)
    if category:
        query = query.filter(SystemSetting.category == category)
    rows = query.order_by(SystemSetting.category.asc(), SystemSetting.key.asc()).all()
    return {
        "export_date": utcnow().isoformat(),
        "category": category or "all",
        "settings": [
            {
                "key": s.key,
                "value": s.value,
                "type": s.type,
                "category": s.category,
                "description": s.description,
                "is_public": s.is_public,
            }
            for s in rows
        ],
    }


def import_settings(db: Session, items: list[dict], updated_by: str, overwrite: bool = False) -> list[dict]:
    results = []
    for item in items:
        key = item.get("key")
        if not key or "value" not in item:
            results.append({"key": key, "status": "error", "message": "key and value are required"})
            continue

        exists = db.query(SystemSetting).filter(SystemSetting.key == key).first() is not None
        if exists and not overwrite:
            results.append({"key": key, "status": "skipped", "message": "Setting already exists"})
            continue

        try:
            if exists:
                update_setting(db, key, item, updated_by)
                results.append({"key": key, "status": "updated", "message": "Setting updated successfully"})
            else:
                create_setting(db, item, updated_by)
                results.append({"key": key, "status": "created", "message": "Setting created successfully"})
        except ApiError as e:
            db.rollback()
            results.append({"key": key, "status": "error", "message": e.message})
    return results


def get_maintenance_mode(db: Session) -> bool:
    return bool(get_value(db, MAINTENANCE_MODE_KEY))


def set_maintenance_mode(db: Session, enabled: bool, updated_by: str) -> SystemSetting:
    """Creates the flag on first use."""
    if not db.query(SystemSetting).filter(SystemSetting.key == MAINTENANCE_MODE_KEY).first():
        return create_setting(
            db,
            {
                "key": MAINTENANCE_MODE_KEY,
                "value": enabled,
                "type": "boolean",
                "category": "system",
                "description": "Puts the app into maintenance mode",
            },
            updated_by,
        )
    return set_value(db, MAINTENANCE_MODE_KEY, enabled, updated_by)


def update_category(db: Session, category: str, values: dict[str, Any], updated_by: str) -> list[SystemSetting]:
    """Sets typed values within a category, creating missing keys with an inferred type."""
    results = []
    for key, value in values.items():
        existing = db.query(SystemSetting).filter(SystemSetting.key == key).first()
        if existing:
            if existing.category != category:
                raise validation_error(f"Setting '{key}' does not belong to '{category}'")
            results.append(set_value(db, key, value, updated_by))
        else:
            results.append(create_setting(
                db,
                {"key": key, "value": value, "type": infer_type(value), "category": category},
                updated_by,
            ))
    return results


def infer_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (dict, list)):
        return "json"
    return "string"
