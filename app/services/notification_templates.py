import logging
import re

from sqlalchemy.orm import Session

from app.errors import conflict, not_found, validation_error
from app.models import NotificationTemplate
from app.services.common import count_by, paginate, search_filter

logger = logging.getLogger(__name__)

TYPES = ("motivation", "daily_reminder", "marketing", "system")
PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

DEFAULT_TEMPLATES = [
    {
        "name": "Motivasyon Mesajı",
        "subject": "Günlük Motivasyon",
        "content": "Bugün harika bir gün! Hedeflerine odaklan ve güçlü kal. 💪",
        "variables": [],
        "type": "motivation",
    },
    {
        "name": "Milestone Kutlaması",
        "subject": "Tebrikler!",
        "content": "Tebrikler! {streak_days} günlük streak'ini tamamladın! 🎉",
        "variables": ["streak_days"],
        "type": "system",
    },
    {
        "name": "Destek Mesajı",
        "subject": "Sen Güçlüsün",
        "content": "Zorlandığın anları hatırla - sen bundan daha güçlüsün. Topluluk seninle! 🤝",
        "variables": [],
        "type": "motivation",
    },
    {
        "name": "Günlük Hatırlatma",
        "subject": "Günlük Kontrol",
        "content": "Bugün nasıl geçiyor? Hedeflerini unutma ve güçlü kal! 💪",
        "variables": [],
        "type": "daily_reminder",
    },
    {
        "name": "Premium Davet",
        "subject": "Premium Özellikler",
        "content": "Premium üyeliğin avantajlarını keşfet! İlk ay %50 indirimli. 🌟",
        "variables": [],
        "type": "marketing",
    },
]


def placeholders(*texts: str) -> list[str]:
    """Placeholder names in first-seen order, e.g. {streak_days}."""
    names: list[str] = []
    for text in texts:
        for name in PLACEHOLDER_RE.findall(text or ""):
            if name not in names:
                names.append(name)
    return names


def _prepare(data: dict, current: NotificationTemplate | None = None) -> dict:
    if data.get("type") and data["type"] not in TYPES:
        raise validation_error(f"Invalid template type: {data['type']}")
    for field in ("name", "subject", "content"):
        if field in data and (data[field] is None or not data[field].strip()):
            raise validation_error(f"Template {field} is required")

    subject = data.get("subject", current.subject if current else "")
    content = data.get("content", current.content if current else "")
    found = placeholders(subject, content)
    if data.get("variables") is None:
        if current is None or {"subject", "content", "variables"} & data.keys():
            data["variables"] = found
    else:
        undeclared = [name for name in found if name not in data["variables"]]
        if undeclared:
            raise validation_error(f"Undeclared template variables: {', '.join(undeclared)}")
    return data


def _check_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(NotificationTemplate).filter(NotificationTemplate.name == name.strip())
    if exclude_id:
        query = query.filter(NotificationTemplate.id != exclude_id)
    if query.first():
        raise conflict(f"Template '{name}' already exists")


def list_templates(
    db: Session,
    page: int = 1,
    limit: int = 10,
    type: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
):
    query = db.query(NotificationTemplate)
    if type:
        query = query.filter(NotificationTemplate.type == type)
    if is_active is not None:
        query = query.filter(NotificationTemplate.is_active.is_(is_active))
    condition = search_filter(search, [NotificationTemplate.name, NotificationTemplate.subject, NotificationTemplate.content])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(NotificationTemplate.created_at.desc(), NotificationTemplate.id.desc()), page, limit)


def get_template(db: Session, template_id: int) -> NotificationTemplate:
    template = db.query(NotificationTemplate).filter(NotificationTemplate.id == template_id).first()
    if not template:
        raise not_found("Notification template")
    return template


def create_template(db: Session, data: dict) -> NotificationTemplate:
    data = _prepare(dict(data))
    data["name"] = data["name"].strip()
    _check_name(db, data["name"])
    template = NotificationTemplate(**data)
    db.add(template)
    db.commit()
    db.refresh(template)
    return template


def update_template(db: Session, template_id: int, data: dict) -> NotificationTemplate:
    template = get_template(db, template_id)
    data = _prepare(dict(data), template)
    if data.get("name"):
        data["name"] = data["name"].strip()
        _check_name(db, data["name"], exclude_id=template.id)
    for key, value in data.items():
        setattr(template, key, value)
    db.commit()
    db.refresh(template)
    return template


def delete_template(db: Session, template_id: int) -> None:
    template = get_template(db, template_id)
    db.delete(template)
    db.commit()


def render(template: NotificationTemplate, values: dict) -> dict:
    """Fills {name} placeholders in subject and content; every one needs a value."""
    missing = [name for name in placeholders(template.subject, template.content) if values.get(name) is None]
    if missing:
        raise validation_error(f"Missing template values: {', '.join(missing)}")

    def fill(text: str) -> str:
        return PLACEHOLDER_RE.sub(lambda m: str(values[m.group(1)]), text)

    return {"subject": fill(template.subject), "content": fill(template.content)}


def seed_defaults(db: Session) -> list[NotificationTemplate]:
    """Adds the built-in templates that are missing by name."""
    existing = {name for (name,) in db.query(NotificationTemplate.name).all()}
    created = []
    for entry in DEFAULT_TEMPLATES:
        if entry["name"] in existing:
            continue
        template = NotificationTemplate(**entry, is_active=True)
        db.add(template)
        created.append(template)
    if created:
        db.commit()
        for template in created:
            db.refresh(template)
        logger.info("Default notification templates seeded", extra={"count": len(created)})
    return created


def template_stats(db: Session) -> dict:
    total = db.query(NotificationTemplate).count()
    active = db.query(NotificationTemplate).filter(NotificationTemplate.is_active.is_(True)).count()
    return {
        "total": total,
        "active": active,
        "inactive": total - active,
        "by_type": count_by(db, NotificationTemplate.type),
    }
