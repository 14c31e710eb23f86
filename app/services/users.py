import logging

from sqlalchemy.orm import Session

from app.errors import conflict, not_found
from app.models import Device, Relapse, Task, User
from app.services.common import paginate, search_filter, utcnow

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATIONS = {
    "daily_reminders": True,
    "system_notifications": True,
    "motivation_messages": True,
    "marketing": False,
}


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("User")
    return user


def list_users(
    db: Session,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    status: str | None = None,
    is_premium: bool | None = None,
):
    query = db.query(User)
    condition = search_filter(search, [User.name, User.email])
    if condition is not None:
        query = query.filter(condition)
    if status:
        query = query.filter(User.status == status)
    if is_premium is not None:
        query = query.filter(User.is_premium == is_premium)
    return paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)


def user_counts(db: Session, user_id: int) -> dict:
    return {
        "tasks": db.query(Task).filter(Task.user_id == user_id).count(),
        "relapses": db.query(Relapse).filter(Relapse.user_id == user_id).count(),
        "devices": db.query(Device).filter(Device.user_id == user_id).count(),
    }


def create_user(db: Session, data: dict) -> User:
    if db.query(User).filter(User.email == data["email"]).first():
        raise conflict("A user with this email already exists")

    data = dict(data)
    data.setdefault("streak", 0)
    data.setdefault("status", "active")
    if not data.get("notifications"):
        data["notifications"] = dict(DEFAULT_NOTIFICATIONS)

    user = User(**data)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created", extra={"user_id": user.id})
    return user


def update_user(db: Session, user_id: int, data: dict) -> User:
    user = get_user(db, user_id)
    if "email" in data and data["email"] != user.email:
        if db.query(User).filter(User.email == data["email"]).first():
            raise conflict("A user with this email already exists")

    status_changed = "status" in data and data["status"] != user.status
    for key, value in data.items():
        setattr(user, key, value)
    if status_changed:
        user.last_activity = utcnow()

    db.commit()
    db.refresh(user)
    return user


def deactivate_user(db: Session, user_id: int) -> User:
    """Soft delete: the account stays, marked inactive."""
    return update_user(db, user_id, {"status": "inactive"})


def ban_user(db: Session, user_id: int) -> User:
    return update_user(db, user_id, {"status": "banned"})


def unban_user(db: Session, user_id: int) -> User:
    return update_user(db, user_id, {"status": "active"})


def user_stats(db: Session) -> dict:
    return {
        "total": db.query(User).count(),
        "active": db.query(User).filter(User.status == "active").count(),
        "premium": db.query(User).filter(User.is_premium.is_(True)).count(),
        "banned": db.query(User).filter(User.status == "banned").count(),
    }
