from sqlalchemy.orm import Session

from app.models import Notification, Subscription, Task, User
from app.services.common import count_by


def dashboard_stats(db: Session) -> dict:
    return {
        "users": {
            "total": db.query(User).count(),
            "active": db.query(User).filter(User.status == "active").count(),
            "premium": db.query(User).filter(User.is_premium.is_(True)).count(),
            "banned": db.query(User).filter(User.status == "banned").count(),
        },
        "tasks": {
            "total": db.query(Task).count(),
            "active": db.query(Task).filter(Task.status == "active").count(),
            "completed": db.query(Task).filter(Task.status == "completed").count(),
        },
        "notifications": {
            "active": db.query(Notification).filter(Notification.status == "active").count(),
        },
        "subscriptions": {
            "active": db.query(Subscription).filter(Subscription.status == "active").count(),
        },
    }


def popular_categories(db: Session, limit: int = 5) -> list[dict]:
    return [{"category": r["value"], "count": r["count"]} for r in count_by(db, Task.category)[:limit]]


def top_users_by_streak(db: Session, limit: int = 5) -> list[User]:
    return (
        db.query(User)
        .filter(User.status == "active")
        .order_by(User.streak.desc(), User.id.asc())
        .limit(limit)
        .all()
    )
