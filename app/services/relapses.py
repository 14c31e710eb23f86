from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import Relapse, User
from app.services.common import count_by, paginate, search_filter, window_start

SEVERITIES = ("low", "medium", "high")


def _validate(data: dict) -> None:
    if "severity" in data and data["severity"] not in SEVERITIES:
        raise validation_error(f"Invalid severity: {data['severity']}")
    if data.get("previous_streak") is not None and data["previous_streak"] < 0:
        raise validation_error("previous_streak cannot be negative")


def get_relapse(db: Session, relapse_id: int) -> Relapse:
    relapse = db.query(Relapse).filter(Relapse.id == relapse_id).first()
    if not relapse:
        raise not_found("Relapse")
    return relapse


def list_relapses(
    db: Session,
    page: int = 1,
    limit: int = 10,
    user_id: int | None = None,
    severity: str | None = None,
    window: str | None = None,
    search: str | None = None,
):
    query = db.query(Relapse)
    if user_id:
        query = query.filter(Relapse.user_id == user_id)
    if severity:
        query = query.filter(Relapse.severity == severity)
    start = window_start(window)
    if start:
        query = query.filter(Relapse.date >= start)
    condition = search_filter(search, [Relapse.trigger, Relapse.mood, Relapse.notes])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Relapse.date.desc(), Relapse.id.desc()), page, limit)


def create_relapse(db: Session, data: dict) -> Relapse:
    if not db.query(User).filter(User.id == data["user_id"]).first():
        raise not_found("User")
    _validate(data)
    relapse = Relapse(**{k: v for k, v in data.items() if v is not None})
    db.add(relapse)
    db.commit()
    db.refresh(relapse)
    return relapse


def update_relapse(db: Session, relapse_id: int, data: dict) -> Relapse:
    relapse = get_relapse(db, relapse_id)
    _validate(data)
    for key, value in data.items():
        setattr(relapse, key, value)
    db.commit()
    db.refresh(relapse)
    return relapse


def delete_relapse(db: Session, relapse_id: int) -> None:
    relapse = get_relapse(db, relapse_id)
    db.delete(relapse)
    db.commit()


def relapse_stats(db: Session) -> dict:
    total = db.query(Relapse).count()
    triggers = count_by(db, Relapse.trigger)[:5]
    trigger_total = sum(t["count"] for t in count_by(db, Relapse.trigger))
    average_streak = db.query(func.avg(Relapse.previous_streak)).scalar()

    return {
        "total": total,
        "today": db.query(Relapse).filter(Relapse.date >= window_start("today")).count(),
        "last_7_days": db.query(Relapse).filter(Relapse.date >= window_start("week")).count(),
        "last_month": db.query(Relapse).filter(Relapse.date >= window_start("month")).count(),
        "average_previous_streak": round(float(average_streak or 0), 1),
        "top_triggers": [
            {
                "trigger": t["value"],
                "count": t["count"],
                "percentage": round(t["count"] / trigger_total * 100, 1) if trigger_total else 0,
            }
            for t in triggers
        ],
    }
