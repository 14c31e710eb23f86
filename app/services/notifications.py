import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import Notification, NotificationLog
from app.services.common import add_months, as_utc, count_by, paginate, search_filter, utcnow
from app.services import notification_templates

logger = logging.getLogger(__name__)

TYPES = ("push", "email", "in_app")
STATUSES = ("active", "paused", "completed", "cancelled")
FREQUENCIES = ("once", "daily", "weekly", "monthly")
LOG_STATUSES = ("sent", "delivered", "read", "clicked", "failed")
# Receipt status -> timestamp column, in delivery order
RECEIPT_STAGES = (("delivered", "delivered_at"), ("read", "read_at"), ("clicked", "clicked_at"))


def next_occurrence(scheduled_at: datetime, frequency: str) -> datetime | None:
    if frequency == "daily":
        return scheduled_at + timedelta(days=1)
    if frequency == "weekly":
        return scheduled_at + timedelta(days=7)
    if frequency == "monthly":
        return add_months(scheduled_at)
    return None


def _validate(data: dict) -> None:
    if data.get("type") and data["type"] not in TYPES:
        raise validation_error(f"Invalid notification type: {data['type']}")
    if data.get("status") and data["status"] not in STATUSES:
        raise validation_error(f"Invalid notification status: {data['status']}")
    if data.get("frequency") and data["frequency"] not in FREQUENCIES:
        raise validation_error(f"Invalid frequency: {data['frequency']}")


def get_notification(db: Session, notification_id: int) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise not_found("Notification")
    return notification


def list_notifications(
    db: Session,
    page: int = 1,
    limit: int = 10,
    type: str | None = None,
    status: str | None = None,
    target_group: str | None = None,
    search: str | None = None,
):
    query = db.query(Notification)
    if type:
        query = query.filter(Notification.type == type)
    if status:
        query = query.filter(Notification.status == status)
    if target_group:
        query = query.filter(Notification.target_group == target_group)
    condition = search_filter(search, [Notification.title, Notification.message])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Notification.scheduled_at.desc(), Notification.id.desc()), page, limit)


def create_notification(db: Session, data: dict) -> Notification:
    _validate(data)
    data = {k: v for k, v in data.items() if v is not None}
    data["status"] = "active"
    notification = Notification(**data)
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def update_notification(db: Session, notification_id: int, data: dict) -> Notification:
    _validate(data)
    notification = get_notification(db, notification_id)
    for key, value in data.items():
        setattr(notification, key, value)
    db.commit()
    db.refresh(notification)
    return notification


def delete_notification(db: Session, notification_id: int) -> None:
    notification = get_notification(db, notification_id)
    db.delete(notification)
    db.commit()


def set_status(db: Session, notification_id: int, status: str) -> Notification:
    return update_notification(db, notification_id, {"status": status})


def notification_stats(db: Session) -> dict:
    by_status = {s: 0 for s in STATUSES}
    for row in count_by(db, Notification.status):
        by_status[row["value"]] = row["count"]
    return {
        "total": db.query(Notification).count(),
        "by_status": by_status,
        "by_type": count_by(db, Notification.type),
    }


def upcoming(db: Session, limit: int = 10) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.status == "active", Notification.scheduled_at >= utcnow())
        .order_by(Notification.scheduled_at.asc())
        .limit(limit)
        .all()
    )


def process_due_notifications(db: Session, now: datetime | None = None) -> list[Notification]:
    """
    "Sends" every active notification whose time has come.

    One-off notifications are completed afterwards; recurring ones move their
    schedule one period forward. Each send writes a delivery log in "sent"
    state; the app's receipts move it on from there.
    """
    now = now or utcnow()
    due = (
        db.query(Notification)
        .filter(Notification.status == "active", Notification.scheduled_at <= now)
        .order_by(Notification.scheduled_at.asc())
        .all()
    )

    for notification in due:
        notification.sent_count = (notification.sent_count or 0) + 1
        notification.last_sent_at = now
        db.add(NotificationLog(
            notification_id=notification.id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            status="sent",
            sent_at=now,
        ))
        following = next_occurrence(as_utc(notification.scheduled_at), notification.frequency)
        if following is None:
            notification.status = "completed"
        else:
            notification.scheduled_at = following
        logger.info(
            "Notification sent",
            extra={"notification_id": notification.id, "frequency": notification.frequency},
        )

    if due:
        db.commit()
    return due


def create_from_template(db: Session, template, values: dict, data: dict) -> Notification:
    if not template.is_active:
        raise validation_error(f"Template '{template.name}' is inactive")
    rendered = notification_templates.render(template, values)
    return create_notification(db, {**data, "title": rendered["subject"], "message": rendered["content"]})


# Delivery logs

def get_log(db: Session, log_id: int) -> NotificationLog:
    log = db.query(NotificationLog).filter(NotificationLog.id == log_id).first()
    if not log:
        raise not_found("Notification log")
    return log


def _logs_query(db: Session, date_from: datetime | None = None, date_to: datetime | None = None):
    query = db.query(NotificationLog)
    if date_from:
        query = query.filter(NotificationLog.sent_at >= date_from)
    if date_to:
        query = query.filter(NotificationLog.sent_at <= date_to)
    return query


def list_logs(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    type: str | None = None,
    user_id: int | None = None,
    notification_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
):
    query = _logs_query(db, date_from, date_to)
    if status:
        query = query.filter(NotificationLog.status == status)
    if type:
        query = query.filter(NotificationLog.type == type)
    if user_id:
        query = query.filter(NotificationLog.user_id == user_id)
    if notification_id:
        query = query.filter(NotificationLog.notification_id == notification_id)
    condition = search_filter(search, [NotificationLog.title, NotificationLog.message])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc()), page, limit)


def record_receipt(
    db: Session,
    log_id: int,
    status: str,
    error_message: str | None = None,
    now: datetime | None = None,
) -> NotificationLog:
    """
    Moves a log to delivered, read, clicked or failed. A later stage also
    stamps the earlier ones it implies (a click means the message was read).
    """
    if status not in LOG_STATUSES or status == "sent":
        raise validation_error(f"Invalid receipt status: {status}")
    log = get_log(db, log_id)
    now = now or utcnow()

    if status == "failed":
        log.status = "failed"
        log.error_message = error_message or "Delivery failed"
    else:
        if log.status == "failed":
            raise validation_error("Failed deliveries cannot receive receipts")
        for stage, column in RECEIPT_STAGES:
            if getattr(log, column) is None:
                setattr(log, column, now)
            if stage == status:
                break
        current = LOG_STATUSES.index(log.status)
        log.status = LOG_STATUSES[max(current, LOG_STATUSES.index(status))]

    db.commit()
    db.refresh(log)
    return log


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def _funnel(db: Session, date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    query = _logs_query(db, date_from, date_to)
    return {
        "sent": query.count(),
        "delivered": query.filter(NotificationLog.delivered_at.isnot(None)).count(),
        "read": query.filter(NotificationLog.read_at.isnot(None)).count(),
        "clicked": query.filter(NotificationLog.clicked_at.isnot(None)).count(),
        "failed": query.filter(NotificationLog.status == "failed").count(),
    }


def log_analytics(db: Session, date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    funnel = _funnel(db, date_from, date_to)
    return {
        **{f"total_{stage}": count for stage, count in funnel.items()},
        "delivery_rate": _rate(funnel["delivered"], funnel["sent"]),
        "open_rate": _rate(funnel["read"], funnel["delivered"]),
        "click_rate": _rate(funnel["clicked"], funnel["read"]),
        "by_type": count_by(db, NotificationLog.type),
    }


def log_period_stats(db: Session, now: datetime | None = None) -> dict:
    """Delivery funnel for today, the last seven days and the calendar month."""
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "today": _funnel(db, today, now),
        "this_week": _funnel(db, today - timedelta(days=7), now),
        "this_month": _funnel(db, today.replace(day=1), now),
    }
