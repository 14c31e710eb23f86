import csv
import io
import logging
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import Message
from app.services.common import count_by, paginate, search_filter, utcnow

logger = logging.getLogger(__name__)

TYPES = ("bug", "feedback", "support", "system")
STATUSES = ("pending", "read", "replied")
PRIORITIES = ("low", "medium", "high", "urgent")
URGENT_TYPES = ("bug", "support")
CSV_HEADERS = ["ID", "Sender", "Title", "Type", "Status", "Priority", "Message", "Created At"]


def _validate(data: dict) -> None:
    if data.get("type") and data["type"] not in TYPES:
        raise validation_error(f"Invalid message type: {data['type']}")
    if data.get("status") and data["status"] not in STATUSES:
        raise validation_error(f"Invalid message status: {data['status']}")
    if data.get("priority") and data["priority"] not in PRIORITIES:
        raise validation_error(f"Invalid priority: {data['priority']}")


def _filtered(db: Session, type=None, status=None, priority=None, user_id=None, search=None):
    query = db.query(Message)
    if type:
        query = query.filter(Message.type == type)
    if status:
        query = query.filter(Message.status == status)
    if priority:
        query = query.filter(Message.priority == priority)
    if user_id:
        query = query.filter(Message.user_id == user_id)
    condition = search_filter(search, [Message.title, Message.message, Message.sender])
    if condition is not None:
        query = query.filter(condition)
    return query.order_by(Message.created_at.desc(), Message.id.desc())


def list_messages(db: Session, page: int = 1, limit: int = 10, **filters):
    return paginate(_filtered(db, **filters), page, limit)


def get_message(db: Session, message_id: int) -> Message:
    message = db.query(Message).filter(Message.id == message_id).first()
    if not message:
        raise not_found("Message")
    return message


def create_message(db: Session, data: dict) -> Message:
    """New inbox entries always start out pending."""
    _validate(data)
    data = {k: v for k, v in data.items() if v is not None}
    data["status"] = "pending"
    message = Message(**data)
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def update_message(db: Session, message_id: int, data: dict) -> Message:
    _validate(data)
    message = get_message(db, message_id)
    for key, value in data.items():
        setattr(message, key, value)
    db.commit()
    db.refresh(message)
    return message


def delete_message(db: Session, message_id: int) -> None:
    message = get_message(db, message_id)
    db.delete(message)
    db.commit()


def mark_read(db: Session, message_id: int) -> Message:
    message = get_message(db, message_id)
    # A replied message stays replied
    if message.status == "pending":
        message.status = "read"
        db.commit()
        db.refresh(message)
    return message


def reply(db: Session, message_id: int, text: str, sender: str) -> Message:
    """
    Answers a message. The original is marked replied and the answer is
    stored as a system message addressed to the same user.
    """
    if not text or not text.strip():
        raise validation_error("Reply text is required")
    original = get_message(db, message_id)
    original.status = "replied"
    answer = Message(
        user_id=original.user_id,
        reply_to_id=original.id,
        sender=sender,
        title=f"Re: {original.title}",
        message=text.strip(),
        type="system",
        status="read",
        priority=original.priority,
    )
    db.add(answer)
    db.commit()
    db.refresh(answer)
    logger.info("Message replied", extra={"message_id": original.id, "reply_id": answer.id})
    return answer


def bulk_action(db: Session, message_ids: list[int], action: str) -> int:
    query = db.query(Message).filter(Message.id.in_(message_ids))
    if action == "delete":
        count = query.delete(synchronize_session=False)
    elif action in STATUSES:
        count = query.update({Message.status: action}, synchronize_session=False)
    else:
        raise validation_error(f"Unknown bulk action: {action}")
    db.commit()
    return count


def message_stats(db: Session) -> dict:
    by_status = {s: 0 for s in STATUSES}
    for row in count_by(db, Message.status):
        by_status[row["value"]] = row["count"]
    return {
        "total": db.query(Message).count(),
        **by_status,
        "by_type": count_by(db, Message.type),
        "by_priority": count_by(db, Message.priority),
    }


def categories(db: Session) -> list[dict]:
    return [{"type": r["value"], "count": r["count"]} for r in count_by(db, Message.type)]


def urgent(db: Session, limit: int = 10) -> list[Message]:
    """Pending bug reports and support requests, oldest first."""
    return (
        db.query(Message)
        .filter(Message.status == "pending", Message.type.in_(URGENT_TYPES))
        .order_by(Message.created_at.asc(), Message.id.asc())
        .limit(limit)
        .all()
    )


def oldest_pending(db: Session, limit: int = 10) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.status == "pending")
        .order_by(Message.created_at.asc(), Message.id.asc())
        .limit(limit)
        .all()
    )


def daily_counts(db: Session, days: int = 30) -> list[dict]:
    since = utcnow() - timedelta(days=days)
    day = func.date(Message.created_at)
    rows = (
        db.query(day, func.count())
        .filter(Message.created_at >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [{"date": str(d), "count": n} for d, n in rows]


def export_messages(db: Session, fmt: str = "csv", **filters):
    messages = _filtered(db, **filters).all()
    if fmt == "json":
        return [
            {
                "id": m.id,
                "sender": m.sender,
                "title": m.title,
                "type": m.type,
                "status": m.status,
                "priority": m.priority,
                "message": m.message,
                "tags": m.tags or [],
                "created_at": m.created_at.isoformat() if m.created_at else None,
            }
            for m in messages
        ]

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for m in messages:
        writer.writerow([
            m.id, m.sender, m.title, m.type, m.status, m.priority, m.message,
            m.created_at.isoformat() if m.created_at else "",
        ])
    return buffer.getvalue()
