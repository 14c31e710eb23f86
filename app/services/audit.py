import csv
import io
import json
import logging
from datetime import datetime
from typing import Any

from fastapi import Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found
from app.models import AdminUser, AuditLog
from app.security.rbac import client_ip
from app.services.common import count_by, paginate, search_filter, utcnow, window_start

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "id", "created_at", "action", "resource", "resource_id",
    "admin_id", "admin_name", "ip_address", "user_agent", "details",
]


def log_action(
    db: Session,
    admin: AdminUser | None,
    action: str,
    resource: str,
    resource_id: Any = None,
    details: dict | None = None,
    request: Request | None = None,
) -> AuditLog:
    """Records an admin action. The caller's transaction is committed."""
    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = client_ip(request)
        user_agent = request.headers.get("user-agent")

    entry = AuditLog(
        action=action,
        resource=resource,
        resource_id=str(resource_id) if resource_id is not None else None,
        admin_id=admin.id if admin else None,
        admin_name=(admin.name or admin.email) if admin else "system",
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def _filtered(
    db: Session,
    action: str | None = None,
    resource: str | None = None,
    admin_id: int | None = None,
    window: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
):
    query = db.query(AuditLog)
    if action:
        query = query.filter(AuditLog.action == action)
    if resource:
        query = query.filter(AuditLog.resource == resource)
    if admin_id:
        query = query.filter(AuditLog.admin_id == admin_id)
    start = date_from or window_start(window)
    if start:
        query = query.filter(AuditLog.created_at >= start)
    if date_to:
        query = query.filter(AuditLog.created_at <= date_to)
    condition = search_filter(search, [AuditLog.action, AuditLog.resource, AuditLog.admin_name, AuditLog.resource_id])
    if condition is not None:
        query = query.filter(condition)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())


def list_logs(db: Session, page: int = 1, limit: int = 10, **filters):
    return paginate(_filtered(db, **filters), page, limit)


def get_log(db: Session, log_id: int) -> AuditLog:
    entry = db.query(AuditLog).filter(AuditLog.id == log_id).first()
    if not entry:
        raise not_found("Audit log")
    return entry


def resource_trail(db: Session, resource: str, resource_id: str) -> list[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.resource == resource, AuditLog.resource_id == str(resource_id))
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .all()
    )


def audit_stats(db: Session) -> dict:
    today = window_start("today")
    return {
        "total": db.query(AuditLog).count(),
        "today": db.query(AuditLog).filter(AuditLog.created_at >= today).count(),
        "unique_admins": db.query(func.count(func.distinct(AuditLog.admin_id))).scalar() or 0,
        "actions": count_by(db, AuditLog.action),
        "resources": count_by(db, AuditLog.resource),
    }


def export_csv(db: Session, **filters) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)
    for entry in _filtered(db, **filters).all():
        writer.writerow([
            entry.id,
            entry.created_at.isoformat() if entry.created_at else "",
            entry.action,
            entry.resource,
            entry.resource_id or "",
            entry.admin_id or "",
            entry.admin_name or "",
            entry.ip_address or "",
            entry.user_agent or "",
            json.dumps(entry.details) if entry.details is not None else "",
        ])
    logger.info("Audit log exported", extra={"exported_at": utcnow().isoformat()})
    return buffer.getvalue()
