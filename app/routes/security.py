from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import AuditLogOut, BlockedIPOut, BlockIPIn, page_of
from app.security.auth import require_admin
from app.security.rate_limit import export_rate_limit
from app.services import audit, blocked_ips

router = APIRouter(prefix="/security", tags=["security"], dependencies=[Depends(require_admin)])

# Blocked IPs

@router.get("/blocked-ips")
def list_blocked_ips(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = blocked_ips.list_blocked_ips(db, page, limit, status=status, search=search)
    return page_of(BlockedIPOut, items, pagination)

@router.get("/blocked-ips/stats")
def blocked_ip_stats(db: Session = Depends(get_db)):
    return blocked_ips.block_stats(db)

@router.get("/blocked-ips/check/{ip}")
def check_ip(ip: str, db: Session = Depends(get_db)):
    return {"ip": ip, "blocked": blocked_ips.is_ip_blocked(db, ip)}

@router.post("/blocked-ips", response_model=BlockedIPOut, status_code=201)
def block_ip(
    payload: BlockIPIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    block = blocked_ips.block_ip(
        db,
        payload.ip,
        payload.reason,
        blocked_by=admin.email,
        status=payload.status,
        expires_at=payload.expires_at,
        location=payload.location,
    )
    audit.log_action(db, admin, "block", "blocked_ip", block.id, {"ip": block.ip, "status": block.status}, request)
    return block

@router.delete("/blocked-ips/{block_id}", status_code=204)
def unblock_ip(
    block_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ip = blocked_ips.unblock_ip(db, block_id)
    audit.log_action(db, admin, "unblock", "blocked_ip", block_id, {"ip": ip}, request)

@router.post("/blocked-ips/cleanup")
def cleanup_blocks(
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = blocked_ips.cleanup_expired_blocks(db)
    audit.log_action(db, admin, "cleanup", "blocked_ip", None, {"expired": count}, request)
    return {"expired": count}

# Audit log

@router.get("/audit")
def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    action: str | None = None,
    resource: str | None = None,
    admin_id: int | None = None,
    window: Literal["today", "week", "month"] | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = audit.list_logs(
        db, page, limit,
        action=action, resource=resource, admin_id=admin_id,
        window=window, date_from=date_from, date_to=date_to, search=search,
    )
    return page_of(AuditLogOut, items, pagination)

@router.get("/audit/stats")
def audit_stats(db: Session = Depends(get_db)):
    return audit.audit_stats(db)

@router.get("/audit/export")
@export_rate_limit
def export_audit_logs(
    request: Request,
    action: str | None = None,
    resource: str | None = None,
    window: Literal["today", "week", "month"] | None = None,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    content = audit.export_csv(db, action=action, resource=resource, window=window)
    audit.log_action(db, admin, "export", "audit_log", None, {"action": action, "resource": resource}, request)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="audit-log.csv"'},
    )

@router.get("/audit/trail/{resource}/{resource_id}", response_model=list[AuditLogOut])
def resource_trail(resource: str, resource_id: str, db: Session = Depends(get_db)):
    return audit.resource_trail(db, resource, resource_id)

@router.get("/audit/{log_id}", response_model=AuditLogOut)
def get_audit_log(log_id: int, db: Session = Depends(get_db)):
    return audit.get_log(db, log_id)
