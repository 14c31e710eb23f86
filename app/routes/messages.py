from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import BulkActionIn, MessageCreate, MessageOut, MessageReplyIn, MessageUpdate, page_of
from app.security.auth import require_admin
from app.security.rate_limit import export_rate_limit
from app.services import audit, messages

router = APIRouter(prefix="/messages", tags=["messages"], dependencies=[Depends(require_admin)])

@router.get("")
def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    user_id: int | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = messages.list_messages(
        db, page, limit, type=type, status=status, priority=priority, user_id=user_id, search=search,
    )
    return page_of(MessageOut, items, pagination)

@router.get("/stats")
def message_stats(db: Session = Depends(get_db)):
    return messages.message_stats(db)

@router.get("/categories")
def message_categories(db: Session = Depends(get_db)):
    return messages.categories(db)

@router.get("/urgent", response_model=list[MessageOut])
def urgent_messages(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return messages.urgent(db, limit)

@router.get("/oldest-pending", response_model=list[MessageOut])
def oldest_pending(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return messages.oldest_pending(db, limit)

@router.get("/analytics")
def message_analytics(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db)):
    return messages.daily_counts(db, days)

@router.get("/export")
@export_rate_limit
def export_messages(
    request: Request,
    format: Literal["csv", "json"] = "csv",
    type: str | None = None,
    status: str | None = None,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = messages.export_messages(db, format, type=type, status=status)
    audit.log_action(db, admin, "export", "message", None, {"format": format}, request)
    if format == "json":
        return data
    return Response(
        content=data,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="messages.csv"'},
    )

@router.post("/bulk")
def bulk_messages(
    payload: BulkActionIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = messages.bulk_action(db, payload.ids, payload.action)
    audit.log_action(db, admin, f"bulk_{payload.action}", "message", None, {"ids": payload.ids}, request)
    return {"affected": count}

@router.get("/{message_id}", response_model=MessageOut)
def get_message(message_id: int, db: Session = Depends(get_db)):
    return messages.get_message(db, message_id)

@router.post("", response_model=MessageOut, status_code=201)
def create_message(
    payload: MessageCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = messages.create_message(db, payload.model_dump())
    audit.log_action(db, admin, "create", "message", item.id, {"type": item.type}, request)
    return item

@router.put("/{message_id}", response_model=MessageOut)
def update_message(
    message_id: int,
    payload: MessageUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    item = messages.update_message(db, message_id, changes)
    audit.log_action(db, admin, "update", "message", item.id, {"fields": sorted(changes)}, request)
    return item

@router.delete("/{message_id}", status_code=204)
def delete_message(
    message_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    messages.delete_message(db, message_id)
    audit.log_action(db, admin, "delete", "message", message_id, None, request)

@router.post("/{message_id}/read", response_model=MessageOut)
def mark_read(message_id: int, db: Session = Depends(get_db)):
    return messages.mark_read(db, message_id)

@router.post("/{message_id}/reply", response_model=MessageOut, status_code=201)
def reply_to_message(
    message_id: int,
    payload: MessageReplyIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    answer = messages.reply(db, message_id, payload.message, admin.name or admin.email)
    audit.log_action(db, admin, "reply", "message", message_id, {"reply_id": answer.id}, request)
    return answer
