from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import (
    NotificationCreate,
    NotificationFromTemplateIn,
    NotificationLogOut,
    NotificationLogStatusIn,
    NotificationOut,
    NotificationTemplateCreate,
    NotificationTemplateOut,
    NotificationTemplateUpdate,
    NotificationUpdate,
    TemplateRenderIn,
    page_of,
)
from app.security.auth import require_admin
from app.services import audit, notification_templates, notifications

router = APIRouter(prefix="/notifications", tags=["notifications"], dependencies=[Depends(require_admin)])

STATUS_ACTIONS = {"pause": "paused", "resume": "active", "complete": "completed", "cancel": "cancelled"}

@router.get("")
def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: str | None = None,
    status: str | None = None,
    target_group: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = notifications.list_notifications(
        db, page, limit, type=type, status=status, target_group=target_group, search=search,
    )
    return page_of(NotificationOut, items, pagination)

@router.get("/stats")
def notification_stats(db: Session = Depends(get_db)):
    return notifications.notification_stats(db)

@router.get("/upcoming", response_model=list[NotificationOut])
def upcoming_notifications(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    return notifications.upcoming(db, limit)

@router.post("/process", response_model=list[NotificationOut])
def process_notifications(
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    sent = notifications.process_due_notifications(db)
    audit.log_action(db, admin, "process", "notification", None, {"sent": len(sent)}, request)
    return sent

# Templates

@router.get("/templates")
def list_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = notification_templates.list_templates(
        db, page, limit, type=type, is_active=is_active, search=search,
    )
    return page_of(NotificationTemplateOut, items, pagination)

@router.get("/templates/stats")
def template_stats(db: Session = Depends(get_db)):
    return notification_templates.template_stats(db)

@router.post("/templates/defaults", response_model=list[NotificationTemplateOut])
def seed_default_templates(
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    created = notification_templates.seed_defaults(db)
    audit.log_action(db, admin, "seed", "notification_template", None, {"created": len(created)}, request)
    return created

@router.get("/templates/{template_id}", response_model=NotificationTemplateOut)
def get_template(template_id: int, db: Session = Depends(get_db)):
    return notification_templates.get_template(db, template_id)

@router.post("/templates", response_model=NotificationTemplateOut, status_code=201)
def create_template(
    payload: NotificationTemplateCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = notification_templates.create_template(db, payload.model_dump())
    audit.log_action(db, admin, "create", "notification_template", item.id, {"name": item.name}, request)
    return item

@router.put("/templates/{template_id}", response_model=NotificationTemplateOut)
def update_template(
    template_id: int,
    payload: NotificationTemplateUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    item = notification_templates.update_template(db, template_id, changes)
    audit.log_action(db, admin, "update", "notification_template", item.id, {"fields": sorted(changes)}, request)
    return item

@router.delete("/templates/{template_id}", status_code=204)
def delete_template(
    template_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    notification_templates.delete_template(db, template_id)
    audit.log_action(db, admin, "delete", "notification_template", template_id, None, request)

@router.post("/templates/{template_id}/render")
def render_template(template_id: int, payload: TemplateRenderIn, db: Session = Depends(get_db)):
    template = notification_templates.get_template(db, template_id)
    return notification_templates.render(template, payload.values)

@router.post("/from-template", response_model=NotificationOut, status_code=201)
def create_from_template(
    payload: NotificationFromTemplateIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    template = notification_templates.get_template(db, payload.template_id)
    data = payload.model_dump(exclude={"template_id", "values"})
    item = notifications.create_from_template(db, template, payload.values, data)
    audit.log_action(db, admin, "create", "notification", item.id, {"template_id": template.id}, request)
    return item

# Delivery logs

@router.get("/logs")
def list_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    type: str | None = None,
    user_id: int | None = None,
    notification_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = notifications.list_logs(
        db, page, limit, status=status, type=type, user_id=user_id, notification_id=notification_id,
        date_from=date_from, date_to=date_to, search=search,
    )
    return page_of(NotificationLogOut, items, pagination)

@router.get("/logs/analytics")
def log_analytics(
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    db: Session = Depends(get_db),
):
    return notifications.log_analytics(db, date_from, date_to)

@router.get("/logs/stats")
def log_period_stats(db: Session = Depends(get_db)):
    return notifications.log_period_stats(db)

@router.get("/logs/{log_id}", response_model=NotificationLogOut)
def get_log(log_id: int, db: Session = Depends(get_db)):
    return notifications.get_log(db, log_id)

@router.post("/logs/{log_id}/receipt", response_model=NotificationLogOut)
def record_receipt(log_id: int, payload: NotificationLogStatusIn, db: Session = Depends(get_db)):
    return notifications.record_receipt(db, log_id, payload.status, payload.error_message)

@router.get("/{notification_id}", response_model=NotificationOut)
def get_notification(notification_id: int, db: Session = Depends(get_db)):
    return notifications.get_notification(db, notification_id)

@router.post("", response_model=NotificationOut, status_code=201)
def create_notification(
    payload: NotificationCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = notifications.create_notification(db, payload.model_dump())
    audit.log_action(db, admin, "create", "notification", item.id, {"frequency": item.frequency}, request)
    return item

@router.put("/{notification_id}", response_model=NotificationOut)
def update_notification(
    notification_id: int,
    payload: NotificationUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    item = notifications.update_notification(db, notification_id, changes)
    audit.log_action(db, admin, "update", "notification", item.id, {"fields": sorted(changes)}, request)
    return item

@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    notifications.delete_notification(db, notification_id)
    audit.log_action(db, admin, "delete", "notification", notification_id, None, request)

@router.post("/{notification_id}/{action}", response_model=NotificationOut)
def change_status(
    notification_id: int,
    action: Literal["pause", "resume", "complete", "cancel"],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = notifications.set_status(db, notification_id, STATUS_ACTIONS[action])
    audit.log_action(db, admin, action, "notification", item.id, None, request)
    return item
