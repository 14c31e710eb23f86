from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.logging_setup import log_event
from app.models import AdminUser
from app.schemas import (
    AIBulkGenerateIn,
    AIGenerateIn,
    BulkStatusIn,
    IdsIn,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    page_of,
)
from app.security.auth import require_admin
from app.security.rate_limit import ai_rate_limit
from app.services import audit, tasks

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_admin)])

@router.get("")
def list_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    user_id: int | None = None,
    category: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = tasks.list_tasks(
        db, page, limit,
        status=status, user_id=user_id, category=category, difficulty=difficulty, search=search,
    )
    return page_of(TaskOut, items, pagination)

@router.get("/stats")
def task_stats(db: Session = Depends(get_db)):
    return tasks.task_stats(db)

@router.get("/categories")
def task_categories(db: Session = Depends(get_db)):
    return tasks.task_categories(db)

@router.get("/performance")
def category_performance(db: Session = Depends(get_db)):
    return tasks.category_performance(db)

@router.get("/upcoming", response_model=list[TaskOut])
def upcoming_tasks(days: int = Query(7, ge=1, le=365), db: Session = Depends(get_db)):
    return tasks.upcoming_tasks(db, days)

@router.get("/overdue", response_model=list[TaskOut])
def overdue_tasks(db: Session = Depends(get_db)):
    return tasks.overdue_tasks(db)

@router.post("/expire-overdue")
def expire_overdue(
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = tasks.expire_overdue_tasks(db)
    audit.log_action(db, admin, "expire_overdue", "task", None, {"count": count}, request)
    return {"expired": count}

@router.post("/ai-generate", response_model=list[TaskOut], status_code=201)
@ai_rate_limit
def ai_generate(
    payload: AIGenerateIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    created = tasks.generate_for_user(db, payload.user_id, payload.relapse_id, payload.task_type)
    audit.log_action(
        db, admin, "ai_generate", "task", None,
        {"user_id": payload.user_id, "task_type": payload.task_type, "count": len(created)},
        request,
    )
    log_event("ai_tasks_generated", user_id=payload.user_id, count=len(created))
    return created

@router.put("/ai-generate")
@ai_rate_limit
def ai_generate_bulk(
    payload: AIBulkGenerateIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = tasks.generate_for_users(db, payload.user_ids, payload.exclude_user_ids)
    audit.log_action(
        db, admin, "ai_generate_bulk", "task", None,
        {"total_users": result["total_users"], "total_tasks": result["total_tasks"], "errors": len(result["errors"])},
        request,
    )
    return result

@router.post("/bulk/status")
def bulk_status(
    payload: BulkStatusIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = tasks.bulk_update_status(db, payload.ids, payload.status)
    audit.log_action(db, admin, "bulk_status", "task", None, {"ids": payload.ids, "status": payload.status}, request)
    return {"updated": count}

@router.post("/bulk/delete")
def bulk_delete(
    payload: IdsIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = tasks.bulk_delete(db, payload.ids)
    audit.log_action(db, admin, "bulk_delete", "task", None, {"ids": payload.ids}, request)
    return {"deleted": count}

@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db)):
    return tasks.get_task(db, task_id)

@router.post("", response_model=TaskOut, status_code=201)
def create_task(
    payload: TaskCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    task = tasks.create_task(db, payload.model_dump(exclude_none=True))
    audit.log_action(db, admin, "create", "task", task.id, {"user_id": task.user_id}, request)
    return task

@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    task = tasks.update_task(db, task_id, changes)
    audit.log_action(db, admin, "update", "task", task.id, {"fields": sorted(changes)}, request)
    return task

@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    tasks.delete_task(db, task_id)
    audit.log_action(db, admin, "delete", "task", task_id, None, request)

@router.post("/{task_id}/complete", response_model=TaskOut)
def complete_task(
    task_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    task = tasks.complete_task(db, task_id)
    audit.log_action(db, admin, "complete", "task", task.id, None, request)
    return task

@router.post("/{task_id}/regenerate", response_model=TaskOut)
@ai_rate_limit
def regenerate_task(
    task_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    task = tasks.regenerate_task(db, task_id)
    audit.log_action(db, admin, "regenerate", "task", task.id, {"title": task.title}, request)
    return task
