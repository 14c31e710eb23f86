import logging
from datetime import timedelta
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import Relapse, Task, User
from app.services.common import count_by, paginate, search_filter, top_counts, utcnow
from app.services.task_generator import (
    ExistingTaskContext,
    GeneratedTask,
    GenerationRequest,
    SlipData,
    TaskGenerator,
    UserProfile,
)

logger = logging.getLogger(__name__)

TASK_STATUSES = ("active", "completed", "expired")
DIFFICULTY_MINUTES = {"easy": 15, "medium": 30, "hard": 60}
BULK_COUNT = 5
PERSONALIZED_COUNT = 3

_generator: TaskGenerator | None = None


def get_generator() -> TaskGenerator:
    global _generator
    if _generator is None:
        _generator = TaskGenerator()
    return _generator


def get_task(db: Session, task_id: int) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise not_found("Task")
    return task


def list_tasks(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    user_id: int | None = None,
    category: str | None = None,
    difficulty: str | None = None,
    search: str | None = None,
):
    query = db.query(Task)
    if status:
        query = query.filter(Task.status == status)
    if user_id:
        query = query.filter(Task.user_id == user_id)
    if category:
        query = query.filter(Task.category == category)
    if difficulty:
        query = query.filter(Task.difficulty == difficulty)
    condition = search_filter(search, [Task.title, Task.description, Task.user_name, Task.category])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Task.created_at.desc(), Task.id.desc()), page, limit)


def _user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("User")
    return user


def create_task(db: Session, data: dict) -> Task:
    user = _user_or_404(db, data["user_id"])
    data = dict(data)
    data.setdefault("status", "active")
    if data.get("ai_confidence") is None:
        data["ai_confidence"] = 85
    task = Task(user_name=user.name or user.email, **data)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, task_id: int, data: dict) -> Task:
    task = get_task(db, task_id)
    if data.get("status") and data["status"] not in TASK_STATUSES:
        raise validation_error(f"Invalid task status: {data['status']}")
    for key, value in data.items():
        setattr(task, key, value)
    if data.get("status") == "completed" and not task.completed_at:
        task.completed_at = utcnow()
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task_id: int) -> None:
    task = get_task(db, task_id)
    db.delete(task)
    db.commit()


def complete_task(db: Session, task_id: int) -> Task:
    """Marks the task completed and extends the owner's streak by one."""
    task = get_task(db, task_id)
    now = utcnow()
    task.status = "completed"
    task.completed_at = now
    if task.user:
        task.user.streak = (task.user.streak or 0) + 1
        task.user.last_activity = now
    db.commit()
    db.refresh(task)
    logger.info("Task completed", extra={"task_id": task.id, "user_id": task.user_id})
    return task


def bulk_update_status(db: Session, task_ids: list[int], status: str) -> int:
    if status not in TASK_STATUSES:
        raise validation_error(f"Invalid task status: {status}")
    values = {Task.status: status}
    if status == "completed":
        values[Task.completed_at] = utcnow()
    count = db.query(Task).filter(Task.id.in_(task_ids)).update(values, synchronize_session=False)
    db.commit()
    return count


def bulk_delete(db: Session, task_ids: list[int]) -> int:
    count = db.query(Task).filter(Task.id.in_(task_ids)).delete(synchronize_session=False)
    db.commit()
    return count


def task_stats(db: Session) -> dict:
    stats = {"total": db.query(Task).count()}
    for status in TASK_STATUSES:
        stats[status] = db.query(Task).filter(Task.status == status).count()
    return stats


def task_categories(db: Session) -> list[dict]:
    return [{"category": row["value"], "count": row["count"]} for row in count_by(db, Task.category)]


def category_performance(db: Session) -> list[dict]:
    rows = (
        db.query(Task.category, Task.status, func.count())
        .group_by(Task.category, Task.status)
        .all()
    )
    totals: dict[str, dict[str, int]] = {}
    for category, status, count in rows:
        entry = totals.setdefault(category, {"total": 0, "completed": 0})
        entry["total"] += count
        if status == "completed":
            entry["completed"] += count

    result = []
    for category, entry in totals.items():
        rate = entry["completed"] / entry["total"] * 100 if entry["total"] else 0
        result.append({
            "category": category,
            "total": entry["total"],
            "completed": entry["completed"],
            "completion_rate": round(rate, 1),
        })
    result.sort(key=lambda r: r["completion_rate"], reverse=True)
    return result


def upcoming_tasks(db: Session, days: int = 7) -> list[Task]:
    now = utcnow()
    return (
        db.query(Task)
        .filter(Task.status == "active", Task.due_date >= now, Task.due_date <= now + timedelta(days=days))
        .order_by(Task.due_date.asc())
        .all()
    )


def overdue_tasks(db: Session) -> list[Task]:
    return (
        db.query(Task)
        .filter(Task.status == "active", Task.due_date < utcnow())
        .order_by(Task.due_date.asc())
        .all()
    )


def expire_overdue_tasks(db: Session) -> int:
    tasks = overdue_tasks(db)
    for task in tasks:
        task.status = "expired"
    if tasks:
        db.commit()
    logger.info("Overdue tasks expired", extra={"count": len(tasks)})
    return len(tasks)


# AI generation

def build_user_profile(db: Session, user: User) -> UserProfile:
    """Summarizes the user's recent task history for the generator."""
    completed = (
        db.query(Task)
        .filter(Task.user_id == user.id, Task.status == "completed")
        .order_by(Task.completed_at.desc(), Task.id.desc())
        .limit(10)
        .all()
    )
    failed = (
        db.query(Task)
        .filter(Task.user_id == user.id, Task.status == "expired")
        .order_by(Task.updated_at.desc(), Task.id.desc())
        .limit(10)
        .all()
    )

    finished = completed + failed
    if finished:
        minutes = [DIFFICULTY_MINUTES.get(t.difficulty, 30) for t in finished]
        average = sum(minutes) / len(minutes)
    else:
        average = 30

    return UserProfile(
        id=user.id,
        name=user.name,
        email=user.email,
        streak=user.streak or 0,
        plan=user.plan,
        is_premium=bool(user.is_premium),
        language=user.language,
        timezone=user.timezone,
        age=user.age,
        goals=user.goals or [],
        completed_tasks=len(completed),
        failed_tasks=len(failed),
        average_task_duration=average,
        preferred_categories=top_counts((t.category for t in completed), 3),
        avoided_categories=top_counts((t.category for t in failed), 2),
        motivation_level=user.motivation_level,
        stress_level=user.stress_level,
        social_support=user.social_support,
    )


def slip_from_relapse(relapse: Relapse) -> SlipData:
    return SlipData(
        reason=relapse.notes,
        triggers=[relapse.trigger] if relapse.trigger else [],
        mood=relapse.mood,
        time_of_day=relapse.time,
        created_at=relapse.date or relapse.created_at,
    )


def _recent_relapses(db: Session, user_id: int, limit: int = 5) -> list[Relapse]:
    return (
        db.query(Relapse)
        .filter(Relapse.user_id == user_id)
        .order_by(Relapse.date.desc(), Relapse.id.desc())
        .limit(limit)
        .all()
    )


def _category_history(db: Session, user_id: int, status: str | None = None) -> list[str]:
    query = db.query(Task.category).filter(Task.user_id == user_id)
    if status:
        query = query.filter(Task.status == status)
    rows = query.order_by(Task.created_at.desc(), Task.id.desc()).limit(5).all()
    return [row[0] for row in rows]


def _build_request(
    db: Session,
    user: User,
    task_type: str,
    count: int,
    slip: Relapse | None = None,
    existing_task: ExistingTaskContext | None = None,
) -> GenerationRequest:
    return GenerationRequest(
        user=build_user_profile(db, user),
        slip=slip_from_relapse(slip) if slip else None,
        recent_slips=[slip_from_relapse(r) for r in _recent_relapses(db, user.id)],
        task_type=task_type,
        count=count,
        existing_task=existing_task,
        recent_task_categories=_category_history(db, user.id),
        completed_task_categories=_category_history(db, user.id, "completed"),
        failed_task_categories=_category_history(db, user.id, "expired"),
    )


def _persist_generated(db: Session, user: User, generated: Iterable[GeneratedTask], relapse_id: int | None) -> list[Task]:
    tasks = []
    for item in generated:
        task = Task(
            user_id=user.id,
            user_name=user.name or user.email,
            relapse_id=relapse_id,
            status="active",
            title=item.title,
            description=item.description,
            category=item.category,
            difficulty=item.difficulty,
            due_date=item.due_date,
            ai_confidence=item.ai_confidence,
            estimated_duration=item.estimated_duration,
            tags=item.tags,
            motivational_message=item.motivational_message,
            tips=item.tips,
            expected_benefits=item.expected_benefits,
        )
        db.add(task)
        tasks.append(task)
    db.commit()
    for task in tasks:
        db.refresh(task)
    return tasks


def generate_for_user(
    db: Session,
    user_id: int,
    relapse_id: int | None = None,
    task_type: str = "single",
    generator: TaskGenerator | None = None,
) -> list[Task]:
    user = _user_or_404(db, user_id)
    relapse = None
    if relapse_id is not None:
        relapse = db.query(Relapse).filter(Relapse.id == relapse_id, Relapse.user_id == user.id).first()
        if not relapse:
            raise not_found("Relapse")

    count = BULK_COUNT if task_type == "bulk" else 1
    request = _build_request(db, user, task_type, count, slip=relapse)
    generated = (generator or get_generator()).generate_tasks(request)
    tasks = _persist_generated(db, user, generated, relapse.id if relapse else None)
    logger.info("Tasks generated for user", extra={"user_id": user.id, "count": len(tasks), "task_type": task_type})
    return tasks


def generate_for_users(
    db: Session,
    user_ids: list[int] | None = None,
    exclude_user_ids: Iterable[int] = (),
    generator: TaskGenerator | None = None,
) -> dict:
    """Generates a personalized batch per user; one user's failure does not stop the rest."""
    if user_ids:
        users = db.query(User).filter(User.id.in_(user_ids)).order_by(User.id).all()
    else:
        excluded = set(exclude_user_ids)
        users = [
            u for u in db.query(User).filter(User.status == "active").order_by(User.id).all()
            if u.id not in excluded
        ]

    generator = generator or get_generator()
    results = []
    errors = []
    for user in users:
        try:
            latest = _recent_relapses(db, user.id, limit=1)
            slip = latest[0] if latest else None
            request = _build_request(db, user, "personalized", PERSONALIZED_COUNT, slip=slip)
            tasks = _persist_generated(db, user, generator.generate_tasks(request), slip.id if slip else None)
            results.append({"user_id": user.id, "task_ids": [t.id for t in tasks], "count": len(tasks)})
        except Exception as e:
            db.rollback()
            logger.exception("Task generation failed for user %s", user.id)
            errors.append({"user_id": user.id, "error": str(e)})

    return {
        "results": results,
        "errors": errors,
        "total_users": len(users),
        "total_tasks": sum(r["count"] for r in results),
    }


def category_completion_rate(db: Session, user_id: int, category: str) -> float:
    total = db.query(Task).filter(Task.user_id == user_id, Task.category == category).count()
    if not total:
        return 0
    completed = (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.category == category, Task.status == "completed")
        .count()
    )
    return round(completed / total * 100, 1)


def regenerate_task(db: Session, task_id: int, generator: TaskGenerator | None = None) -> Task:
    """Replaces the task's content with a freshly generated, different task."""
    task = get_task(db, task_id)
    user = _user_or_404(db, task.user_id)

    existing = ExistingTaskContext(
        category=task.category,
        difficulty=task.difficulty,
        previous_title=task.title,
        previous_description=task.description,
        completion_rate=category_completion_rate(db, user.id, task.category),
    )
    request = _build_request(db, user, "regenerate", 1, existing_task=existing)
    generated = (generator or get_generator()).generate_tasks(request)
    if not generated:
        raise validation_error("No replacement task could be generated")

    item = generated[0]
    task.title = item.title
    task.description = item.description
    task.category = item.category
    task.difficulty = item.difficulty
    task.due_date = item.due_date
    task.ai_confidence = item.ai_confidence
    task.estimated_duration = item.estimated_duration
    task.tags = item.tags
    task.motivational_message = item.motivational_message
    task.tips = item.tips
    task.expected_benefits = item.expected_benefits
    task.status = "active"
    task.completed_at = None
    db.commit()
    db.refresh(task)
    logger.info("Task regenerated", extra={"task_id": task.id, "user_id": user.id})
    return task
