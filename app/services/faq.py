import csv
import io
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import FAQ
from app.services.common import count_by, paginate, search_filter

logger = logging.getLogger(__name__)

LANGUAGES = ("tr", "en", "es", "fr", "de")
CSV_HEADERS = ["ID", "Question", "Answer", "Category", "Language", "Published", "Order", "Created At"]


def validate_faq_data(data: dict) -> list[str]:
    errors = []
    question = data.get("question")
    if question is not None:
        if len(question) < 5:
            errors.append("Question must be at least 5 characters long")
        if len(question) > 500:
            errors.append("Question must be less than 500 characters")
    answer = data.get("answer")
    if answer is not None:
        if len(answer) < 10:
            errors.append("Answer must be at least 10 characters long")
        if len(answer) > 5000:
            errors.append("Answer must be less than 5000 characters")
    category = data.get("category")
    if category is not None and not 2 <= len(category) <= 100:
        errors.append("Category must be between 2 and 100 characters")
    language = data.get("language")
    if language is not None and language not in LANGUAGES:
        errors.append(f"Language must be one of: {', '.join(LANGUAGES)}")
    if data.get("sort_order") is not None and data["sort_order"] < 0:
        errors.append("Order must be a positive number")
    return errors


def _check(data: dict) -> None:
    errors = validate_faq_data(data)
    if errors:
        raise validation_error("Invalid FAQ data", errors)


def _ordered(query):
    return query.order_by(FAQ.sort_order.asc(), FAQ.created_at.desc(), FAQ.id.desc())


def _filtered(db: Session, category=None, language=None, is_published=None, search=None):
    query = db.query(FAQ)
    if category:
        query = query.filter(FAQ.category == category)
    if language:
        query = query.filter(FAQ.language == language)
    if is_published is not None:
        query = query.filter(FAQ.is_published == is_published)
    condition = search_filter(search, [FAQ.question, FAQ.answer, FAQ.category])
    if condition is not None:
        query = query.filter(condition)
    return _ordered(query)


def list_faqs(db: Session, page: int = 1, limit: int = 10, **filters):
    return paginate(_filtered(db, **filters), page, limit)


def get_faq(db: Session, faq_id: int) -> FAQ:
    faq = db.query(FAQ).filter(FAQ.id == faq_id).first()
    if not faq:
        raise not_found("FAQ")
    return faq


def create_faq(db: Session, data: dict) -> FAQ:
    _check(data)
    data = dict(data)
    if data.get("is_published") is None:
        data["is_published"] = True
    if data.get("sort_order") is None:
        data["sort_order"] = 0
    faq = FAQ(**data)
    db.add(faq)
    db.commit()
    db.refresh(faq)
    return faq


def update_faq(db: Session, faq_id: int, data: dict) -> FAQ:
    _check(data)
    faq = get_faq(db, faq_id)
    for key, value in data.items():
        setattr(faq, key, value)
    db.commit()
    db.refresh(faq)
    return faq


def delete_faq(db: Session, faq_id: int) -> None:
    faq = get_faq(db, faq_id)
    db.delete(faq)
    db.commit()


def bulk_action(db: Session, faq_ids: list[int], action: str) -> int:
    query = db.query(FAQ).filter(FAQ.id.in_(faq_ids))
    if action == "publish":
        count = query.update({FAQ.is_published: True}, synchronize_session=False)
    elif action == "unpublish":
        count = query.update({FAQ.is_published: False}, synchronize_session=False)
    elif action == "delete":
        count = query.delete(synchronize_session=False)
    else:
        raise validation_error(f"Unknown bulk action: {action}")
    db.commit()
    return count


def reorder(db: Session, orders: list[dict]) -> int:
    """Applies [{"id": .., "order": ..}] positions."""
    updated = 0
    for entry in orders:
        if entry["order"] < 0:
            raise validation_error("Order must be a positive number")
        faq = get_faq(db, entry["id"])
        faq.sort_order = entry["order"]
        updated += 1
    db.commit()
    return updated


def categories(db: Session) -> list[dict]:
    return [{"category": r["value"], "count": r["count"]} for r in count_by(db, FAQ.category)]


def languages(db: Session) -> list[dict]:
    return [{"language": r["value"], "count": r["count"]} for r in count_by(db, FAQ.language)]


def search_published(db: Session, text: str, language: str | None = None, limit: int = 10) -> list[FAQ]:
    return _filtered(db, language=language, is_published=True, search=text).limit(limit).all()


def faq_stats(db: Session) -> dict:
    total = db.query(FAQ).count()
    published = db.query(FAQ).filter(FAQ.is_published.is_(True)).count()
    return {
        "total": total,
        "published": published,
        "unpublished": total - published,
        "publish_rate": round(published / total * 100, 1) if total else 0,
        "categories": len(count_by(db, FAQ.category)),
        "languages": len(count_by(db, FAQ.language)),
    }


def find_duplicates(db: Session, question: str, language: str, exclude_id: int | None = None) -> list[FAQ]:
    query = db.query(FAQ).filter(
        func.lower(FAQ.question) == question.strip().lower(),
        FAQ.language == language,
    )
    if exclude_id:
        query = query.filter(FAQ.id != exclude_id)
    return query.all()


def export_faqs(db: Session, fmt: str = "csv", **filters):
    faqs = _filtered(db, **filters).all()
    if fmt == "json":
        return [
            {
                "id": f.id,
                "question": f.question,
                "answer": f.answer,
                "category": f.category,
                "language": f.language,
                "is_published": f.is_published,
                "sort_order": f.sort_order,
                "tags": f.tags or [],
                "created_at": f.created_at.isoformat() if f.created_at else None,
            }
            for f in faqs
        ]

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(CSV_HEADERS)
    for f in faqs:
        writer.writerow([
            f.id, f.question, f.answer, f.category, f.language,
            "Yes" if f.is_published else "No",
            f.sort_order,
            f.created_at.isoformat() if f.created_at else "",
        ])
    return buffer.getvalue()


def import_faqs(db: Session, items: list[dict]) -> dict:
    results = {"success": 0, "failed": 0, "errors": []}
    for data in items:
        question = data.get("question") or ""
        errors = [f"{field} is required" for field in ("question", "answer", "category") if not data.get(field)]
        errors += validate_faq_data(data)
        if errors:
            results["failed"] += 1
            results["errors"].append(f'FAQ "{question}": {", ".join(errors)}')
            continue
        if find_duplicates(db, question, data.get("language") or "tr"):
            results["failed"] += 1
            results["errors"].append(f'FAQ "{question}": Duplicate question found')
            continue
        create_faq(db, data)
        results["success"] += 1

    logger.info("FAQ import finished", extra={"imported": results["success"], "failed": results["failed"]})
    return results
