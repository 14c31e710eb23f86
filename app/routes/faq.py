from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import BulkActionIn, FAQCreate, FAQImportIn, FAQOrderIn, FAQOut, FAQUpdate, page_of
from app.security.auth import require_admin
from app.security.rate_limit import export_rate_limit
from app.services import audit, faq

router = APIRouter(prefix="/faq", tags=["faq"], dependencies=[Depends(require_admin)])
public_router = APIRouter(prefix="/public/faq", tags=["faq"])

@public_router.get("", response_model=list[FAQOut])
def search_public_faq(
    q: str = Query(..., min_length=1),
    language: str | None = None,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    return faq.search_published(db, q, language, limit)

@router.get("")
def list_faqs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: str | None = None,
    language: str | None = None,
    is_published: bool | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = faq.list_faqs(
        db, page, limit, category=category, language=language, is_published=is_published, search=search,
    )
    return page_of(FAQOut, items, pagination)

@router.get("/stats")
def faq_stats(db: Session = Depends(get_db)):
    return faq.faq_stats(db)

@router.get("/categories")
def faq_categories(db: Session = Depends(get_db)):
    return faq.categories(db)

@router.get("/languages")
def faq_languages(db: Session = Depends(get_db)):
    return faq.languages(db)

@router.get("/duplicates", response_model=list[FAQOut])
def faq_duplicates(
    question: str,
    language: str = "tr",
    exclude_id: int | None = None,
    db: Session = Depends(get_db),
):
    return faq.find_duplicates(db, question, language, exclude_id)

@router.get("/export")
@export_rate_limit
def export_faqs(
    request: Request,
    format: Literal["csv", "json"] = "csv",
    category: str | None = None,
    language: str | None = None,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = faq.export_faqs(db, format, category=category, language=language)
    audit.log_action(db, admin, "export", "faq", None, {"format": format}, request)
    if format == "json":
        return data
    return Response(
        content=data,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="faqs.csv"'},
    )

@router.post("/import")
def import_faqs(
    payload: FAQImportIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    result = faq.import_faqs(db, payload.items)
    audit.log_action(db, admin, "import", "faq", None, {"success": result["success"], "failed": result["failed"]}, request)
    return result

@router.post("/reorder")
def reorder_faqs(
    payload: list[FAQOrderIn],
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = faq.reorder(db, [entry.model_dump() for entry in payload])
    audit.log_action(db, admin, "reorder", "faq", None, {"count": count}, request)
    return {"updated": count}

@router.post("/bulk")
def bulk_faqs(
    payload: BulkActionIn,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    count = faq.bulk_action(db, payload.ids, payload.action)
    audit.log_action(db, admin, f"bulk_{payload.action}", "faq", None, {"ids": payload.ids}, request)
    return {"affected": count}

@router.get("/{faq_id}", response_model=FAQOut)
def get_faq(faq_id: int, db: Session = Depends(get_db)):
    return faq.get_faq(db, faq_id)

@router.post("", response_model=FAQOut, status_code=201)
def create_faq(
    payload: FAQCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = faq.create_faq(db, payload.model_dump())
    audit.log_action(db, admin, "create", "faq", item.id, None, request)
    return item

@router.put("/{faq_id}", response_model=FAQOut)
def update_faq(
    faq_id: int,
    payload: FAQUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    item = faq.update_faq(db, faq_id, changes)
    audit.log_action(db, admin, "update", "faq", item.id, {"fields": sorted(changes)}, request)
    return item

@router.delete("/{faq_id}", status_code=204)
def delete_faq(
    faq_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    faq.delete_faq(db, faq_id)
    audit.log_action(db, admin, "delete", "faq", faq_id, None, request)

@router.post("/{faq_id}/publish", response_model=FAQOut)
def publish_faq(
    faq_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = faq.update_faq(db, faq_id, {"is_published": True})
    audit.log_action(db, admin, "publish", "faq", item.id, None, request)
    return item

@router.post("/{faq_id}/unpublish", response_model=FAQOut)
def unpublish_faq(
    faq_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    item = faq.update_faq(db, faq_id, {"is_published": False})
    audit.log_action(db, admin, "unpublish", "faq", item.id, None, request)
    return item
