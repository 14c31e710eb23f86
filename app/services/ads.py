from sqlalchemy import func
from sqlalchemy.orm import Session

from app.errors import not_found, validation_error
from app.models import Ad
from app.services.common import paginate, search_filter

AD_TYPES = ("banner", "interstitial", "native", "video")
AD_STATUSES = ("active", "paused", "completed")


def _validate(data: dict) -> None:
    if data.get("type") and data["type"] not in AD_TYPES:
        raise validation_error(f"Invalid ad type: {data['type']}")
    if data.get("status") and data["status"] not in AD_STATUSES:
        raise validation_error(f"Invalid ad status: {data['status']}")
    if data.get("budget") is not None and data["budget"] < 0:
        raise validation_error("Budget cannot be negative")


def get_ad(db: Session, ad_id: int) -> Ad:
    ad = db.query(Ad).filter(Ad.id == ad_id).first()
    if not ad:
        raise not_found("Ad")
    return ad


def list_ads(
    db: Session,
    page: int = 1,
    limit: int = 10,
    type: str | None = None,
    status: str | None = None,
    placement: str | None = None,
    search: str | None = None,
):
    query = db.query(Ad)
    if type:
        query = query.filter(Ad.type == type)
    if status:
        query = query.filter(Ad.status == status)
    if placement:
        query = query.filter(Ad.placement == placement)
    condition = search_filter(search, [Ad.title, Ad.description, Ad.placement])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Ad.created_at.desc(), Ad.id.desc()), page, limit)


def create_ad(db: Session, data: dict) -> Ad:
    _validate(data)
    ad = Ad(**{k: v for k, v in data.items() if v is not None})
    ad.status = "active"
    ad.spent = 0
    ad.impressions = 0
    ad.clicks = 0
    db.add(ad)
    db.commit()
    db.refresh(ad)
    return ad


def update_ad(db: Session, ad_id: int, data: dict) -> Ad:
    _validate(data)
    ad = get_ad(db, ad_id)
    for key, value in data.items():
        setattr(ad, key, value)
    db.commit()
    db.refresh(ad)
    return ad


def delete_ad(db: Session, ad_id: int) -> None:
    ad = get_ad(db, ad_id)
    db.delete(ad)
    db.commit()


def set_status(db: Session, ad_id: int, status: str) -> Ad:
    return update_ad(db, ad_id, {"status": status})


def record_impression(db: Session, ad_id: int) -> Ad:
    ad = get_ad(db, ad_id)
    ad.impressions = (ad.impressions or 0) + 1
    db.commit()
    db.refresh(ad)
    return ad


def record_click(db: Session, ad_id: int) -> Ad:
    ad = get_ad(db, ad_id)
    ad.clicks = (ad.clicks or 0) + 1
    db.commit()
    db.refresh(ad)
    return ad


def add_spend(db: Session, ad_id: int, amount: float) -> Ad:
    if amount < 0:
        raise validation_error("Spend amount cannot be negative")
    ad = get_ad(db, ad_id)
    ad.spent = (ad.spent or 0) + amount
    db.commit()
    db.refresh(ad)
    return ad


def ad_stats(db: Session) -> dict:
    stats = {"total": db.query(Ad).count()}
    for status in AD_STATUSES:
        stats[status] = db.query(Ad).filter(Ad.status == status).count()

    spent, impressions, clicks = db.query(
        func.coalesce(func.sum(Ad.spent), 0),
        func.coalesce(func.sum(Ad.impressions), 0),
        func.coalesce(func.sum(Ad.clicks), 0),
    ).one()
    stats.update({
        "total_spent": float(spent),
        "total_impressions": int(impressions),
        "total_clicks": int(clicks),
        "ctr": round(clicks / impressions * 100, 2) if impressions else 0,
    })
    return stats


def top_performing(db: Session, limit: int = 10) -> list[Ad]:
    return db.query(Ad).order_by(Ad.clicks.desc(), Ad.id.asc()).limit(limit).all()
