import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from app.errors import conflict, not_found, validation_error
from app.models import Product, Subscription, User
from app.services.common import add_months, as_utc, count_by, paginate, search_filter, utcnow

logger = logging.getLogger(__name__)

INTERVALS = ("monthly", "yearly")
SUBSCRIPTION_STATUSES = ("active", "cancelled", "expired", "pending")


# Products

def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise not_found("Product")
    return product


def list_products(
    db: Session,
    page: int = 1,
    limit: int = 10,
    is_active: bool | None = None,
    search: str | None = None,
):
    query = db.query(Product)
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)
    condition = search_filter(search, [Product.name, Product.description])
    if condition is not None:
        query = query.filter(condition)
    return paginate(query.order_by(Product.created_at.desc(), Product.id.desc()), page, limit)


def _validate_product(data: dict) -> None:
    if data.get("interval") and data["interval"] not in INTERVALS:
        raise validation_error(f"Invalid interval: {data['interval']}")
    if data.get("price") is not None and data["price"] < 0:
        raise validation_error("Price cannot be negative")


def create_product(db: Session, data: dict) -> Product:
    _validate_product(data)
    product = Product(**{k: v for k, v in data.items() if v is not None})
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def update_product(db: Session, product_id: int, data: dict) -> Product:
    _validate_product(data)
    product = get_product(db, product_id)
    for key, value in data.items():
        setattr(product, key, value)
    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    active = (
        db.query(Subscription)
        .filter(Subscription.product_id == product.id, Subscription.status == "active")
        .count()
    )
    if active:
        raise conflict(f"Product has {active} active subscription(s)")
    db.delete(product)
    db.commit()


# Subscriptions

def get_subscription(db: Session, subscription_id: int) -> Subscription:
    subscription = db.query(Subscription).filter(Subscription.id == subscription_id).first()
    if not subscription:
        raise not_found("Subscription")
    return subscription


def list_subscriptions(
    db: Session,
    page: int = 1,
    limit: int = 10,
    status: str | None = None,
    user_id: int | None = None,
    product_id: int | None = None,
):
    query = db.query(Subscription)
    if status:
        query = query.filter(Subscription.status == status)
    if user_id:
        query = query.filter(Subscription.user_id == user_id)
    if product_id:
        query = query.filter(Subscription.product_id == product_id)
    return paginate(query.order_by(Subscription.created_at.desc(), Subscription.id.desc()), page, limit)


def period_end(start: datetime, interval: str) -> datetime:
    return add_months(start, 12 if interval == "yearly" else 1)


def create_subscription(db: Session, data: dict) -> Subscription:
    if not db.query(User).filter(User.id == data["user_id"]).first():
        raise not_found("User")
    product = db.query(Product).filter(Product.id == data["product_id"], Product.is_active.is_(True)).first()
    if not product:
        raise not_found("Active product")

    start = as_utc(data.get("start_date")) or utcnow()
    subscription = Subscription(
        user_id=data["user_id"],
        product_id=product.id,
        status="active",
        start_date=start,
        end_date=as_utc(data.get("end_date")) or period_end(start, product.interval),
        price=product.price,
        currency=product.currency,
        payment_method=data["payment_method"],
    )
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription created", extra={"subscription_id": subscription.id, "user_id": subscription.user_id})
    return subscription


def update_subscription(db: Session, subscription_id: int, data: dict) -> Subscription:
    if data.get("status") and data["status"] not in SUBSCRIPTION_STATUSES:
        raise validation_error(f"Invalid subscription status: {data['status']}")
    subscription = get_subscription(db, subscription_id)
    for key, value in data.items():
        setattr(subscription, key, value)
    db.commit()
    db.refresh(subscription)
    return subscription


def cancel_subscription(db: Session, subscription_id: int) -> Subscription:
    subscription = update_subscription(db, subscription_id, {"status": "cancelled", "end_date": utcnow()})
    logger.info("Subscription cancelled", extra={"subscription_id": subscription.id})
    return subscription


def monthly_amount(price, interval: str) -> Decimal:
    amount = Decimal(str(price or 0))
    return amount / 12 if interval == "yearly" else amount


def billing_analytics(db: Session) -> dict:
    by_status = {s: 0 for s in SUBSCRIPTION_STATUSES}
    for row in count_by(db, Subscription.status):
        by_status[row["value"]] = row["count"]

    active = db.query(Subscription).filter(Subscription.status == "active").all()
    mrr = Decimal("0")
    by_product: dict[int, dict] = {}
    for subscription in active:
        interval = subscription.product.interval if subscription.product else "monthly"
        mrr += monthly_amount(subscription.price, interval)
        entry = by_product.setdefault(subscription.product_id, {
            "product_id": subscription.product_id,
            "product_name": subscription.product.name if subscription.product else "Unknown Product",
            "revenue": Decimal("0"),
            "subscribers": 0,
        })
        entry["revenue"] += Decimal(str(subscription.price or 0))
        entry["subscribers"] += 1

    revenue_by_product = sorted(by_product.values(), key=lambda e: e["revenue"], reverse=True)
    for entry in revenue_by_product:
        entry["revenue"] = float(entry["revenue"])

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "mrr": float(round(mrr, 2)),
        "revenue_by_product": revenue_by_product,
    }
