from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import AdminUser
from app.schemas import (
    ProductCreate,
    ProductOut,
    ProductUpdate,
    SubscriptionCreate,
    SubscriptionOut,
    SubscriptionUpdate,
    page_of,
)
from app.security.auth import require_admin
from app.services import audit, billing

router = APIRouter(prefix="/billing", tags=["billing"], dependencies=[Depends(require_admin)])

@router.get("/analytics")
def billing_analytics(db: Session = Depends(get_db)):
    return billing.billing_analytics(db)

# Products

@router.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    is_active: bool | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = billing.list_products(db, page, limit, is_active=is_active, search=search)
    return page_of(ProductOut, items, pagination)

@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return billing.get_product(db, product_id)

@router.post("/products", response_model=ProductOut, status_code=201)
def create_product(
    payload: ProductCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    product = billing.create_product(db, payload.model_dump())
    audit.log_action(db, admin, "create", "product", product.id, {"name": product.name}, request)
    return product

@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    product = billing.update_product(db, product_id, changes)
    audit.log_action(db, admin, "update", "product", product.id, {"fields": sorted(changes)}, request)
    return product

@router.delete("/products/{product_id}", status_code=204)
def delete_product(
    product_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    billing.delete_product(db, product_id)
    audit.log_action(db, admin, "delete", "product", product_id, None, request)

# Subscriptions

@router.get("/subscriptions")
def list_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: str | None = None,
    user_id: int | None = None,
    product_id: int | None = None,
    db: Session = Depends(get_db),
):
    items, pagination = billing.list_subscriptions(
        db, page, limit, status=status, user_id=user_id, product_id=product_id,
    )
    return page_of(SubscriptionOut, items, pagination)

@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionOut)
def get_subscription(subscription_id: int, db: Session = Depends(get_db)):
    return billing.get_subscription(db, subscription_id)

@router.post("/subscriptions", response_model=SubscriptionOut, status_code=201)
def create_subscription(
    payload: SubscriptionCreate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subscription = billing.create_subscription(db, payload.model_dump())
    audit.log_action(
        db, admin, "create", "subscription", subscription.id,
        {"user_id": subscription.user_id, "product_id": subscription.product_id},
        request,
    )
    return subscription

@router.put("/subscriptions/{subscription_id}", response_model=SubscriptionOut)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdate,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    subscription = billing.update_subscription(db, subscription_id, changes)
    audit.log_action(db, admin, "update", "subscription", subscription.id, {"fields": sorted(changes)}, request)
    return subscription

@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionOut)
def cancel_subscription(
    subscription_id: int,
    request: Request,
    admin: AdminUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    subscription = billing.cancel_subscription(db, subscription_id)
    audit.log_action(db, admin, "cancel", "subscription", subscription.id, None, request)
    return subscription
