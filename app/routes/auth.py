from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.db import get_db
from app.logging_setup import log_event
from app.models import AdminUser, AuditLog
from app.schemas import AdminOut
from app.security.auth import create_access_token, require_admin, verify_password
from app.security.rate_limit import auth_rate_limit
from app.security.rbac import reject_blocked_ip
from app.services import audit, blocked_ips
from app.services.common import utcnow

router = APIRouter(prefix="/auth", tags=["auth"])

FAILED_LOGIN_WINDOW = timedelta(hours=1)

def _recent_failures(db: Session, ip: str) -> int:
    return (
        db.query(AuditLog)
        .filter(
            AuditLog.action == "login_failed",
            AuditLog.ip_address == ip,
            AuditLog.created_at >= utcnow() - FAILED_LOGIN_WINDOW,
        )
        .count()
    )

@router.post("/login")
@auth_rate_limit
def login(
    request: Request,
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    ip: str = Depends(reject_blocked_ip),
    db: Session = Depends(get_db)
) -> dict[str, Any]:
    admin = db.query(AdminUser).filter(func.lower(AdminUser.email) == func.lower(form_data.username.strip())).first()
    if not admin or not admin.is_active or not verify_password(form_data.password, admin.password_hash):
        audit.log_action(db, None, "login_failed", "auth", details={"email": form_data.username}, request=request)
        blocked_ips.auto_block(db, ip, _recent_failures(db, ip))
        log_event("login_failed", level="warning", ip=ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(data={"sub": str(admin.id)})

    # HttpOnly cookie for the dashboard; API clients use the bearer token
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        samesite="lax",
        secure=True,
        max_age=settings.access_token_days * 24 * 60 * 60
    )

    audit.log_action(db, admin, "login", "auth", resource_id=admin.id, request=request)
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "admin": AdminOut.model_validate(admin),
    }

@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    response.delete_cookie(
        key="access_token",
        httponly=True,
        samesite="lax",
        secure=True
    )
    return {"message": "Logged out successfully"}

@router.get("/me", response_model=AdminOut)
def me(admin: AdminUser = Depends(require_admin)):
    return admin
