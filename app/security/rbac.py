from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.models import AdminUser
from app.security.auth import require_admin
from app.services import blocked_ips

def require_superadmin(admin: AdminUser = Depends(require_admin)) -> AdminUser:
    """
    Dependency that enforces the admin must be a superadmin.
    """
    if not admin.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a platform superadmin to perform this action."
        )
    return admin

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"

def reject_blocked_ip(request: Request, db: Session = Depends(get_db)) -> str:
    """Refuses requests from IPs with an active block; returns the caller IP."""
    ip = client_ip(request)
    if blocked_ips.is_ip_blocked(db, ip):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access from this IP address is blocked"
        )
    return ip
