from datetime import datetime, timedelta, timezone as dt_timezone
import jwt
import bcrypt
from fastapi import Request, HTTPException, Depends, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.models import AdminUser
from app.config import settings
from app.logging_setup import bind_log_context

ALGORITHM = "HS256"

def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8')[:72], hashed_password.encode('utf-8'))
    except ValueError:
        return False

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8')[:72], bcrypt.gensalt()).decode('utf-8')

def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(dt_timezone.utc) + expires_delta
    else:
        expire = datetime.now(dt_timezone.utc) + timedelta(days=settings.access_token_days)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)

def _token_from_request(request: Request) -> str | None:
    token = request.cookies.get("access_token")
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split("Bearer ", 1)[1]
    return token

def get_current_admin(
    request: Request,
    db: Session = Depends(get_db)
) -> AdminUser | None:
    token = _token_from_request(request)
    if not token:
        return None

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        admin_id = payload.get("sub")
        if admin_id is None:
            return None
    except jwt.PyJWTError:
        return None

    admin = db.query(AdminUser).filter(AdminUser.id == int(admin_id)).first()
    if not admin or not admin.is_active:
        return None

    request.state.admin = admin
    bind_log_context(admin_id=admin.id, admin_email=admin.email)
    return admin

def require_admin(admin: AdminUser | None = Depends(get_current_admin)) -> AdminUser:
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return admin
