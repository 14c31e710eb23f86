import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.config import settings
from app.db import SessionLocal, engine, ping, wait_for_database
from app.errors import SERVICE_UNAVAILABLE, error_body, install_error_handlers
from app.logging_setup import end_log_context, setup_logging, start_log_context
from app.models import AdminUser, Base
from app.routes import (
    ads,
    auth,
    billing,
    dashboard,
    devices,
    faq,
    messages,
    notifications,
    relapses,
    security,
    tasks,
    users,
)
from app.routes import settings as settings_routes
from app.security.auth import get_password_hash
from app.security.rate_limit import limiter
from app.services.scheduler import shutdown_scheduler, start_scheduler

setup_logging()
logger = logging.getLogger(__name__)

if settings.secret_key == "change-me-in-production-for-jwt":
    logger.warning("JWT_SECRET is not set, using the default insecure key")
if not settings.openai_api_key:
    logger.warning("OPENAI_API_KEY is not set, task generation will use fallback tasks")

app = FastAPI(title="NoFap Admin API")
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")
app.state.limiter = limiter
install_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = start_log_context(request_id=request_id, method=request.method, path=request.url.path)
    try:
        response = await call_next(request)
    finally:
        end_log_context(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "nofap-admin"}


@app.get("/ready")
def readiness_check():
    try:
        ping(engine)
        return {"status": "ready"}
    except Exception as e:
        logger.error("Readiness check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content=error_body(SERVICE_UNAVAILABLE, "Database unreachable"),
        )


# Include Routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(tasks.router)
app.include_router(relapses.router)
app.include_router(devices.router)
app.include_router(faq.router)
app.include_router(faq.public_router)
app.include_router(notifications.router)
app.include_router(messages.router)
app.include_router(ads.router)
app.include_router(billing.router)
app.include_router(settings_routes.router)
app.include_router(security.router)
app.include_router(dashboard.router)


def bootstrap_superadmin(db_factory=SessionLocal) -> AdminUser | None:
    """Creates the platform superadmin from env on first boot."""
    if not (settings.superadmin_email and settings.superadmin_password):
        return None

    db = db_factory()
    try:
        existing = db.query(AdminUser).filter(AdminUser.is_superadmin == True).first()
        if existing:
            return existing

        logger.info("Bootstrap: creating superadmin %s", settings.superadmin_email)
        superadmin = AdminUser(
            email=settings.superadmin_email,
            password_hash=get_password_hash(settings.superadmin_password),
            name="Platform Superadmin",
            is_superadmin=True,
            is_active=True,
        )
        db.add(superadmin)
        db.commit()
        db.refresh(superadmin)
        return superadmin
    except Exception:
        db.rollback()
        logger.exception("Superadmin bootstrap failed")
        return None
    finally:
        db.close()


@app.on_event("startup")
def on_startup():
    try:
        wait_for_database(engine)
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Schema creation failed")
        raise

    bootstrap_superadmin()

    if settings.scheduler_enabled:
        try:
            app.state.scheduler = start_scheduler(SessionLocal)
        except Exception:
            logger.exception("Scheduler failed to start")


@app.on_event("shutdown")
def on_shutdown():
    shutdown_scheduler()
