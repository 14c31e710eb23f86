import logging
import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import settings

logger = logging.getLogger(__name__)


def normalize_db_url(db_url: str) -> str:
    """Maps Heroku-style postgres URLs onto the psycopg 3 driver."""
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url


def build_engine(db_url: str) -> Engine:
    db_url = normalize_db_url(db_url)
    if not db_url.startswith("sqlite"):
        return create_engine(db_url, pool_pre_ping=True)

    sqlite_engine = create_engine(db_url, connect_args={"check_same_thread": False})
    if db_url not in ("sqlite://", "sqlite:///:memory:"):
        # API requests and scheduler jobs write from different threads
        @event.listens_for(sqlite_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()
    return sqlite_engine


def ping(bind: Engine) -> None:
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))


def wait_for_database(bind: Engine, retries: int = 3, backoff: float = 2) -> None:
    """Blocks startup until the database answers, doubling the wait between tries."""
    for attempt in range(1, retries + 1):
        try:
            ping(bind)
            return
        except Exception as e:
            if attempt == retries:
                logger.error("Database unreachable at %s", bind.url.render_as_string(hide_password=True))
                raise
            logger.warning("Database connection failed (attempt %d/%d), retrying in %ss: %s", attempt, retries, backoff, e)
            time.sleep(backoff)
            backoff *= 2


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
