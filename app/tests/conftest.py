import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import get_db
from app.main import app
from app.models import AdminUser, Base, User
from app.security.auth import create_access_token, get_password_hash
from app.security.rate_limit import limiter

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_limiters():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: startup hooks (schema, scheduler) stay off
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_admin(db, email="admin@example.com", password="secret-pass", superadmin=False):
    admin = AdminUser(
        email=email,
        password_hash=get_password_hash(password),
        name="Test Admin",
        is_active=True,
        is_superadmin=superadmin,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def make_user(db, email="user@example.com", **fields):
    fields.setdefault("name", "Ali")
    user = User(email=email, **fields)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def bearer(admin):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(admin.id)})}"}


@pytest.fixture
def admin(db):
    return make_admin(db)


@pytest.fixture
def superadmin(db):
    return make_admin(db, email="root@example.com", superadmin=True)


@pytest.fixture
def auth_headers(admin):
    return bearer(admin)


@pytest.fixture
def super_headers(superadmin):
    return bearer(superadmin)


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def user_factory(db):
    def factory(email, **fields):
        return make_user(db, email=email, **fields)
    return factory
