from app.models import AuditLog, BlockedIP
from app.services import blocked_ips


def login(client, username="admin@example.com", password="secret-pass"):
    return client.post("/auth/login", data={"username": username, "password": password})


def test_login_returns_token_and_admin(client, admin):
    response = login(client)
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["access_token"]
    assert body["admin"]["email"] == "admin@example.com"
    assert "access_token" in response.headers.get("set-cookie", "")


def test_login_email_is_case_insensitive(client, admin):
    assert login(client, username="  ADMIN@example.com ").status_code == 200


def test_wrong_password_is_rejected_and_audited(client, db, admin):
    response = login(client, password="nope")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"

    entry = db.query(AuditLog).filter(AuditLog.action == "login_failed").one()
    assert entry.details == {"email": "admin@example.com"}
    assert entry.admin_name == "system"


def test_successful_login_is_audited(client, db, admin):
    login(client)
    entry = db.query(AuditLog).filter(AuditLog.action == "login").one()
    assert entry.admin_id == admin.id


def test_inactive_admin_cannot_login(client, db, admin):
    admin.is_active = False
    db.commit()
    assert login(client).status_code == 401


def test_blocked_ip_cannot_login(client, db, admin):
    blocked_ips.block_ip(db, "testclient", "abuse", blocked_by="root@example.com")
    response = login(client)
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_repeated_failures_auto_block(client, db, admin, monkeypatch):
    monkeypatch.setattr("app.config.settings.auto_block_threshold", 3)
    for _ in range(3):
        login(client, password="nope")

    block = db.query(BlockedIP).filter(BlockedIP.ip == "testclient").one()
    assert block.blocked_by == "system"
    assert login(client).status_code == 403


def test_me_requires_token(client):
    response = client.get("/auth/me")
    assert response.status_code == 401


def test_me_returns_current_admin(client, admin, auth_headers):
    response = client.get("/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["id"] == admin.id


def test_invalid_token_is_rejected(client):
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_logout_clears_cookie(client):
    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert "access_token" in response.headers.get("set-cookie", "")


def test_superadmin_only_route(client, auth_headers, super_headers):
    payload = {"enabled": True}
    assert client.put("/settings/maintenance", json=payload, headers=auth_headers).status_code == 403
    response = client.put("/settings/maintenance", json=payload, headers=super_headers)
    assert response.status_code == 200
    assert response.json() == {"enabled": True}


def test_health_and_request_id(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-ID"] == "abc-123"


def test_unknown_route_uses_error_envelope(client, auth_headers):
    response = client.get("/users/9999", headers=auth_headers)
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
