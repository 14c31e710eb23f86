import csv
import io
from datetime import timedelta

import pytest

from app.errors import ApiError
from app.models import AuditLog, BlockedIP
from app.services import audit, blocked_ips
from app.services.common import utcnow


def test_block_and_check(db):
    blocked_ips.block_ip(db, "1.1.1.1", "spam", blocked_by="admin@example.com")
    assert blocked_ips.is_ip_blocked(db, "1.1.1.1") is True
    assert blocked_ips.is_ip_blocked(db, "2.2.2.2") is False


def test_reblocking_counts_attempts(db):
    blocked_ips.block_ip(db, "1.1.1.1", "spam", blocked_by="a")
    block = blocked_ips.block_ip(db, "1.1.1.1", "more spam", blocked_by="b", status="permanent")
    assert block.attempts == 2
    assert block.status == "permanent"
    assert db.query(BlockedIP).count() == 1


def test_temporary_block_needs_expiry(db):
    with pytest.raises(ApiError):
        blocked_ips.block_ip(db, "1.1.1.1", "spam", blocked_by="a", status="temporary")


def test_expired_temporary_block_is_not_effective(db):
    blocked_ips.block_ip(
        db, "3.3.3.3", "flood", blocked_by="a",
        status="temporary", expires_at=utcnow() - timedelta(minutes=1),
    )
    blocked_ips.block_ip(
        db, "4.4.4.4", "flood", blocked_by="a",
        status="temporary", expires_at=utcnow() + timedelta(hours=1),
    )
    assert blocked_ips.is_ip_blocked(db, "3.3.3.3") is False
    assert blocked_ips.is_ip_blocked(db, "4.4.4.4") is True

    assert blocked_ips.cleanup_expired_blocks(db) == 1
    stats = blocked_ips.block_stats(db)
    assert stats["by_status"]["expired"] == 1
    assert stats["effective"] == 1


def test_auto_block_threshold(db):
    assert blocked_ips.auto_block(db, "5.5.5.5", failed_attempts=2, threshold=3) is None
    block = blocked_ips.auto_block(db, "5.5.5.5", failed_attempts=3, threshold=3)
    assert block.blocked_by == "system"
    assert "3 failed attempts" in block.reason


def test_unblock_returns_ip(db):
    block = blocked_ips.block_ip(db, "6.6.6.6", "spam", blocked_by="a")
    assert blocked_ips.unblock_ip(db, block.id) == "6.6.6.6"
    assert blocked_ips.is_ip_blocked(db, "6.6.6.6") is False
    with pytest.raises(ApiError):
        blocked_ips.unblock_ip(db, block.id)


def test_log_action_without_admin(db):
    entry = audit.log_action(db, None, "cleanup", "device", 7, {"deleted": 2})
    assert entry.admin_name == "system"
    assert entry.resource_id == "7"
    assert entry.ip_address is None


def test_audit_filters_and_trail(db, admin):
    audit.log_action(db, admin, "create", "faq", 1)
    audit.log_action(db, admin, "update", "faq", 1, {"fields": ["answer"]})
    audit.log_action(db, admin, "create", "user", 2)

    items, pagination = audit.list_logs(db, action="create")
    assert pagination["total"] == 2
    assert {i.resource for i in items} == {"faq", "user"}

    trail = audit.resource_trail(db, "faq", "1")
    assert [e.action for e in trail] == ["update", "create"]

    stats = audit.audit_stats(db)
    assert stats["total"] == 3
    assert stats["unique_admins"] == 1


def test_audit_csv_export(db, admin):
    audit.log_action(db, admin, "update", "setting", "app.name", {"fields": ["value"]})
    rows = list(csv.DictReader(io.StringIO(audit.export_csv(db))))
    assert len(rows) == 1
    assert rows[0]["action"] == "update"
    assert rows[0]["resource_id"] == "app.name"
    assert rows[0]["details"] == '{"fields": ["value"]}'


def test_blocked_ip_routes(client, db, auth_headers):
    response = client.post(
        "/security/blocked-ips",
        json={"ip": "7.7.7.7", "reason": "scraping"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    block_id = response.json()["id"]
    assert response.json()["blocked_by"] == "admin@example.com"

    assert client.get("/security/blocked-ips/check/7.7.7.7", headers=auth_headers).json()["blocked"] is True
    assert client.delete(f"/security/blocked-ips/{block_id}", headers=auth_headers).status_code == 204

    actions = [e.action for e in db.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == ["block", "unblock"]


def test_audit_routes(client, db, admin, auth_headers):
    audit.log_action(db, admin, "create", "faq", 1)
    listing = client.get("/security/audit?resource=faq", headers=auth_headers).json()
    assert listing["pagination"]["total"] == 1

    export = client.get("/security/audit/export", headers=auth_headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
