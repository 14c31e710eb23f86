from datetime import datetime, timedelta, timezone

import pytest

from app.errors import ApiError
from app.models import NotificationLog
from app.services import notification_templates, notifications
from app.services.common import add_months, as_utc, utcnow


def make_notification(db, scheduled_at, frequency="once", **fields):
    data = {
        "title": "Stay strong",
        "message": "Check in with your goals today.",
        "type": "push",
        "scheduled_at": scheduled_at,
        "frequency": frequency,
    }
    data.update(fields)
    return notifications.create_notification(db, data)


@pytest.mark.parametrize("start,expected", [
    (datetime(2026, 1, 31, 8, 0, tzinfo=timezone.utc), datetime(2026, 2, 28, 8, 0, tzinfo=timezone.utc)),
    (datetime(2028, 1, 31, 8, 0, tzinfo=timezone.utc), datetime(2028, 2, 29, 8, 0, tzinfo=timezone.utc)),
    (datetime(2026, 12, 15, 8, 0, tzinfo=timezone.utc), datetime(2027, 1, 15, 8, 0, tzinfo=timezone.utc)),
])
def test_add_months_clamps_day(start, expected):
    assert add_months(start) == expected


def test_next_occurrence():
    start = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
    assert notifications.next_occurrence(start, "daily") == start + timedelta(days=1)
    assert notifications.next_occurrence(start, "weekly") == start + timedelta(days=7)
    assert notifications.next_occurrence(start, "monthly") == datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc)
    assert notifications.next_occurrence(start, "once") is None


def test_create_forces_active_status(db):
    item = make_notification(db, utcnow(), status="paused")
    assert item.status == "active"


def test_create_rejects_unknown_frequency(db):
    with pytest.raises(ApiError):
        make_notification(db, utcnow(), frequency="hourly")


def test_process_completes_one_off(db):
    now = utcnow()
    item = make_notification(db, now - timedelta(minutes=5))

    sent = notifications.process_due_notifications(db, now=now)
    assert [n.id for n in sent] == [item.id]
    db.refresh(item)
    assert item.status == "completed"
    assert item.sent_count == 1
    assert as_utc(item.last_sent_at) == now


def test_process_reschedules_recurring(db):
    now = utcnow()
    scheduled = now - timedelta(minutes=1)
    daily = make_notification(db, scheduled, frequency="daily")

    notifications.process_due_notifications(db, now=now)
    db.refresh(daily)
    assert daily.status == "active"
    assert as_utc(daily.scheduled_at) == scheduled + timedelta(days=1)

    # Not due again until tomorrow
    assert notifications.process_due_notifications(db, now=now + timedelta(hours=1)) == []


def test_process_skips_future_and_paused(db):
    now = utcnow()
    make_notification(db, now + timedelta(hours=2))
    paused = make_notification(db, now - timedelta(hours=2))
    notifications.set_status(db, paused.id, "paused")

    assert notifications.process_due_notifications(db, now=now) == []


def test_stats_and_upcoming(db):
    now = utcnow()
    future = make_notification(db, now + timedelta(days=1))
    make_notification(db, now - timedelta(days=1), type="email")

    stats = notifications.notification_stats(db)
    assert stats["total"] == 2
    assert stats["by_status"]["active"] == 2
    assert {"value": "email", "count": 1} in stats["by_type"]
    assert [n.id for n in notifications.upcoming(db)] == [future.id]


def test_notification_routes(client, auth_headers):
    scheduled = (utcnow() - timedelta(minutes=1)).isoformat()
    response = client.post(
        "/notifications",
        json={"title": "Hello", "message": "Daily check-in", "scheduled_at": scheduled, "frequency": "weekly"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    notification_id = response.json()["id"]

    paused = client.post(f"/notifications/{notification_id}/pause", headers=auth_headers)
    assert paused.json()["status"] == "paused"
    resumed = client.post(f"/notifications/{notification_id}/resume", headers=auth_headers)
    assert resumed.json()["status"] == "active"

    processed = client.post("/notifications/process", headers=auth_headers)
    assert [n["id"] for n in processed.json()] == [notification_id]


def make_template(db, name="Milestone", content="{streak_days} days strong!", **fields):
    data = {"name": name, "subject": "Congrats {name}", "content": content, "type": "system"}
    data.update(fields)
    return notification_templates.create_template(db, data)


def test_template_variables_come_from_placeholders(db):
    template = make_template(db)
    assert template.variables == ["name", "streak_days"]


def test_template_rejects_undeclared_variables(db):
    with pytest.raises(ApiError) as exc:
        make_template(db, variables=["name"])
    assert "streak_days" in exc.value.message


def test_template_names_are_unique(db):
    make_template(db)
    with pytest.raises(ApiError) as exc:
        make_template(db, name=" Milestone ")
    assert exc.value.status_code == 409

    other = make_template(db, name="Reminder", content="Check in today")
    with pytest.raises(ApiError):
        notification_templates.update_template(db, other.id, {"name": "Milestone"})


def test_template_update_rederives_variables(db):
    template = make_template(db)
    updated = notification_templates.update_template(db, template.id, {"content": "Keep going", "subject": "Hi"})
    assert updated.variables == []


def test_render_fills_every_placeholder(db):
    template = make_template(db)
    rendered = notification_templates.render(template, {"name": "Ali", "streak_days": 30})
    assert rendered == {"subject": "Congrats Ali", "content": "30 days strong!"}

    with pytest.raises(ApiError) as exc:
        notification_templates.render(template, {"name": "Ali"})
    assert exc.value.code == "VALIDATION_ERROR"


def test_seed_defaults_skips_existing(db):
    created = notification_templates.seed_defaults(db)
    assert len(created) == len(notification_templates.DEFAULT_TEMPLATES)
    milestone = next(t for t in created if t.name == "Milestone Kutlaması")
    assert milestone.variables == ["streak_days"]
    assert notification_templates.seed_defaults(db) == []


def test_list_templates_filters(db):
    make_template(db)
    make_template(db, name="Daily", content="Check in", type="daily_reminder", is_active=False)

    items, _ = notification_templates.list_templates(db, type="daily_reminder")
    assert [t.name for t in items] == ["Daily"]
    items, _ = notification_templates.list_templates(db, is_active=True)
    assert [t.name for t in items] == ["Milestone"]


def test_create_from_inactive_template_is_rejected(db):
    template = make_template(db, is_active=False)
    with pytest.raises(ApiError):
        notifications.create_from_template(db, template, {"name": "Ali", "streak_days": 5}, {"scheduled_at": utcnow()})


def test_process_writes_delivery_logs(db):
    now = utcnow()
    item = make_notification(db, now - timedelta(minutes=5), frequency="daily")

    notifications.process_due_notifications(db, now=now)
    logs = db.query(NotificationLog).all()
    assert len(logs) == 1
    assert logs[0].notification_id == item.id
    assert logs[0].status == "sent"
    assert logs[0].title == "Stay strong"


def test_receipt_stamps_earlier_stages(db):
    make_notification(db, utcnow() - timedelta(minutes=1))
    notifications.process_due_notifications(db)
    log = db.query(NotificationLog).one()

    clicked = notifications.record_receipt(db, log.id, "clicked")
    assert clicked.status == "clicked"
    assert clicked.delivered_at is not None
    assert clicked.read_at is not None

    # A late delivery receipt does not move the status back
    assert notifications.record_receipt(db, log.id, "delivered").status == "clicked"


def test_failed_delivery_takes_no_receipts(db):
    make_notification(db, utcnow() - timedelta(minutes=1))
    notifications.process_due_notifications(db)
    log = db.query(NotificationLog).one()

    failed = notifications.record_receipt(db, log.id, "failed", "Token expired")
    assert failed.error_message == "Token expired"
    with pytest.raises(ApiError):
        notifications.record_receipt(db, log.id, "read")
    with pytest.raises(ApiError):
        notifications.record_receipt(db, log.id, "sent")


def test_log_analytics_rates(db):
    for _ in range(3):
        make_notification(db, utcnow() - timedelta(minutes=1))
    notifications.process_due_notifications(db)
    first, second, third = db.query(NotificationLog).order_by(NotificationLog.id).all()
    notifications.record_receipt(db, first.id, "clicked")
    notifications.record_receipt(db, second.id, "delivered")
    notifications.record_receipt(db, third.id, "failed")

    analytics = notifications.log_analytics(db)
    assert analytics["total_sent"] == 3
    assert analytics["total_delivered"] == 2
    assert analytics["total_read"] == 1
    assert analytics["total_clicked"] == 1
    assert analytics["total_failed"] == 1
    assert analytics["delivery_rate"] == 66.67
    assert analytics["open_rate"] == 50.0
    assert analytics["click_rate"] == 100.0


def test_log_analytics_empty(db):
    analytics = notifications.log_analytics(db)
    assert analytics["delivery_rate"] == 0
    assert analytics["open_rate"] == 0


def test_log_period_stats(db):
    sends = [
        datetime(2026, 4, 30, 10, 0, tzinfo=timezone.utc),
        datetime(2026, 5, 3, 10, 0, tzinfo=timezone.utc),
        datetime(2026, 5, 14, 10, 0, tzinfo=timezone.utc),
    ]
    for sent_at in sends:
        make_notification(db, sent_at - timedelta(hours=1))
    for sent_at in sends:
        notifications.process_due_notifications(db, now=sent_at)

    stats = notifications.log_period_stats(db, now=datetime(2026, 5, 14, 12, 0, tzinfo=timezone.utc))
    assert stats["today"]["sent"] == 1
    assert stats["this_week"]["sent"] == 1
    assert stats["this_month"]["sent"] == 2


def test_template_and_log_routes(client, auth_headers):
    seeded = client.post("/notifications/templates/defaults", headers=auth_headers)
    assert seeded.status_code == 200
    milestone = next(t for t in seeded.json() if t["variables"] == ["streak_days"])

    rendered = client.post(
        f"/notifications/templates/{milestone['id']}/render",
        json={"values": {"streak_days": 90}},
        headers=auth_headers,
    )
    assert "90" in rendered.json()["content"]

    created = client.post(
        "/notifications/from-template",
        json={
            "template_id": milestone["id"],
            "values": {"streak_days": 90},
            "scheduled_at": (utcnow() - timedelta(minutes=1)).isoformat(),
        },
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["title"] == "Tebrikler!"

    client.post("/notifications/process", headers=auth_headers)
    logs = client.get("/notifications/logs", headers=auth_headers).json()
    assert logs["pagination"]["total"] == 1
    log_id = logs["items"][0]["id"]

    receipt = client.post(f"/notifications/logs/{log_id}/receipt", json={"status": "read"}, headers=auth_headers)
    assert receipt.json()["status"] == "read"
    assert client.get("/notifications/logs/analytics", headers=auth_headers).json()["open_rate"] == 100.0


def test_duplicate_template_route_conflicts(client, auth_headers):
    body = {"name": "Morning", "subject": "Good morning", "content": "Start strong"}
    assert client.post("/notifications/templates", json=body, headers=auth_headers).status_code == 201
    response = client.post("/notifications/templates", json=body, headers=auth_headers)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"
