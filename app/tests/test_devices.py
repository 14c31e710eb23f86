from datetime import timedelta

import pytest

from app.errors import ApiError
from app.models import Device
from app.services import devices
from app.services.common import utcnow


def device_data(user, device_id="dev-1", **fields):
    data = {
        "user_id": user.id,
        "device_id": device_id,
        "device_name": "Pixel 8",
        "device_type": "mobile",
        "os": "Android",
        "ip_address": "10.0.0.1",
    }
    data.update(fields)
    return data


@pytest.mark.parametrize("data,message", [
    ({"device_name": "x"}, "Device name must be at least 2 characters long"),
    ({"device_name": "x" * 101}, "Device name must be less than 100 characters"),
    ({"device_type": "m"}, "Device type must be at least 2 characters long"),
    ({"ip_address": "300.1.1.1"}, "Invalid IP address format"),
    ({"ip_address": "not-an-ip"}, "Invalid IP address format"),
    ({"device_name": ""}, "Device name must be at least 2 characters long"),
    ({"device_type": ""}, "Device type must be at least 2 characters long"),
    ({"ip_address": ""}, "Invalid IP address format"),
])
def test_validate_device_data(data, message):
    assert message in devices.validate_device_data(data)


def test_validate_device_data_accepts_good_input():
    assert devices.validate_device_data({"device_name": "iPhone", "device_type": "mobile", "ip_address": "192.168.1.20"}) == []


def test_create_rejects_duplicate_device_id(db, user):
    devices.create_device(db, device_data(user))
    with pytest.raises(ApiError) as exc:
        devices.create_device(db, device_data(user))
    assert exc.value.status_code == 409


def test_create_rejects_invalid_ip(db, user):
    with pytest.raises(ApiError) as exc:
        devices.create_device(db, device_data(user, ip_address="1.2.3"))
    assert exc.value.status_code == 400
    assert exc.value.details == ["Invalid IP address format"]


def test_register_or_update_is_idempotent(db, user):
    first = devices.register_or_update(db, device_data(user))
    second = devices.register_or_update(db, device_data(user, device_name="Pixel 9", ip_address="10.0.0.2"))
    assert first.id == second.id
    assert second.device_name == "Pixel 9"
    assert db.query(Device).count() == 1


def test_register_keeps_fields_left_out(db, user):
    devices.register_or_update(db, device_data(user, browser="Safari", location="Istanbul"))
    again = devices.register_or_update(
        db, device_data(user, device_name="Pixel 9", browser=None, ip_address=None, location=None),
    )
    assert again.device_name == "Pixel 9"
    assert (again.browser, again.ip_address, again.location) == ("Safari", "10.0.0.1", "Istanbul")


def test_register_route_keeps_stored_fields(client, db, user, auth_headers):
    devices.create_device(db, device_data(user, browser="Safari", location="Istanbul"))
    payload = {k: v for k, v in device_data(user).items() if k != "ip_address"}
    response = client.post("/devices/register", json=payload, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert (body["browser"], body["ip_address"], body["location"]) == ("Safari", "10.0.0.1", "Istanbul")


def test_touch_updates_last_seen(db, user):
    device = devices.create_device(db, device_data(user))
    device.last_seen = utcnow() - timedelta(days=3)
    db.commit()

    touched = devices.touch_last_seen(db, "dev-1", ip_address="10.0.0.9")
    assert touched.ip_address == "10.0.0.9"
    assert devices.list_devices(db, window="today")[1]["total"] == 1


def test_bulk_actions(db, user):
    ids = [devices.create_device(db, device_data(user, device_id=f"d{i}")).id for i in range(3)]

    assert devices.bulk_action(db, ids[:2], "trust") == 2
    assert devices.device_stats(db) == {"total": 3, "active": 3, "trusted": 2, "untrusted": 1}
    assert devices.bulk_action(db, ids, "delete") == 3
    with pytest.raises(ApiError):
        devices.bulk_action(db, ids, "explode")


def test_suspicious_devices_needs_more_than_three(db, user, user_factory):
    for i in range(4):
        devices.create_device(db, device_data(user, device_id=f"sus-{i}"))
    other = user_factory("calm@example.com")
    for i in range(3):
        devices.create_device(db, device_data(other, device_id=f"calm-{i}"))

    suspicious = devices.suspicious_devices(db)
    assert len(suspicious) == 1
    assert suspicious[0]["user_id"] == user.id
    assert suspicious[0]["device_count"] == 4


def test_trusted_devices_are_not_suspicious(db, user):
    for i in range(4):
        devices.create_device(db, device_data(user, device_id=f"t-{i}", is_trusted=True))
    assert devices.suspicious_devices(db) == []


def test_cleanup_removes_only_stale_inactive_untrusted(db, user):
    stale = devices.create_device(db, device_data(user, device_id="stale"))
    trusted = devices.create_device(db, device_data(user, device_id="trusted", is_trusted=True))
    active = devices.create_device(db, device_data(user, device_id="active"))
    old = utcnow() - timedelta(days=120)
    for device in (stale, trusted, active):
        device.last_seen = old
    stale.is_active = False
    trusted.is_active = False
    db.commit()

    assert devices.cleanup_inactive_devices(db, days_inactive=90) == 1
    remaining = {d.device_id for d in db.query(Device).all()}
    assert remaining == {"trusted", "active"}


def test_distributions(db, user):
    devices.create_device(db, device_data(user, device_id="a", os="iOS"))
    devices.create_device(db, device_data(user, device_id="b", os="Android"))
    devices.create_device(db, device_data(user, device_id="c", os="Android"))

    result = devices.distributions(db)
    assert result["os"][0] == {"value": "Android", "count": 2}
    assert result["browsers"] == []


def test_device_routes(client, user, auth_headers):
    response = client.post("/devices", json=device_data(user), headers=auth_headers)
    assert response.status_code == 201
    pk = response.json()["id"]

    trusted = client.post(f"/devices/{pk}/trust", headers=auth_headers)
    assert trusted.json()["is_trusted"] is True

    by_ip = client.get("/devices/by-ip/10.0.0.1", headers=auth_headers).json()
    assert [d["id"] for d in by_ip] == [pk]

    assert client.post(f"/devices/{pk}/explode", headers=auth_headers).status_code == 422
