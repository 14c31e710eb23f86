import pytest

from app.errors import ApiError
from app.services import settings_store


def make_setting(db, key, value, setting_type="string", **fields):
    data = {"key": key, "value": value, "type": setting_type, **fields}
    return settings_store.create_setting(db, data, "admin@example.com")


@pytest.mark.parametrize("raw,setting_type,expected", [
    ("true", "boolean", True),
    ("false", "boolean", False),
    ("12.5", "number", 12.5),
    ("abc", "number", None),
    ('{"a": 1}', "json", {"a": 1}),
    ("{broken", "json", None),
    ("hello", "string", "hello"),
])
def test_parse_value(raw, setting_type, expected):
    assert settings_store.parse_value(raw, setting_type) == expected


@pytest.mark.parametrize("value,setting_type,ok", [
    (True, "boolean", True),
    ("true", "boolean", True),
    ("yes", "boolean", False),
    (3, "number", True),
    ("3.5", "number", True),
    (True, "number", False),
    ("x", "number", False),
    ({"a": 1}, "json", True),
    ("[1, 2]", "json", True),
    ("{oops", "json", False),
    (5, "string", False),
])
def test_check_value(value, setting_type, ok):
    assert (settings_store.check_value(value, setting_type) is None) == ok


def test_create_serializes_typed_values(db):
    assert make_setting(db, "limits.max", 10, "number").value == "10"
    assert make_setting(db, "flags.beta", True, "boolean").value == "true"
    assert make_setting(db, "ui.menu", ["a", "b"], "json").value == '["a", "b"]'


def test_duplicate_key_conflicts(db):
    make_setting(db, "app.name", "NoFap")
    with pytest.raises(ApiError) as exc:
        make_setting(db, "app.name", "Other")
    assert exc.value.status_code == 409


def test_wrong_type_is_rejected(db):
    with pytest.raises(ApiError):
        make_setting(db, "limits.max", "lots", "number")


def test_set_and_get_value(db):
    make_setting(db, "limits.max", 10, "number")
    settings_store.set_value(db, "limits.max", 25, "root@example.com")
    assert settings_store.get_value(db, "limits.max") == 25.0
    assert settings_store.get_setting(db, "limits.max").updated_by == "root@example.com"
    assert settings_store.get_value(db, "missing.key") is None


def test_set_json_value_from_string(db):
    make_setting(db, "ui.menu", [], "json")
    settings_store.set_value(db, "ui.menu", '["home"]', "admin@example.com")
    assert settings_store.get_value(db, "ui.menu") == ["home"]


def test_validate_value(db):
    make_setting(db, "flags.beta", False, "boolean")
    assert settings_store.validate_value(db, "flags.beta", True) == {"valid": True}
    assert settings_store.validate_value(db, "flags.beta", "maybe") == {"valid": False, "error": "Value must be a boolean"}
    assert settings_store.validate_value(db, "nope", 1)["valid"] is False


def test_public_settings_are_parsed(db):
    make_setting(db, "app.version", "1.2.0", is_public=True)
    make_setting(db, "flags.beta", True, "boolean", is_public=True)
    make_setting(db, "secret.key", "hidden")
    assert settings_store.public_settings(db) == {"app.version": "1.2.0", "flags.beta": True}


def test_import_respects_overwrite(db):
    make_setting(db, "app.name", "NoFap")
    items = [
        {"key": "app.name", "value": "Renamed"},
        {"key": "app.color", "value": "blue"},
        {"key": "bad.number", "value": "x", "type": "number"},
        {"value": "no key"},
    ]
    results = settings_store.import_settings(db, items, "admin@example.com")
    assert [r["status"] for r in results] == ["skipped", "created", "error", "error"]
    assert settings_store.get_value(db, "app.name") == "NoFap"

    results = settings_store.import_settings(db, items[:1], "admin@example.com", overwrite=True)
    assert results[0]["status"] == "updated"
    assert settings_store.get_value(db, "app.name") == "Renamed"


def test_export_contains_raw_values(db):
    make_setting(db, "limits.max", 10, "number", category="limits")
    make_setting(db, "app.name", "NoFap")
    exported = settings_store.export_settings(db, "limits")
    assert exported["category"] == "limits"
    assert exported["settings"] == [{
        "key": "limits.max", "value": "10", "type": "number",
        "category": "limits", "description": None, "is_public": False,
    }]


def test_maintenance_mode_is_created_on_first_use(db):
    assert settings_store.get_maintenance_mode(db) is False
    settings_store.set_maintenance_mode(db, True, "root@example.com")
    assert settings_store.get_maintenance_mode(db) is True
    settings_store.set_maintenance_mode(db, False, "root@example.com")
    assert settings_store.get_maintenance_mode(db) is False


def test_update_category_infers_types(db):
    make_setting(db, "ads.enabled", True, "boolean", category="ads")
    make_setting(db, "app.name", "NoFap")

    settings_store.update_category(db, "ads", {"ads.enabled": False, "ads.max_per_day": 3}, "admin@example.com")
    assert settings_store.get_value(db, "ads.enabled") is False
    assert settings_store.get_setting(db, "ads.max_per_day").type == "number"

    with pytest.raises(ApiError):
        settings_store.update_category(db, "ads", {"app.name": "x"}, "admin@example.com")


def test_settings_routes(client, auth_headers, super_headers):
    created = client.post(
        "/settings",
        json={"key": "app.motd", "value": "Stay strong", "is_public": True},
        headers=auth_headers,
    )
    assert created.status_code == 201

    assert client.get("/settings/public").json() == {"app.motd": "Stay strong"}

    updated = client.put("/settings/app.motd/value", json={"value": "Keep going"}, headers=auth_headers)
    assert updated.json()["value"] == "Keep going"

    imported = client.post("/settings/import", json={"settings": [{"key": "x.y", "value": "z"}]}, headers=auth_headers)
    assert imported.status_code == 403
    imported = client.post("/settings/import", json={"settings": [{"key": "x.y", "value": "z"}]}, headers=super_headers)
    assert imported.json()[0]["status"] == "created"


def test_type_change_rechecks_stored_value(db):
    make_setting(db, "app.tagline", "abc")
    with pytest.raises(ApiError) as exc:
        settings_store.update_setting(db, "app.tagline", {"type": "number"}, "admin@example.com")
    assert exc.value.status_code == 400
    db.rollback()
    assert settings_store.get_setting(db, "app.tagline").type == "string"


def test_type_change_keeps_fitting_value(db):
    make_setting(db, "limits.daily", "42")
    setting = settings_store.update_setting(db, "limits.daily", {"type": "number"}, "admin@example.com")
    assert setting.type == "number"
    assert settings_store.get_value(db, "limits.daily") == 42.0


@pytest.mark.parametrize("key", settings_store.RESERVED_KEYS)
def test_route_segment_keys_are_reserved(db, key):
    with pytest.raises(ApiError) as exc:
        make_setting(db, key, "x")
    assert exc.value.status_code == 400


def test_reserved_key_reported_on_import(db):
    results = settings_store.import_settings(db, [{"key": "export", "value": "x"}], "root@example.com")
    assert results == [{"key": "export", "status": "error", "message": "Setting key 'export' is reserved"}]
