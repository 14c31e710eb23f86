from unittest.mock import MagicMock, patch

import pytest

from app.db import normalize_db_url, wait_for_database


@pytest.mark.parametrize("url,expected", [
    ("postgres://u:p@host/db", "postgresql+psycopg://u:p@host/db"),
    ("postgresql://u:p@host/db", "postgresql+psycopg://u:p@host/db"),
    ("postgresql+psycopg://u:p@host/db", "postgresql+psycopg://u:p@host/db"),
    ("sqlite:///./nofap_admin.db", "sqlite:///./nofap_admin.db"),
])
def test_normalize_db_url(url, expected):
    assert normalize_db_url(url) == expected


def test_wait_for_database_retries_then_succeeds():
    bind = MagicMock()
    bind.connect.side_effect = [OSError("refused"), MagicMock()]
    with patch("app.db.time.sleep") as sleep:
        wait_for_database(bind, retries=3, backoff=2)
    assert bind.connect.call_count == 2
    sleep.assert_called_once_with(2)


def test_wait_for_database_gives_up():
    bind = MagicMock()
    bind.connect.side_effect = OSError("refused")
    with patch("app.db.time.sleep") as sleep, pytest.raises(OSError):
        wait_for_database(bind, retries=3, backoff=1)
    assert bind.connect.call_count == 3
    assert [c.args[0] for c in sleep.call_args_list] == [1, 2]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "service": "nofap-admin"}


def test_ready(client):
    assert client.get("/ready").json() == {"status": "ready"}


def test_ready_reports_unreachable_database(client):
    with patch("app.main.ping", side_effect=OSError("down")):
        response = client.get("/ready")
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
