from starlette.requests import Request

from app.security.rate_limit import per_window
from app.security.rbac import client_ip

FORM = {"username": "nobody@example.com", "password": "wrong"}


def make_request(headers=None, peer="9.9.9.9"):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (peer, 1234),
    }
    return Request(scope)


def test_per_window_format():
    assert per_window(5, 900) == "5 per 900 seconds"


def test_client_ip_prefers_forwarded_for():
    request = make_request({"X-Forwarded-For": "1.1.1.1, 10.0.0.1", "X-Real-IP": "2.2.2.2"})
    assert client_ip(request) == "1.1.1.1"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert client_ip(make_request({"X-Real-IP": "2.2.2.2"})) == "2.2.2.2"
    assert client_ip(make_request()) == "9.9.9.9"


def test_login_is_rate_limited(client):
    statuses = [client.post("/auth/login", data=FORM).status_code for _ in range(6)]
    assert statuses[:5] == [401] * 5
    assert statuses[5] == 429


def test_rate_limited_response_uses_error_envelope(client):
    for _ in range(5):
        client.post("/auth/login", data=FORM)
    response = client.post("/auth/login", data=FORM)

    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "RATE_LIMITED"
    assert body["error"]["message"] == "Too many authentication attempts, please try again later."
    assert 1 <= body["error"]["details"]["retry_after"] <= 900
    assert int(response.headers["Retry-After"]) >= 1


def test_clients_are_counted_separately(client):
    for _ in range(5):
        client.post("/auth/login", data=FORM, headers={"X-Forwarded-For": "3.3.3.3"})
    assert client.post("/auth/login", data=FORM, headers={"X-Forwarded-For": "3.3.3.3"}).status_code == 429
    assert client.post("/auth/login", data=FORM, headers={"X-Forwarded-For": "4.4.4.4"}).status_code == 401


def test_export_limit_is_shared_across_routes(client, auth_headers):
    for _ in range(5):
        assert client.get("/faq/export?format=json", headers=auth_headers).status_code == 200
    for _ in range(5):
        assert client.get("/security/audit/export", headers=auth_headers).status_code == 200
    response = client.get("/faq/export?format=json", headers=auth_headers)
    assert response.status_code == 429
    assert response.json()["error"]["code"] == "RATE_LIMITED"
