from app.models import Task
from app.services import ads, dashboard
from app.services.common import utcnow


def make_ad(db, title="Streak boost", **fields):
    data = {
        "title": title,
        "description": "Premium features for your journey",
        "target_url": "https://example.com/premium",
        "placement": "home",
        "start_date": utcnow(),
    }
    data.update(fields)
    return ads.create_ad(db, data)


def test_create_resets_counters(db):
    ad = make_ad(db, impressions=500, clicks=20, spent=3.5, status="paused")
    assert (ad.impressions, ad.clicks, ad.spent, ad.status) == (0, 0, 0, "active")


def test_tracking_and_stats(db):
    first = make_ad(db, "First")
    second = make_ad(db, "Second")
    for _ in range(4):
        ads.record_impression(db, first.id)
    ads.record_click(db, first.id)
    ads.record_impression(db, second.id)
    ads.add_spend(db, first.id, 2.5)

    stats = ads.ad_stats(db)
    assert stats["total_impressions"] == 5
    assert stats["total_clicks"] == 1
    assert stats["ctr"] == 20.0
    assert stats["total_spent"] == 2.5
    assert [a.id for a in ads.top_performing(db, 1)] == [first.id]


def test_ctr_without_impressions(db):
    make_ad(db)
    assert ads.ad_stats(db)["ctr"] == 0


def test_ads_settings_routes(client, auth_headers):
    response = client.put(
        "/ads/settings",
        json={"ads.enabled": True, "ads.frequency_minutes": 30},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert client.get("/ads/settings", headers=auth_headers).json() == {
        "ads.enabled": True,
        "ads.frequency_minutes": 30.0,
    }


def test_ad_status_route(client, db, auth_headers):
    ad = make_ad(db)
    response = client.post(f"/ads/{ad.id}/status/pause", headers=auth_headers)
    assert response.json()["status"] == "paused"


def test_dashboard(client, db, user_factory, auth_headers):
    top = user_factory("top@example.com", streak=40)
    user_factory("low@example.com", streak=2)
    user_factory("banned@example.com", streak=99, status="banned")
    for category in ("Physical", "Physical", "Mental"):
        db.add(Task(user_id=top.id, title="t", description="d", category=category))
    db.commit()

    stats = client.get("/dashboard/stats", headers=auth_headers).json()
    assert stats["users"] == {"total": 3, "active": 2, "premium": 0, "banned": 1}
    assert stats["tasks"]["active"] == 3

    assert dashboard.popular_categories(db, 1) == [{"category": "Physical", "count": 2}]
    leaders = client.get("/dashboard/top-users?limit=1", headers=auth_headers).json()
    assert leaders[0]["id"] == top.id
