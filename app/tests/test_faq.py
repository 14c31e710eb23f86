import csv
import io

import pytest

from app.errors import ApiError
from app.services import faq


def faq_data(question="How do I reset my streak?", **fields):
    data = {
        "question": question,
        "answer": "Open settings and tap reset streak.",
        "category": "Account",
        "language": "en",
    }
    data.update(fields)
    return data


def test_validation_messages():
    errors = faq.validate_faq_data({
        "question": "Hi?",
        "answer": "Short",
        "category": "A",
        "language": "jp",
        "sort_order": -1,
    })
    assert errors == [
        "Question must be at least 5 characters long",
        "Answer must be at least 10 characters long",
        "Category must be between 2 and 100 characters",
        "Language must be one of: tr, en, es, fr, de",
        "Order must be a positive number",
    ]


def test_create_defaults(db):
    item = faq.create_faq(db, faq_data(is_published=None, sort_order=None))
    assert item.is_published is True
    assert item.sort_order == 0


def test_create_rejects_invalid(db):
    with pytest.raises(ApiError) as exc:
        faq.create_faq(db, faq_data(question="Why"))
    assert exc.value.status_code == 400


def test_listing_orders_by_sort_order(db):
    second = faq.create_faq(db, faq_data("Second question?", sort_order=2))
    first = faq.create_faq(db, faq_data("First question?", sort_order=1))
    items, _ = faq.list_faqs(db)
    assert [i.id for i in items] == [first.id, second.id]


def test_reorder(db):
    a = faq.create_faq(db, faq_data("Question A here?"))
    b = faq.create_faq(db, faq_data("Question B here?"))
    assert faq.reorder(db, [{"id": a.id, "order": 5}, {"id": b.id, "order": 1}]) == 2
    items, _ = faq.list_faqs(db)
    assert [i.id for i in items] == [b.id, a.id]


def test_reorder_rejects_negative(db):
    a = faq.create_faq(db, faq_data())
    with pytest.raises(ApiError):
        faq.reorder(db, [{"id": a.id, "order": -3}])


def test_bulk_publish_and_stats(db):
    ids = [faq.create_faq(db, faq_data(f"Question number {i}?", is_published=False)).id for i in range(4)]
    assert faq.bulk_action(db, ids[:3], "publish") == 3

    stats = faq.faq_stats(db)
    assert stats["total"] == 4
    assert stats["published"] == 3
    assert stats["publish_rate"] == 75.0
    assert stats["categories"] == 1


def test_find_duplicates_ignores_case(db):
    item = faq.create_faq(db, faq_data("How do I reset my streak?"))
    assert [d.id for d in faq.find_duplicates(db, "  how do i RESET my streak? ", "en")] == [item.id]
    assert faq.find_duplicates(db, "How do I reset my streak?", "tr") == []
    assert faq.find_duplicates(db, "How do I reset my streak?", "en", exclude_id=item.id) == []


def test_import_reports_failures(db):
    faq.create_faq(db, faq_data("Existing question?"))
    result = faq.import_faqs(db, [
        faq_data("Brand new question?"),
        faq_data("existing QUESTION?"),
        {"question": "No answer given?", "category": "Account"},
    ])
    assert result["success"] == 1
    assert result["failed"] == 2
    assert "Duplicate question found" in result["errors"][0]
    assert "answer is required" in result["errors"][1]


def test_export_csv(db):
    faq.create_faq(db, faq_data('Does "quoting" work?'))
    rows = list(csv.reader(io.StringIO(faq.export_faqs(db, "csv"))))
    assert rows[0] == faq.CSV_HEADERS
    assert rows[1][1] == 'Does "quoting" work?'
    assert rows[1][5] == "Yes"


def test_export_json(db):
    faq.create_faq(db, faq_data(tags=["streak"]))
    data = faq.export_faqs(db, "json", language="en")
    assert data[0]["tags"] == ["streak"]
    assert data[0]["language"] == "en"


def test_public_search_only_returns_published(client, db):
    faq.create_faq(db, faq_data("How do streak resets work?"))
    faq.create_faq(db, faq_data("Hidden streak question?", is_published=False))

    response = client.get("/public/faq", params={"q": "streak"})
    assert response.status_code == 200
    assert [f["question"] for f in response.json()] == ["How do streak resets work?"]


def test_export_route_returns_csv(client, db, auth_headers):
    faq.create_faq(db, faq_data())
    response = client.get("/faq/export", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]


def test_export_route_is_rate_limited(client, auth_headers):
    statuses = [client.get("/faq/export?format=json", headers=auth_headers).status_code for _ in range(11)]
    assert statuses[:10] == [200] * 10
    assert statuses[10] == 429
