# tests/api/test_entries_api.py
import uuid
from datetime import date, timedelta

import pytest

HATEOAS = {"Accept": "application/vnd.dev-habit.hateoas+json"}
START_DATE = date(2024, 3, 1)

def idempotency_key():
    return {"Idempotency-Key": str(uuid.uuid4())}

def create_habit(client, headers, name="Read books"):
    response = client.post("/habits", json={
        "name": name,
        "type": "measurable",
        "frequency": {"type": "daily", "times_per_period": 1},
        "target": {"value": 30, "unit": "pages"}
    }, headers={**headers, **idempotency_key()})
    assert response.status_code == 201
    return response.json()["id"]

def seed_entries(user_id, habit_id, count):
    from core.db import get_sync_session
    from models.db_models import Entry

    with get_sync_session() as session:
        for i in range(count):
            session.add(Entry(
                habit_id=habit_id,
                user_id=user_id,
                value=i,
                date=START_DATE + timedelta(days=i)
            ))
        session.commit()

@pytest.fixture
def habit_with_entries(client, member):
    user_id, headers = member
    habit_id = create_habit(client, headers)
    seed_entries(user_id, habit_id, 12)
    return habit_id, headers

# ===== OFFSET PAGINATION =====

def test_entries_page_envelope(client, habit_with_entries):
    _, headers = habit_with_entries

    response = client.get("/entries", params={"page": 2, "page_size": 5}, headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert len(body["items"]) == 5
    assert body["page"] == 2
    assert body["page_size"] == 5
    assert body["total_count"] == 12
    assert body["total_pages"] == 3
    assert body["has_previous_page"] is True
    assert body["has_next_page"] is True
    assert body["links"] == []
    assert "links" not in body["items"][0]

def test_entries_sorted_by_value_descending(client, habit_with_entries):
    _, headers = habit_with_entries

    response = client.get("/entries", params={"sort": "value desc", "page_size": 3}, headers=headers)

    assert [item["value"] for item in response.json()["items"]] == [11, 10, 9]

def test_entries_data_shaping(client, habit_with_entries):
    _, headers = habit_with_entries

    response = client.get("/entries", params={"fields": "value,date", "sort": "date"}, headers=headers)

    first = response.json()["items"][0]
    assert first == {"value": 0, "date": START_DATE.isoformat()}

def test_entries_date_filters(client, habit_with_entries):
    _, headers = habit_with_entries
    params = {
        "from_date": (START_DATE + timedelta(days=2)).isoformat(),
        "to_date": (START_DATE + timedelta(days=4)).isoformat()
    }

    response = client.get("/entries", params=params, headers=headers)

    assert response.json()["total_count"] == 3

def test_entries_are_scoped_to_the_current_user(client, habit_with_entries, other_member):
    _, other_headers = other_member

    response = client.get("/entries", headers=other_headers)

    assert response.json()["total_count"] == 0

@pytest.mark.parametrize("params, message", [
    ({"sort": "colour"}, "sort parameter"),
    ({"fields": "id,colour"}, "data shaping fields"),
])
def test_invalid_sort_or_fields_is_bad_request(client, habit_with_entries, params, message):
    _, headers = habit_with_entries

    response = client.get("/entries", params=params, headers=headers)

    assert response.status_code == 400
    assert message in response.json()["detail"]

@pytest.mark.parametrize("params", [{"page": 0}, {"page_size": 0}, {"page_size": 101}])
def test_page_bounds_are_validated(client, member, params):
    _, headers = member

    assert client.get("/entries", params=params, headers=headers).status_code == 422

def test_entries_require_authentication(client):
    assert client.get("/entries").status_code == 401

# ===== HYPERMEDIA =====

def test_entries_links_only_with_hateoas_accept(client, habit_with_entries):
    _, headers = habit_with_entries

    body = client.get("/entries", params={"page": 2, "page_size": 5}, headers={**headers, **HATEOAS}).json()

    rels = [link["rel"] for link in body["links"]]
    assert rels == ["self", "create", "create-batch", "previous-page", "next-page"]

    next_page = next(link for link in body["links"] if link["rel"] == "next-page")
    assert "page=3" in next_page["href"]
    assert "page_size=5" in next_page["href"]

    item_rels = [link["rel"] for link in body["items"][0]["links"]]
    assert item_rels == ["self", "update", "delete", "archive"]

def test_first_page_has_no_previous_link(client, habit_with_entries):
    _, headers = habit_with_entries

    body = client.get("/entries", params={"page_size": 20}, headers={**headers, **HATEOAS}).json()

    assert [link["rel"] for link in body["links"]] == ["self", "create", "create-batch"]

# ===== CURSOR PAGINATION =====

def test_cursor_pages_follow_next_links(client, habit_with_entries):
    _, headers = habit_with_entries

    seen = []
    url = "/entries/cursor?limit=5"
    pages = 0
    while url:
        body = client.get(url, headers={**headers, **HATEOAS}).json()
        seen.extend(item["date"] for item in body["items"])
        next_links = [link["href"] for link in body["links"] if link["rel"] == "next-page"]
        url = next_links[0] if next_links else None
        pages += 1

    assert pages == 3
    assert len(seen) == 12
    assert seen == sorted(seen, reverse=True)

def test_cursor_page_without_hateoas_has_no_links(client, habit_with_entries):
    _, headers = habit_with_entries

    body = client.get("/entries/cursor", params={"limit": 3}, headers=headers).json()

    assert len(body["items"]) == 3
    assert body["links"] == []

def test_garbage_cursor_returns_first_page(client, habit_with_entries):
    _, headers = habit_with_entries

    body = client.get("/entries/cursor", params={"limit": 2, "cursor": "%%%"}, headers=headers).json()

    expected = [(START_DATE + timedelta(days=d)).isoformat() for d in (11, 10)]
    assert [item["date"] for item in body["items"]] == expected

# ===== CREATE =====

def test_create_entry_requires_idempotency_key(client, member):
    user_id, headers = member
    habit_id = create_habit(client, headers)

    response = client.post("/entries", json={"habit_id": habit_id, "value": 1, "date": "2024-03-01"}, headers=headers)

    assert response.status_code == 400
    assert "Idempotency-Key" in response.json()["detail"]

def test_create_entry_and_replay(client, member):
    _, headers = member
    habit_id = create_habit(client, headers)
    key_headers = {**headers, **idempotency_key()}
    payload = {"habit_id": habit_id, "value": 3, "notes": "morning", "date": "2024-03-01"}

    first = client.post("/entries", json=payload, headers=key_headers)
    replay = client.post("/entries", json=payload, headers=key_headers)

    assert first.status_code == 201
    entry = first.json()
    assert entry["source"] == "manual"
    assert entry["is_archived"] is False
    assert first.headers["Location"].endswith(f"/entries/{entry['id']}")

    assert replay.status_code == 201
    assert replay.content == b""
    assert client.get("/entries", headers=headers).json()["total_count"] == 1

def test_create_entry_for_unknown_habit(client, member):
    _, headers = member

    response = client.post(
        "/entries",
        json={"habit_id": "h_missing", "value": 1, "date": "2024-03-01"},
        headers={**headers, **idempotency_key()}
    )

    assert response.status_code == 400
    assert "h_missing" in response.json()["detail"]

def test_create_entry_batch(client, member):
    _, headers = member
    habit_id = create_habit(client, headers)
    payload = {"entries": [
        {"habit_id": habit_id, "value": 1, "date": "2024-03-01"},
        {"habit_id": habit_id, "value": 2, "date": "2024-03-02"}
    ]}

    response = client.post("/entries/batch", json=payload, headers=headers)

    assert response.status_code == 201
    assert [entry["value"] for entry in response.json()] == [1, 2]

def test_create_entry_batch_rejects_foreign_habits(client, member, other_member):
    _, headers = member
    _, other_headers = other_member
    habit_id = create_habit(client, headers)
    foreign_habit_id = create_habit(client, other_headers)
    payload = {"entries": [
        {"habit_id": habit_id, "value": 1, "date": "2024-03-01"},
        {"habit_id": foreign_habit_id, "value": 2, "date": "2024-03-02"}
    ]}

    response = client.post("/entries/batch", json=payload, headers=headers)

    assert response.status_code == 400
    assert client.get("/entries", headers=headers).json()["total_count"] == 0

def test_create_entry_batch_size_limit(client, member):
    _, headers = member
    payload = {"entries": [{"habit_id": "h_1", "value": 1, "date": "2024-03-01"}] * 21}

    assert client.post("/entries/batch", json=payload, headers=headers).status_code == 422

# ===== SINGLE ENTRY =====

def test_archive_and_unarchive_entry(client, member):
    _, headers = member
    habit_id = create_habit(client, headers)
    entry_id = client.post(
        "/entries",
        json={"habit_id": habit_id, "value": 1, "date": "2024-03-01"},
        headers={**headers, **idempotency_key()}
    ).json()["id"]

    assert client.put(f"/entries/{entry_id}/archive", headers=headers).status_code == 204
    archived = client.get(f"/entries/{entry_id}", headers={**headers, **HATEOAS}).json()
    assert archived["is_archived"] is True
    assert archived["links"][-1]["rel"] == "un-archive"

    assert client.put(f"/entries/{entry_id}/un-archive", headers=headers).status_code == 204
    assert client.get(f"/entries/{entry_id}", headers=headers).json()["is_archived"] is False

def test_update_and_delete_entry(client, member):
    _, headers = member
    habit_id = create_habit(client, headers)
    entry_id = client.post(
        "/entries",
        json={"habit_id": habit_id, "value": 1, "date": "2024-03-01"},
        headers={**headers, **idempotency_key()}
    ).json()["id"]

    assert client.put(f"/entries/{entry_id}", json={"value": 9, "notes": "fixed"}, headers=headers).status_code == 204
    updated = client.get(f"/entries/{entry_id}", params={"fields": "value,notes"}, headers=headers).json()
    assert updated == {"value": 9, "notes": "fixed"}

    assert client.delete(f"/entries/{entry_id}", headers=headers).status_code == 204
    assert client.get(f"/entries/{entry_id}", headers=headers).status_code == 404

def test_other_users_entry_is_not_found(client, member, other_member):
    _, headers = member
    _, other_headers = other_member
    habit_id = create_habit(client, headers)
    entry_id = client.post(
        "/entries",
        json={"habit_id": habit_id, "value": 1, "date": "2024-03-01"},
        headers={**headers, **idempotency_key()}
    ).json()["id"]

    assert client.get(f"/entries/{entry_id}", headers=other_headers).status_code == 404
