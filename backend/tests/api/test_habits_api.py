# tests/api/test_habits_api.py
import uuid

HATEOAS = {"Accept": "application/vnd.dev-habit.hateoas+json"}
V2 = {"Accept": "application/vnd.dev-habit.v2+json"}

def habit_payload(name="Read books", habit_type="measurable", **overrides):
    payload = {
        "name": name,
        "description": f"{name} every day",
        "type": habit_type,
        "frequency": {"type": "daily", "times_per_period": 1},
        "target": {"value": 30, "unit": "pages"}
    }
    payload.update(overrides)
    return payload

def create_habit(client, headers, **kwargs):
    response = client.post(
        "/habits",
        json=habit_payload(**kwargs),
        headers={**headers, "Idempotency-Key": str(uuid.uuid4())}
    )
    assert response.status_code == 201
    return response.json()

# ===== CREATE / READ =====

def test_create_habit(client, member):
    _, headers = member

    response = client.post(
        "/habits",
        json=habit_payload(milestone={"target": 100}),
        headers={**headers, "Idempotency-Key": str(uuid.uuid4())}
    )

    assert response.status_code == 201
    habit = response.json()
    assert habit["status"] == "ongoing"
    assert habit["frequency"] == {"type": "daily", "times_per_period": 1}
    assert habit["milestone"] == {"target": 100, "current": 0}
    assert response.headers["Location"].endswith(f"/habits/{habit['id']}")
    assert habit["links"] == []

def test_create_habit_with_links(client, member):
    _, headers = member

    response = client.post(
        "/habits",
        json=habit_payload(),
        headers={**headers, **HATEOAS, "Idempotency-Key": str(uuid.uuid4())}
    )

    rels = [link["rel"] for link in response.json()["links"]]
    assert rels == ["self", "update", "partial-update", "delete", "upsert-tags"]

def test_create_habit_validation(client, member):
    _, headers = member

    response = client.post(
        "/habits",
        json=habit_payload(name="ab"),
        headers={**headers, "Idempotency-Key": str(uuid.uuid4())}
    )

    assert response.status_code == 422

def test_get_habit_shaped(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    response = client.get(f"/habits/{habit['id']}", params={"fields": "name,target"}, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"name": "Read books", "target": {"value": 30, "unit": "pages"}}

def test_get_habit_unknown_field(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    response = client.get(f"/habits/{habit['id']}", params={"fields": "colour"}, headers=headers)

    assert response.status_code == 400

def test_get_missing_habit(client, member):
    _, headers = member

    assert client.get("/habits/h_missing", headers=headers).status_code == 404

# ===== LIST =====

def test_list_habits_search_and_filters(client, member):
    _, headers = member
    create_habit(client, headers, name="Read books")
    create_habit(client, headers, name="Morning run", habit_type="binary")
    create_habit(client, headers, name="Evening reading", habit_type="binary")

    searched = client.get("/habits", params={"q": "read"}, headers=headers).json()
    binary = client.get("/habits", params={"type": "binary", "sort": "name"}, headers=headers).json()

    assert searched["total_count"] == 2
    assert [habit["name"] for habit in binary["items"]] == ["Evening reading", "Morning run"]

def test_list_habits_invalid_sort(client, member):
    _, headers = member

    response = client.get("/habits", params={"sort": "colour desc"}, headers=headers)

    assert response.status_code == 400
    assert "colour desc" in response.json()["detail"]

def test_list_habits_links(client, member):
    _, headers = member
    for i in range(3):
        create_habit(client, headers, name=f"Habit {i}")

    body = client.get("/habits", params={"page_size": 2}, headers={**headers, **HATEOAS}).json()

    assert [link["rel"] for link in body["links"]] == ["self", "create", "next-page"]
    assert all("links" in item for item in body["items"])

# ===== VERSION 2 =====

def test_v2_habits_include_tag_names(client, member):
    _, headers = member
    habit = create_habit(client, headers)
    tag_id = client.post("/tags", json={"name": "Health"}, headers=headers).json()["id"]
    client.put(f"/habits/{habit['id']}/tags", json={"tag_ids": [tag_id]}, headers=headers)

    single = client.get(f"/habits/{habit['id']}", headers={**headers, **V2}).json()
    listed = client.get("/habits", headers={**headers, **V2}).json()
    v1 = client.get(f"/habits/{habit['id']}", headers=headers).json()

    assert single["tags"] == ["Health"]
    assert listed["items"][0]["tags"] == ["Health"]
    assert "tags" not in v1

def test_v1_rejects_tags_field(client, member):
    _, headers = member

    assert client.get("/habits", params={"fields": "tags"}, headers=headers).status_code == 400
    assert client.get("/habits", params={"fields": "tags"}, headers={**headers, **V2}).status_code == 200

# ===== UPDATE / DELETE =====

def test_update_habit(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    response = client.put(
        f"/habits/{habit['id']}",
        json=habit_payload(name="Read papers", target={"value": 5, "unit": "papers"}),
        headers=headers
    )

    assert response.status_code == 204
    updated = client.get(f"/habits/{habit['id']}", headers=headers).json()
    assert updated["name"] == "Read papers"
    assert updated["target"] == {"value": 5, "unit": "papers"}
    assert updated["updated_at_utc"] is not None

def test_patch_habit_only_touches_sent_fields(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    response = client.patch(f"/habits/{habit['id']}", json={"is_archived": True}, headers=headers)

    assert response.status_code == 204
    patched = client.get(f"/habits/{habit['id']}", headers=headers).json()
    assert patched["is_archived"] is True
    assert patched["name"] == habit["name"]
    assert patched["description"] == habit["description"]

def test_delete_habit(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    assert client.delete(f"/habits/{habit['id']}", headers=headers).status_code == 204
    assert client.get(f"/habits/{habit['id']}", headers=headers).status_code == 404
    assert client.delete(f"/habits/{habit['id']}", headers=headers).status_code == 404

def test_habits_of_other_users_are_hidden(client, member, other_member):
    _, headers = member
    _, other_headers = other_member
    habit = create_habit(client, headers)

    assert client.get(f"/habits/{habit['id']}", headers=other_headers).status_code == 404
    assert client.get("/habits", headers=other_headers).json()["total_count"] == 0

# ===== ETAGS =====

def test_conditional_get_returns_304(client, member):
    _, headers = member
    habit = create_habit(client, headers)

    first = client.get(f"/habits/{habit['id']}", headers=headers)
    etag = first.headers["ETag"]
    second = client.get(f"/habits/{habit['id']}", headers={**headers, "If-None-Match": etag})

    assert second.status_code == 304
    assert second.content == b""

def test_etag_changes_after_update(client, member):
    _, headers = member
    habit = create_habit(client, headers)
    etag = client.get(f"/habits/{habit['id']}", headers=headers).headers["ETag"]

    client.patch(f"/habits/{habit['id']}", json={"name": "Read more books"}, headers=headers)
    response = client.get(f"/habits/{habit['id']}", headers={**headers, "If-None-Match": etag})

    assert response.status_code == 200
    assert response.json()["name"] == "Read more books"
    assert response.headers["ETag"] != etag
