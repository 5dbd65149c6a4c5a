# tests/api/test_github_api.py
from datetime import datetime, timedelta, UTC

import pytest
from sqlmodel import select

import api.github as github_api
from core.db import get_sync_session
from models.db_models import GitHubAccessToken
from models.github_models import GitHubEventDto, GitHubUserProfileDto

@pytest.fixture
def github_calls(monkeypatch):
    """Replace outbound GitHub requests; records the tokens they were made with."""
    tokens = []

    async def fake_get_user_profile(access_token):
        tokens.append(access_token)
        return GitHubUserProfileDto(login="octocat", id=1, name="The Octocat", public_repos=8)

    async def fake_get_user_events(username, access_token):
        return [GitHubEventDto.model_validate({
            "id": "1",
            "type": "PushEvent",
            "actor": {"id": 1, "login": username},
            "repo": {"id": 2, "name": "octocat/hello"},
            "created_at": "2024-04-02T10:00:00Z"
        })]

    monkeypatch.setattr(github_api, "get_user_profile", fake_get_user_profile)
    monkeypatch.setattr(github_api, "get_user_events", fake_get_user_events)
    return tokens

def store_token(client, headers, token="ghp_secret", days=30):
    return client.put(
        "/github/personal-access-token",
        json={"access_token": token, "expires_in_days": days},
        headers=headers
    )

def test_token_is_encrypted_at_rest(client, member):
    user_id, headers = member

    assert store_token(client, headers).status_code == 204

    with get_sync_session() as session:
        stored = session.exec(select(GitHubAccessToken).where(GitHubAccessToken.user_id == user_id)).first()
    assert stored.token != "ghp_secret"

def test_profile_uses_stored_token(client, member, github_calls):
    _, headers = member
    store_token(client, headers)

    response = client.get("/github/profile", headers=headers)

    assert response.status_code == 200
    assert response.json()["login"] == "octocat"
    assert github_calls == ["ghp_secret"]

def test_storing_again_replaces_the_token(client, member, github_calls):
    _, headers = member
    store_token(client, headers, token="ghp_old")
    store_token(client, headers, token="ghp_new")

    client.get("/github/profile", headers=headers)

    assert github_calls == ["ghp_new"]

def test_profile_links(client, member, github_calls):
    _, headers = member
    store_token(client, headers)

    body = client.get(
        "/github/profile",
        headers={**headers, "Accept": "application/vnd.dev-habit.hateoas+json"}
    ).json()

    assert [link["rel"] for link in body["links"]] == ["self", "store-token", "revoke-token"]

def test_profile_without_token(client, member, github_calls):
    _, headers = member

    assert client.get("/github/profile", headers=headers).status_code == 404
    assert github_calls == []

def test_revoked_token_is_gone(client, member, github_calls):
    _, headers = member
    store_token(client, headers)

    assert client.delete("/github/personal-access-token", headers=headers).status_code == 204
    assert client.get("/github/profile", headers=headers).status_code == 404

def test_expired_token_counts_as_missing(client, member, github_calls):
    user_id, headers = member
    store_token(client, headers)

    with get_sync_session() as session:
        stored = session.exec(select(GitHubAccessToken).where(GitHubAccessToken.user_id == user_id)).first()
        stored.expires_at_utc = datetime.now(UTC) - timedelta(days=1)
        session.add(stored)
        session.commit()

    assert client.get("/github/profile", headers=headers).status_code == 404

def test_events(client, member, github_calls):
    _, headers = member
    store_token(client, headers)

    body = client.get("/github/events", headers=headers).json()

    assert [event["type"] for event in body["items"]] == ["PushEvent"]
    assert body["items"][0]["actor"]["login"] == "octocat"

def test_expires_in_days_bounds(client, member):
    _, headers = member

    assert store_token(client, headers, days=0).status_code == 422
    assert store_token(client, headers, days=366).status_code == 422
