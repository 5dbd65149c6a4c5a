# tests/job/test_github_automation.py
from datetime import datetime, UTC

import pytest
from sqlmodel import select

import core.job as job_module
from core.db import get_sync_session
from models.db_models import Entry, Habit
from models.github_models import GitHubEventDto, GitHubUserProfileDto

def make_event(event_id, created_at="2024-04-02T10:00:00Z"):
    return GitHubEventDto.model_validate({
        "id": event_id,
        "type": "PushEvent",
        "actor": {"id": 1, "login": "octocat"},
        "repo": {"id": 2, "name": "octocat/hello"},
        "created_at": created_at
    })

@pytest.fixture
def github(monkeypatch):
    """Stub the GitHub calls the automation makes; ``state`` controls the responses."""
    state = {"token": "ghp_test", "events": [make_event("101"), make_event("102")]}

    async def fake_get_access_token(user_id):
        return state["token"]

    async def fake_get_user_profile(access_token):
        return GitHubUserProfileDto(login="octocat", id=1)

    async def fake_get_user_events(username, access_token):
        return state["events"]

    monkeypatch.setattr(job_module, "get_access_token", fake_get_access_token)
    monkeypatch.setattr(job_module, "get_user_profile", fake_get_user_profile)
    monkeypatch.setattr(job_module, "get_user_events", fake_get_user_events)
    return state

def seed_automated_habit(user_id, automation_source="github", is_archived=False):
    with get_sync_session() as session:
        habit = Habit(
            user_id=user_id,
            name="Commit code",
            automation_source=automation_source,
            is_archived=is_archived
        )
        session.add(habit)
        session.commit()
        session.refresh(habit)
        return habit

def load_entries(habit_id):
    with get_sync_session() as session:
        return list(session.exec(select(Entry).where(Entry.habit_id == habit_id)).all())

@pytest.mark.asyncio
async def test_events_become_automation_entries_once(member, github):
    user_id, _ = member
    habit = seed_automated_habit(user_id)

    first = await job_module.process_github_habit(habit)
    second = await job_module.process_github_habit(habit)

    assert first == 2
    assert second == 0
    entries = load_entries(habit.id)
    assert {entry.external_id for entry in entries} == {f"github_{habit.id}_101", f"github_{habit.id}_102"}
    assert {entry.source for entry in entries} == {"automation"}
    assert entries[0].notes == "PushEvent on octocat/hello"
    assert entries[0].date == datetime(2024, 4, 2, tzinfo=UTC).date()

@pytest.mark.asyncio
async def test_habit_is_skipped_without_token(member, github):
    user_id, _ = member
    habit = seed_automated_habit(user_id)
    github["token"] = None

    assert await job_module.process_github_habit(habit) == 0
    assert load_entries(habit.id) == []

@pytest.mark.asyncio
async def test_only_active_github_habits_are_scanned(member, github):
    user_id, _ = member
    active = seed_automated_habit(user_id)
    seed_automated_habit(user_id, is_archived=True)
    seed_automated_habit(user_id, automation_source="none")

    habits = await job_module.get_github_automated_habits()

    assert [habit.id for habit in habits] == [active.id]

@pytest.mark.asyncio
async def test_run_github_automation_scans_every_habit(member, other_member, github):
    user_id, _ = member
    other_user_id, _ = other_member
    first = seed_automated_habit(user_id)
    second = seed_automated_habit(other_user_id)

    await job_module.run_github_automation()

    assert len(load_entries(first.id)) == 2
    assert len(load_entries(second.id)) == 2
