# tests/conftest.py
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Resolve backend/ folder and add it to sys.path
BACKEND_DIR = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(BACKEND_DIR))

# Settings are read at import time, so the test database must be chosen first
TEST_DATA_DIR = tempfile.mkdtemp(prefix="devhabit-tests-")
os.environ["DATABASE_FOLDER"] = TEST_DATA_DIR
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DATA_DIR}/devhabit-test.db"
os.environ["LOG_DIR"] = os.path.join(TEST_DATA_DIR, "logs")
os.environ["FERNET_KEY_FILE"] = os.path.join(TEST_DATA_DIR, ".fernet.key")
os.environ["GITHUB_AUTOMATION_ENABLED"] = "false"

# ===== SHARED FIXTURES =====

@pytest.fixture(scope="session")
def client():
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)

@pytest.fixture
def clean_database():
    """Make sure the tables exist, then empty every table after the test."""
    from core.init import run_all
    run_all()

    yield

    from sqlalchemy import delete
    from core.db import get_sync_session
    from models.db_models import (
        Entry, EntryImportJob, GitHubAccessToken, Habit, HabitTag, IdentityUser, Tag, User
    )

    with get_sync_session() as session:
        for model in (HabitTag, Entry, EntryImportJob, GitHubAccessToken, Tag, Habit, User, IdentityUser):
            session.execute(delete(model))
        session.commit()

def create_test_user(email: str = "member@example.com", name: str = "Test Member"):
    """Insert an identity and its user directly; returns ``(user_id, auth_headers)``."""
    from core.db import get_sync_session
    from core.security import create_access_token
    from models.db_models import IdentityUser, User

    with get_sync_session() as session:
        identity_user = IdentityUser(email=email, hashed_password="not-used")
        session.add(identity_user)
        session.commit()
        session.refresh(identity_user)

        user = User(identity_id=identity_user.id, email=email, name=name)
        session.add(user)
        session.commit()
        session.refresh(user)

        token = create_access_token({"sub": identity_user.id, "email": email, "role": "member"})
        return user.id, {"Authorization": f"Bearer {token}"}

@pytest.fixture
def member(clean_database):
    return create_test_user()

@pytest.fixture
def other_member(clean_database):
    return create_test_user("other@example.com", "Other Member")

@pytest.fixture
def user_factory(clean_database):
    return create_test_user
