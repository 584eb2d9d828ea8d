"""
Pytest configuration and fixtures for tests.
"""
import copy
import os
import random
import uuid

# Settings are read at import time; give them test values first
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("COSMOS_DB_ENDPOINT", "https://test.documents.azure.com:443/")
os.environ.setdefault("COSMOS_DB_KEY", "dGVzdC1jb3Ntb3Mta2V5")
os.environ.setdefault("SMTP_USER", "noreply@example.com")
os.environ.setdefault("SMTP_PASSWORD", "smtp-password")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")

import httpx
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from eartraining.core.dependencies import get_db
from eartraining.core.security import create_user_token, get_password_hash
from eartraining.main import app
from eartraining.models.user import User
from eartraining.services.email_service import email_service
from eartraining.services.google_oauth_service import google_oauth_service


LEADERBOARD_KEYS = {
    "xp": lambda p: (p.get("total_xp", 0),),
    "points": lambda p: (p.get("total_points", 0),),
    "accuracy": lambda p: (p.get("overall_accuracy", 0),),
    "level": lambda p: (p.get("current_level", 1), p.get("total_xp", 0)),
}


class ConflictError(Exception):
    """Duplicate id, like the store's resource-exists error."""


class InMemoryCosmosDB:
    """Dict-backed stand-in for CosmosDBService with the same async interface."""

    def __init__(self):
        self.users = {}
        self.progress = {}
        self.password_resets = {}
        self.progressions = {}

    async def initialize(self):
        return True

    async def close(self):
        pass

    async def ping(self) -> bool:
        return True

    # Users

    async def create_user(self, user_data: dict) -> dict:
        if user_data["id"] in self.users:
            raise ConflictError(user_data["id"])
        self.users[user_data["id"]] = copy.deepcopy(user_data)
        return copy.deepcopy(user_data)

    async def get_user(self, user_id: str):
        user = self.users.get(user_id)
        return copy.deepcopy(user) if user else None

    async def get_user_by_email(self, email: str):
        email = email.strip().lower()
        for user in self.users.values():
            if user["email"] == email:
                return copy.deepcopy(user)
        return None

    async def update_user(self, user_id: str, updates: dict) -> dict:
        self.users[user_id].update(copy.deepcopy(updates))
        return copy.deepcopy(self.users[user_id])

    async def list_users(self) -> list:
        return [copy.deepcopy(user) for user in self.users.values()]

    async def get_users_by_ids(self, user_ids: list) -> dict:
        return {
            user_id: copy.deepcopy(self.users[user_id])
            for user_id in user_ids if user_id in self.users
        }

    # Progress

    async def get_progress(self, user_id: str):
        progress = self.progress.get(f"progress_{user_id}")
        return copy.deepcopy(progress) if progress else None

    async def create_progress(self, progress_data: dict) -> dict:
        existing = self.progress.get(progress_data["id"])
        if existing:
            return copy.deepcopy(existing)
        self.progress[progress_data["id"]] = copy.deepcopy(progress_data)
        return copy.deepcopy(progress_data)

    async def save_progress(self, progress_data: dict) -> dict:
        self.progress[progress_data["id"]] = copy.deepcopy(progress_data)
        return copy.deepcopy(progress_data)

    async def get_leaderboard(self, metric: str, limit: int) -> list:
        key = LEADERBOARD_KEYS.get(metric, LEADERBOARD_KEYS["xp"])
        active = [p for p in self.progress.values() if p.get("total_exercises", 0) > 0]
        return [copy.deepcopy(p) for p in sorted(active, key=key, reverse=True)[:limit]]

    # Password resets

    async def create_password_reset(self, reset_data: dict, ttl_seconds: int) -> dict:
        self.password_resets[reset_data["id"]] = dict(copy.deepcopy(reset_data), ttl=ttl_seconds)
        return copy.deepcopy(self.password_resets[reset_data["id"]])

    async def get_password_reset_by_token(self, token: str):
        for reset in self.password_resets.values():
            if reset["token"] == token:
                return copy.deepcopy(reset)
        return None

    async def invalidate_password_resets(self, email: str) -> int:
        pending = [r for r in self.password_resets.values() if r["email"] == email and not r["used"]]
        for reset in pending:
            reset["used"] = True
        return len(pending)

    async def mark_password_reset_used(self, reset_id: str, email: str) -> dict:
        self.password_resets[reset_id]["used"] = True
        return copy.deepcopy(self.password_resets[reset_id])

    # Chord progressions

    def _matching(self, filters: dict, search=None) -> list:
        items = []
        for progression in self.progressions.values():
            if any(
                value is not None and progression.get(field) != value
                for field, value in filters.items()
            ):
                continue
            if search:
                needle = search.lower()
                haystack = [progression.get(f) or "" for f in ("name", "description", "reference")]
                if not any(needle in text.lower() for text in haystack):
                    continue
            items.append(progression)
        return items

    async def query_progressions(self, filters: dict, search=None, offset: int = 0, limit: int = 10):
        matching = sorted(
            self._matching(filters, search),
            key=lambda p: (p["difficulty"], p["category"], p["name"])
        )
        return [copy.deepcopy(p) for p in matching[offset:offset + limit]], len(matching)

    async def count_progressions(self, filters=None, search=None) -> int:
        return len(self._matching(filters or {}, search))

    async def sample_progressions(self, filters: dict, size: int, search=None):
        matching = self._matching(filters, search)
        sample = random.sample(matching, min(size, len(matching)))
        return [copy.deepcopy(p) for p in sample], len(matching)

    async def list_progressions(self, filters=None) -> list:
        return [copy.deepcopy(p) for p in self._matching(filters or {})]

    async def get_progression(self, progression_id: str):
        progression = self.progressions.get(progression_id)
        return copy.deepcopy(progression) if progression else None

    async def get_progression_by_name(self, name: str):
        for progression in self.progressions.values():
            if progression["name"] == name:
                return copy.deepcopy(progression)
        return None

    async def create_progression(self, progression_data: dict) -> dict:
        self.progressions[progression_data["id"]] = copy.deepcopy(progression_data)
        return copy.deepcopy(progression_data)

    async def create_progressions(self, progressions: list) -> list:
        return [await self.create_progression(p) for p in progressions]


# ==================== FIXTURES ====================

@pytest.fixture
def db():
    """Fresh in-memory database installed on the app."""
    fake = InMemoryCosmosDB()
    app.dependency_overrides[get_db] = lambda: fake
    app.state.db = fake
    yield fake
    app.dependency_overrides.clear()
    app.state.db = None


@pytest.fixture
def client(db):
    """Synchronous test client (no lifespan events)."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(db):
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client


@pytest.fixture
def make_user(db):
    """Insert a password user and return (document, auth headers)."""
    def _make(email: str = "aluno@example.com", name: str = "Aluno", password: str = "secret123"):
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            name=name,
            password_hash=get_password_hash(password)
        )
        user_data = user.model_dump(mode="json")
        db.users[user.id] = user_data
        headers = {"Authorization": f"Bearer {create_user_token(user_data)}"}
        return copy.deepcopy(user_data), headers
    return _make


@pytest.fixture
def mock_email():
    """Capture outgoing reset emails."""
    with patch.object(
        email_service,
        "send_password_reset_email",
        new=AsyncMock(return_value=True)
    ) as mock:
        yield mock


@pytest.fixture
def mock_google():
    """Mock Google's token and userinfo endpoints."""
    with patch.object(google_oauth_service, "exchange_code", new=AsyncMock()) as exchange, \
         patch.object(google_oauth_service, "fetch_user_info", new=AsyncMock()) as userinfo:
        yield exchange, userinfo


@pytest.fixture
def google_http():
    """Serve the Google service's HTTP calls from a handler(request) -> httpx.Response."""
    real_client = httpx.AsyncClient
    patchers = []

    def _install(handler):
        def make_client(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        patcher = patch.object(httpx, "AsyncClient", new=make_client)
        patcher.start()
        patchers.append(patcher)

    yield _install
    for patcher in patchers:
        patcher.stop()
