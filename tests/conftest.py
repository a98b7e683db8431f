"""Test configuration for Second Light."""

from __future__ import annotations

import json
from collections import deque
from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Callable, Dict, List, Union

import httpx
import pytest
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from app.config import settings
from app.database import Database
from app.services.analysis_service import AnalysisService
from app.shared.models import utcnow

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Provide isolated configuration for each test."""

    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "http://test/files")
    monkeypatch.setattr(settings, "JWT_SECRET_KEY", TEST_SECRET)
    monkeypatch.setattr(settings, "JWT_ALGORITHM", "HS256")
    monkeypatch.setattr(settings, "JWT_AUDIENCE", None)
    monkeypatch.setattr(settings, "FAIL_ON_PARTIAL_PERSIST", False)
    monkeypatch.setattr(settings, "MONTHLY_REPORT_LIMIT", 30)
    monkeypatch.setattr(settings, "MIN_DOCUMENT_TEXT_LENGTH", 20)


@pytest.fixture()
async def db() -> AsyncGenerator[None, None]:
    """Beanie initialised against an in-memory MongoDB."""

    await Database.connect_db(AsyncMongoMockClient())
    yield
    Database.client = None


# ============ ANALYSIS SERVICE FAKE ============

class FakeCompletions:
    """Stands in for ``client.chat.completions`` and replays queued answers."""

    def __init__(self) -> None:
        self.responses: deque = deque()
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.responses:
            raise AssertionError("Unexpected Analysis Service call")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        message = SimpleNamespace(content=response)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAnalysisClient:
    """Scripted replacement for ``AsyncOpenAI``."""

    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *responses: Union[str, dict, list, Exception]) -> None:
        for response in responses:
            if isinstance(response, (dict, list)):
                response = json.dumps(response)
            self.completions.responses.append(response)

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.completions.calls


@pytest.fixture()
def fake_analysis() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture()
def analysis_service(fake_analysis: FakeAnalysisClient) -> AnalysisService:
    return AnalysisService(client=fake_analysis)


# ============ AUTH ============

@pytest.fixture()
def make_token() -> Callable[..., str]:
    """Factory for bearer tokens signed with the test secret."""

    def _make(user_id: str = "user-1", **claims: Any) -> str:
        payload = {"sub": user_id, "exp": utcnow() + timedelta(hours=1), **claims}
        return jwt.encode(payload, TEST_SECRET, algorithm="HS256")

    return _make


@pytest.fixture()
def auth_headers(make_token: Callable[..., str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token('user-1')}"}


# ============ HTTP CLIENT ============

@pytest.fixture()
async def client(db, analysis_service: AnalysisService) -> AsyncGenerator[httpx.AsyncClient, None]:
    """ASGI client for the app with the Analysis Service replaced."""

    from app.dependencies import get_analysis_service
    from app.main import app

    app.dependency_overrides[get_analysis_service] = lambda: analysis_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()
