"""Shared test fixtures."""

from __future__ import annotations

import pytest

from concierge.models import KnowledgeRecord
from concierge.remote.client import ApiResponse
from concierge.store import RecordStore


@pytest.fixture(autouse=True)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use a local file, not remote Turso."""
    monkeypatch.setattr("concierge.config.settings.turso_database_url", "")


@pytest.fixture
async def store(tmp_path):
    """An initialized RecordStore backed by a temporary database."""
    s = RecordStore(tmp_path / "test.db")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def support_policy() -> KnowledgeRecord:
    return KnowledgeRecord(
        title="Support Policy",
        content=(
            "Our support team is available 24/7 to assist customers. We provide email, "
            "phone, and chat support with response times under 2 hours."
        ),
        category="support",
        keywords=["support", "help", "customer service", "24/7", "response time"],
        created_at="2024-01-02T00:00:00+00:00",
        updated_at="2024-01-02T00:00:00+00:00",
    )


@pytest.fixture
def company_overview() -> KnowledgeRecord:
    return KnowledgeRecord(
        title="Company Overview",
        content=(
            "Our company is a leading technology firm specializing in AI solutions, "
            "mobile app development, and cloud services."
        ),
        category="company-info",
        keywords=["company", "overview", "technology", "AI", "mobile", "cloud"],
        created_at="2024-01-01T00:00:00+00:00",
        updated_at="2024-01-01T00:00:00+00:00",
    )


class FakeResponder:
    """Stand-in for RemoteResponder with scripted results."""

    def __init__(self) -> None:
        self.result = ApiResponse.offline()
        self.error: Exception | None = None
        self.queries: list[str] = []
        self.sync_result = ApiResponse.offline()
        self.sync_calls: list[str | None] = []

    async def query(self, message: str, context: list[str] | None = None) -> ApiResponse:
        self.queries.append(message)
        if self.error is not None:
            raise self.error
        return self.result

    async def sync(self, since: str | None = None) -> ApiResponse:
        self.sync_calls.append(since)
        return self.sync_result


@pytest.fixture
def responder() -> FakeResponder:
    """A responder that reports no connectivity until told otherwise."""
    return FakeResponder()
