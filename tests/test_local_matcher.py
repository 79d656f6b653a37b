"""Tests for the local knowledge matcher."""

import logging
from unittest.mock import AsyncMock

import pytest

from concierge.models import KnowledgeRecord
from concierge.resolver.local import MAX_RESULTS, LocalMatcher
from concierge.store import RecordStore


async def test_phrase_match(store: RecordStore, support_policy, company_overview) -> None:
    await store.insert_records([support_policy, company_overview])
    matcher = LocalMatcher(store)

    results = await matcher.match("mobile app")
    assert [r.title for r in results] == ["Company Overview"]


async def test_term_fallback_finds_policy(store: RecordStore, support_policy) -> None:
    await store.insert_records([support_policy])
    matcher = LocalMatcher(store)

    results = await matcher.match("What is your refund policy?")
    assert [r.title for r in results] == ["Support Policy"]


async def test_term_fallback_keeps_recency_order(store: RecordStore) -> None:
    await store.insert_records(
        [
            KnowledgeRecord(title="Privacy Policy", content="data", updated_at="2024-01-01"),
            KnowledgeRecord(title="Refund rules", content="money back", updated_at="2024-03-01"),
        ]
    )
    results = await LocalMatcher(store).match("refund policy")
    assert [r.title for r in results] == ["Refund rules", "Privacy Policy"]


async def test_no_match_returns_empty(store: RecordStore, support_policy) -> None:
    await store.insert_records([support_policy])
    assert await LocalMatcher(store).match("quantum entanglement") == []


async def test_blank_query_returns_empty(store: RecordStore) -> None:
    assert await LocalMatcher(store).match("   ") == []


async def test_results_capped(store: RecordStore) -> None:
    await store.insert_records(
        [KnowledgeRecord(title=f"Gadget {i}", content="gadget") for i in range(20)]
    )
    assert len(await LocalMatcher(store).match("gadget")) == MAX_RESULTS


async def test_store_failure_is_no_match() -> None:
    broken = AsyncMock()
    broken.search_records.side_effect = RuntimeError("db locked")
    assert await LocalMatcher(broken).match("anything") == []


async def test_bare_wildcard_query_matches_nothing(store: RecordStore, support_policy) -> None:
    await store.insert_records([support_policy])
    assert await LocalMatcher(store).match("%") == []
    assert await LocalMatcher(store).match("_") == []


async def test_term_match_log_truncates_long_query(
    store: RecordStore, support_policy, caplog: pytest.LogCaptureFixture
) -> None:
    await store.insert_records([support_policy])
    query = "policy " + "x" * 200

    with caplog.at_level(logging.DEBUG, logger="concierge.resolver.local"):
        results = await LocalMatcher(store).match(query)

    assert [r.title for r in results] == ["Support Policy"]
    [record] = [r for r in caplog.records if "by term" in r.getMessage()]
    assert query not in record.getMessage()
    assert "..." in record.getMessage()
