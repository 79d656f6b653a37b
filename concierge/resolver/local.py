"""Keyword/substring lookup of knowledge records in the local store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from concierge.text import extract_keywords, truncate_text

if TYPE_CHECKING:
    from concierge.models import KnowledgeRecord
    from concierge.store import RecordStore

logger = logging.getLogger(__name__)

MAX_RESULTS = 10


class LocalMatcher:
    """Finds knowledge records whose title, content or keywords contain the query.

    The whole phrase is tried first.  When it has no hit, each significant
    term of the query is tried in turn and the hits are merged in store
    order (most recently updated first).  Store failures count as no match.
    """

    def __init__(self, store: RecordStore, limit: int = MAX_RESULTS) -> None:
        self._store = store
        self._limit = min(limit, MAX_RESULTS)

    async def match(self, query: str) -> list[KnowledgeRecord]:
        query = query.strip()
        if not query:
            return []

        try:
            records = await self._store.search_records(query, limit=self._limit)
            if records:
                return records

            terms = [t for t in extract_keywords(query) if t != query.lower()]
            merged: dict[int | None, KnowledgeRecord] = {}
            for term in terms:
                for record in await self._store.search_records(term, limit=self._limit):
                    merged.setdefault(record.id, record)
        except Exception:
            logger.exception("Local knowledge search failed")
            return []

        ranked = sorted(
            merged.values(),
            key=lambda r: (r.updated_at, r.id or 0),
            reverse=True,
        )
        if ranked:
            logger.debug("Matched %d records by term for %r", len(ranked), truncate_text(query, 80))
        return ranked[: self._limit]
