"""Fallback chain for reply generation with a single-flight guard.

Strategies are tried in order.  Each one returns a ``ResolvedReply`` or
``None`` to pass to the next; the last strategy always answers.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from concierge.models import Provenance, ResolvedReply
from concierge.remote.client import parse_reply_payload
from concierge.resolver.offline import generate_offline_reply

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from concierge.remote.client import RemoteResponder
    from concierge.resolver.local import LocalMatcher

logger = logging.getLogger(__name__)

APOLOGY_TEXT = (
    "I apologize, but I encountered an error while processing your request. "
    "Please try again."
)

LOCAL_CONFIDENCE = 0.8


class ReplyStrategy(ABC):
    """One stage of the fallback chain."""

    name: str = ""

    @abstractmethod
    async def resolve(self, text: str) -> ResolvedReply | None:
        """Return a reply, or None to defer to the next strategy."""
        ...


class LocalStrategy(ReplyStrategy):
    name = "local"

    def __init__(self, matcher: LocalMatcher) -> None:
        self._matcher = matcher

    async def resolve(self, text: str) -> ResolvedReply | None:
        candidates = await self._matcher.match(text)
        if not candidates:
            return None
        best = candidates[0]
        logger.info("Answered from knowledge record %r", best.title)
        return ResolvedReply(
            text=best.content,
            confidence=LOCAL_CONFIDENCE,
            provenance=Provenance.LOCAL,
            related_topics=list(best.keywords),
        )


class RemoteStrategy(ReplyStrategy):
    name = "remote"

    def __init__(self, responder: RemoteResponder) -> None:
        self._responder = responder

    async def resolve(self, text: str) -> ResolvedReply | None:
        result = await self._responder.query(text)
        if not result.success:
            return None
        reply = parse_reply_payload(result.data)
        if reply is None:
            logger.warning("Remote reply payload had no usable text")
        return reply


class OfflineStrategy(ReplyStrategy):
    name = "offline"

    async def resolve(self, text: str) -> ResolvedReply:
        return generate_offline_reply(text)


def apology_reply() -> ResolvedReply:
    return ResolvedReply(text=APOLOGY_TEXT, confidence=0.0, provenance=Provenance.OFFLINE)


class ResponseResolver:
    """Produces at most one reply at a time.

    ``generate()`` holds an ``asyncio.Lock`` from the first strategy until
    the reply has been delivered.  A call made while the lock is held
    returns None without doing anything.
    """

    def __init__(self, strategies: Sequence[ReplyStrategy]) -> None:
        if not strategies or not isinstance(strategies[-1], OfflineStrategy):
            strategies = [*strategies, OfflineStrategy()]
        self._strategies = list(strategies)
        self._guard = asyncio.Lock()
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def default(cls, matcher: LocalMatcher, responder: RemoteResponder) -> ResponseResolver:
        return cls([LocalStrategy(matcher), RemoteStrategy(responder), OfflineStrategy()])

    @property
    def in_flight(self) -> bool:
        return self._guard.locked()

    async def wait_idle(self) -> None:
        """Return once no generation holds the guard."""
        await self._idle.wait()

    @property
    def strategies(self) -> list[ReplyStrategy]:
        return list(self._strategies)

    async def resolve(self, text: str) -> ResolvedReply:
        """Run the chain without the guard and without delivering."""
        for strategy in self._strategies:
            reply = await strategy.resolve(text)
            if reply is not None:
                logger.debug("Reply from %s strategy", strategy.name)
                return reply
        # OfflineStrategy is always last and always answers
        return generate_offline_reply(text)

    async def generate(
        self,
        text: str,
        deliver: Callable[[str], Awaitable[object]],
    ) -> ResolvedReply | None:
        """Resolve a reply for *text* and hand its text to *deliver*.

        Strategy failures are logged and replaced by the apology reply.
        Failures raised by *deliver* propagate after the guard is released.
        """
        if self._guard.locked():
            logger.debug("Reply generation already in flight; ignoring")
            return None

        async with self._guard:
            self._idle.clear()
            try:
                reply = await self._resolve_or_apologize(text)
                await deliver(reply.text)
            finally:
                self._idle.set()
        return reply

    async def _resolve_or_apologize(self, text: str) -> ResolvedReply:
        try:
            return await self.resolve(text)
        except Exception:
            logger.exception("Failed to generate response")
            return apology_reply()
