"""SessionManager — active chat session, write-through history, reply queue."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from concierge.models import Message, ResolvedReply, Session
from concierge.text import search_messages

if TYPE_CHECKING:
    from collections.abc import Callable

    from concierge.resolver.chain import ResponseResolver
    from concierge.store import RecordStore

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the active session and schedules replies to user turns.

    Every append is written through to the store: the message row first,
    then the session row.  User turns are queued for reply generation and
    drained by a single background task, one at a time, so each user turn
    gets exactly one assistant turn.  Use ``wait_for_replies()`` or
    ``subscribe()`` to observe completion.
    """

    def __init__(self, store: RecordStore, resolver: ResponseResolver) -> None:
        self._store = store
        self._resolver = resolver
        self._session: Session | None = None
        self._pending: deque[str] = deque()
        self._worker: asyncio.Task | None = None
        self._subscribers: list[Callable[[ResolvedReply, Message], Any]] = []

    # -- Session lifecycle -----------------------------------------------------

    @property
    def current_session(self) -> Session | None:
        return self._session

    def get_current_session(self) -> Session | None:
        return self._session

    def _start_session(self, title: str | None = None) -> Session:
        # Activated before any await so concurrent sends share one session
        session = Session.create(title)
        self._session = session
        return session

    async def create_session(self, title: str | None = None) -> Session:
        """Start a new session, make it active, and persist it.

        If the store rejects it, the previously active session is restored
        and the error propagates.
        """
        previous = self._session
        session = self._start_session(title)
        try:
            await self._store.save_session(session)
        except Exception:
            if self._session is session:
                self._session = previous
            raise
        logger.info("Created session %s (%s)", session.id, session.title)
        return session

    async def load_session(self, session_id: str) -> Session | None:
        """Make a stored session active. Returns None if it does not exist."""
        session = await self._store.get_session(session_id)
        if session is None:
            logger.info("Session not found: %s", session_id)
            return None
        self._session = session
        return session

    async def get_all_sessions(self) -> list[Session]:
        """All stored sessions, most recently updated first."""
        return await self._store.list_sessions()

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session from the store, clearing it if it is active."""
        if self._session is not None and self._session.id == session_id:
            self._session = None
        return await self._store.delete_session(session_id)

    def search_messages(self, query: str) -> list[Message]:
        """Filter the active session's messages by case-insensitive substring."""
        if self._session is None:
            return []
        return search_messages(self._session.messages, query)

    # -- Messages --------------------------------------------------------------

    async def send_message(
        self,
        text: str,
        is_user: bool = True,
        audio_path: str | None = None,
    ) -> Message:
        """Append a message to the active session and persist it.

        *text* must already be validated.  A user turn enqueues reply
        generation and returns without waiting for the reply.  If the
        message row cannot be written, the append is undone and the error
        propagates.
        """
        started = self._session is None
        session = self._session or self._start_session()

        message = Message.create(text, is_user=is_user, audio_path=audio_path)
        session.append(message)

        try:
            await self._store.save_message(session.id, message)
        except Exception:
            session.messages.remove(message)
            if started and self._session is session and not session.messages:
                self._session = None
            raise
        await self._store.save_session(session)

        if is_user:
            self._enqueue_reply(text)
        return message

    # -- Reply generation ------------------------------------------------------

    @property
    def is_generating(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def subscribe(self, callback: Callable[[ResolvedReply, Message], Any]) -> None:
        """Call *callback(reply, message)* after each reply is persisted.

        Coroutine callbacks are awaited.
        """
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[ResolvedReply, Message], Any]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    async def wait_for_replies(self) -> None:
        """Wait until every queued user turn has been answered."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    def _enqueue_reply(self, text: str) -> None:
        self._pending.append(text)
        if not self.is_generating:
            self._worker = asyncio.create_task(self._drain_replies())

    async def _drain_replies(self) -> None:
        while self._pending:
            try:
                outcome = await self._reply_to(self._pending[0])
            except Exception:
                logger.exception("Could not store reply")
                self._pending.popleft()
                continue
            if outcome is None:
                # Another caller holds the resolver; retry once it is free
                await self._resolver.wait_idle()
                continue
            self._pending.popleft()
            await self._notify(*outcome)

    async def _reply_to(self, text: str) -> tuple[ResolvedReply, Message] | None:
        delivered: list[Message] = []

        async def deliver(reply_text: str) -> None:
            delivered.append(await self.send_message(reply_text, is_user=False))

        reply = await self._resolver.generate(text, deliver)
        if reply is None:
            return None
        return reply, delivered[0]

    async def _notify(self, reply: ResolvedReply, message: Message) -> None:
        for callback in list(self._subscribers):
            try:
                result = callback(reply, message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Reply subscriber failed")

    # -- Teardown --------------------------------------------------------------

    async def close(self) -> None:
        """Finish outstanding replies and drop the active session."""
        await self.wait_for_replies()
        self._pending.clear()
        self._session = None
