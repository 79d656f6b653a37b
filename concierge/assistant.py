"""Assistant — wires the store, resolver, session manager and voice bridge."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from concierge.models import KnowledgeRecord
from concierge.remote.client import RemoteResponder
from concierge.resolver.chain import ResponseResolver
from concierge.resolver.local import LocalMatcher
from concierge.session import SessionManager
from concierge.store import RecordStore
from concierge.text import truncate_text, validate_message

if TYPE_CHECKING:
    from pathlib import Path

    from concierge.models import Message
    from concierge.voice import VoiceBridge, VoiceConfig

logger = logging.getLogger(__name__)

LAST_SYNC_KEY = "last_sync_timestamp"


class Assistant:
    """Application facade over the conversation core.

    Construct, ``await initialize()``, use, then ``await cleanup()``.
    Collaborators can be injected for tests; defaults come from settings.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        responder: RemoteResponder | None = None,
        voice: VoiceBridge | None = None,
        db_path: Path | None = None,
    ) -> None:
        self.store = store or RecordStore(db_path)
        self.responder = responder or RemoteResponder()
        self.voice = voice
        self.resolver = ResponseResolver.default(LocalMatcher(self.store), self.responder)
        self.sessions = SessionManager(self.store, self.resolver)

    # -- Lifecycle -------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the record store. StorageUnavailableError propagates."""
        await self.store.initialize()
        logger.info("Assistant initialized")

    async def cleanup(self) -> None:
        await self.sessions.close()
        if self.voice is not None:
            await self.voice.destroy()
        await self.store.close()
        logger.info("Assistant shut down")

    @property
    def is_processing(self) -> bool:
        return self.resolver.in_flight or self.sessions.is_generating

    # -- Messaging -------------------------------------------------------------

    async def submit(self, text: str, audio_path: str | None = None) -> Message:
        """Validate user text and send it. MessageRejectedError on bad input."""
        cleaned = validate_message(text)
        return await self.sessions.send_message(cleaned, is_user=True, audio_path=audio_path)

    # -- Voice -----------------------------------------------------------------

    def _require_voice(self) -> VoiceBridge:
        if self.voice is None:
            msg = "No voice bridge configured"
            raise RuntimeError(msg)
        return self.voice

    async def handle_voice_input(self) -> str:
        """Listen once and return the recognized text. VoiceError propagates."""
        return await self._require_voice().listen_once()

    async def speak_message(self, text: str, config: VoiceConfig | None = None) -> None:
        await self._require_voice().speak(text, config)

    async def stop_voice_input(self) -> None:
        if self.voice is not None:
            await self.voice.stop_listening()

    async def stop_speaking(self) -> None:
        if self.voice is not None:
            await self.voice.stop_speaking()

    # -- Sync & export ---------------------------------------------------------

    async def sync_with_server(self) -> bool:
        """Pull knowledge records changed since the last successful sync.

        Returns True when the server answered; the sync timestamp is only
        advanced in that case.
        """
        since = await self.store.get_meta(LAST_SYNC_KEY)
        result = await self.responder.sync(since)
        if not result.success:
            logger.warning("Sync failed: %s", result.error)
            return False

        items = []
        if isinstance(result.data, dict):
            items = result.data.get("records") or []
        records = []
        for item in items:
            try:
                records.append(KnowledgeRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed sync record: %s", truncate_text(repr(item), 200))
        await self.store.insert_records(records)
        await self.store.set_meta(LAST_SYNC_KEY, datetime.now(UTC).isoformat())
        logger.info(
            "Synced %d knowledge records (%d stored)",
            len(records),
            await self.store.count_records(),
        )
        return True

    async def export_chat_history(self) -> str:
        """Serialize every stored session and its messages to JSON."""
        sessions = await self.sessions.get_all_sessions()
        export = {
            "exportDate": datetime.now(UTC).isoformat(),
            "totalSessions": len(sessions),
            "sessions": [
                {
                    "id": s.id,
                    "title": s.title,
                    "messageCount": len(s.messages),
                    "createdAt": s.created_at.isoformat(),
                    "updatedAt": s.updated_at.isoformat(),
                    "messages": [m.to_dict() for m in s.messages],
                }
                for s in sessions
            ],
        }
        return json.dumps(export, indent=2, ensure_ascii=False)
