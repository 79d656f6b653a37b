"""Data models for sessions, messages, knowledge records and replies."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(UTC)


def make_message_id() -> str:
    """Generate a new message ID."""
    return f"msg_{uuid.uuid4().hex}"


def make_session_id() -> str:
    """Generate a new session ID."""
    return f"session_{uuid.uuid4().hex}"


def default_session_title(created_at: datetime) -> str:
    return f"Chat {created_at:%Y-%m-%d}"


class Provenance(StrEnum):
    """Where a generated reply came from."""

    LOCAL = "local"
    REMOTE = "remote"
    OFFLINE = "offline"


@dataclass(frozen=True)
class Message:
    """A single conversation turn. Immutable once created."""

    id: str
    text: str
    is_user: bool
    timestamp: datetime
    audio_path: str | None = None

    @classmethod
    def create(cls, text: str, is_user: bool, audio_path: str | None = None) -> Message:
        return cls(
            id=make_message_id(),
            text=text,
            is_user=is_user,
            timestamp=utcnow(),
            audio_path=audio_path,
        )

    @property
    def role(self) -> str:
        return "user" if self.is_user else "assistant"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "isUser": self.is_user,
            "timestamp": self.timestamp.isoformat(),
            "audioPath": self.audio_path,
        }

    def to_row(self, session_id: str) -> tuple:
        """Serialize to a tuple matching the ``messages`` column order."""
        return (
            self.id,
            session_id,
            self.text,
            int(self.is_user),
            self.audio_path,
            self.timestamp.isoformat(),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Message:
        """Deserialize from ``(id, session_id, text, is_user, audio_path, timestamp)``."""
        return cls(
            id=row[0],
            text=row[2],
            is_user=bool(row[3]),
            audio_path=row[4],
            timestamp=datetime.fromisoformat(row[5]),
        )


@dataclass
class Session:
    """A titled, append-only conversation thread.

    Attributes:
        id: Unique identifier (``session_<uuid hex>``).
        title: Display title, ``Chat YYYY-MM-DD`` unless given.
        messages: Messages in chronological order.
        created_at: Creation time (aware UTC).
        updated_at: Bumped on every append; never earlier than any message.
    """

    id: str
    title: str
    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.updated_at is None:
            self.updated_at = self.created_at

    @classmethod
    def create(cls, title: str | None = None) -> Session:
        now = utcnow()
        return cls(
            id=make_session_id(),
            title=title or default_session_title(now),
            created_at=now,
            updated_at=now,
        )

    def append(self, message: Message) -> None:
        """Append *message* and bump ``updated_at``."""
        self.messages.append(message)
        self.updated_at = max(utcnow(), message.timestamp)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.title,
            self.created_at.isoformat(),
            self.updated_at.isoformat(),
        )

    @classmethod
    def from_row(cls, row: tuple, messages: list[Message]) -> Session:
        """Deserialize from ``(id, title, created_at, updated_at)``."""
        return cls(
            id=row[0],
            title=row[1],
            messages=messages,
            created_at=datetime.fromisoformat(row[2]),
            updated_at=datetime.fromisoformat(row[3]),
        )


@dataclass
class KnowledgeRecord:
    """A company-knowledge entry searched by the local matcher."""

    title: str
    content: str
    category: str = ""
    keywords: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utcnow().isoformat()
        if not self.updated_at:
            self.updated_at = self.created_at

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeRecord:
        """Build from a sync payload item (camelCase or snake_case keys).

        Raises ValueError unless title and content are non-empty strings.
        """
        title, content = data["title"], data["content"]
        if not isinstance(title, str) or not title.strip():
            msg = f"Knowledge record needs a title, got {title!r}"
            raise ValueError(msg)
        if not isinstance(content, str) or not content.strip():
            msg = f"Knowledge record {title!r} needs content"
            raise ValueError(msg)
        return cls(
            title=title,
            content=content,
            category=data.get("category") or "",
            keywords=list(data.get("keywords") or []),
            created_at=data.get("createdAt") or data.get("created_at") or "",
            updated_at=data.get("updatedAt") or data.get("updated_at") or "",
        )

    def to_row(self) -> tuple:
        return (
            self.title,
            self.content,
            self.category,
            json.dumps(self.keywords),
            self.created_at,
            self.updated_at,
        )

    @classmethod
    def from_row(cls, row: tuple) -> KnowledgeRecord:
        """Deserialize from ``(id, title, content, category, keywords, created_at, updated_at)``."""
        return cls(
            id=row[0],
            title=row[1],
            content=row[2],
            category=row[3] or "",
            keywords=json.loads(row[4] or "[]"),
            created_at=row[5],
            updated_at=row[6],
        )


@dataclass(frozen=True)
class ResolvedReply:
    """A generated reply before it becomes an assistant Message."""

    text: str
    confidence: float
    provenance: Provenance
    related_topics: list[str] = field(default_factory=list)
