"""Text helpers: message validation, keyword extraction and message search."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from concierge.config import settings
from concierge.errors import MessageRejectedError

if TYPE_CHECKING:
    from concierge.models import Message

_STOP_WORDS = frozenset(
    """
    the a an and or but in on at to for of with by from up about into through
    during before after above below between among within is was are were be
    been being have has had do does did will would could should may might
    must can shall this that these those i you he she it we they me him her
    us them what which who whom how why when where your our my its their
    """.split()
)

_PUNCTUATION = re.compile(r"[^\w\s]")


def validate_message(text: str | None, max_length: int | None = None) -> str:
    """Return *text* trimmed, or raise MessageRejectedError.

    Empty or whitespace-only text and text longer than the configured
    maximum are rejected.
    """
    limit = max_length or settings.max_message_length
    if not text or not text.strip():
        msg = "Message cannot be empty"
        raise MessageRejectedError(msg)
    trimmed = text.strip()
    if len(trimmed) > limit:
        msg = f"Message is too long (max {limit} characters)"
        raise MessageRejectedError(msg)
    return trimmed


def extract_keywords(text: str) -> list[str]:
    """Unique lower-cased words longer than two characters, minus stop words.

    Order of first appearance is kept.
    """
    words = _PUNCTUATION.sub("", text.lower()).split()
    seen: dict[str, None] = {}
    for word in words:
        if len(word) > 2 and word not in _STOP_WORDS:
            seen.setdefault(word, None)
    return list(seen)


def search_messages(messages: list[Message], query: str) -> list[Message]:
    """Case-insensitive substring filter. A blank query returns everything."""
    if not query.strip():
        return list(messages)
    needle = query.lower()
    return [m for m in messages if needle in m.text.lower()]


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
