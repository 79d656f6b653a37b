"""Reply resolution — local knowledge, remote responder, offline rules."""

from concierge.resolver.chain import (
    APOLOGY_TEXT,
    LocalStrategy,
    OfflineStrategy,
    RemoteStrategy,
    ReplyStrategy,
    ResponseResolver,
)
from concierge.resolver.local import LocalMatcher
from concierge.resolver.offline import generate_offline_reply

__all__ = [
    "APOLOGY_TEXT",
    "LocalMatcher",
    "LocalStrategy",
    "OfflineStrategy",
    "RemoteStrategy",
    "ReplyStrategy",
    "ResponseResolver",
    "generate_offline_reply",
]
