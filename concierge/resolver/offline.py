"""Rule-based replies used when neither local nor remote sources answer."""

from concierge.models import Provenance, ResolvedReply

GREETING_TEXT = (
    "Hello! How can I help you today? "
    "I can assist you with company information and answer your questions."
)
HELP_TEXT = (
    "I can help you with:\n"
    "• Company information and policies\n"
    "• Product details\n"
    "• General inquiries\n"
    "• Voice commands\n\n"
    "Just ask me anything or use voice input!"
)
THANKS_TEXT = "You're welcome! Is there anything else I can help you with?"


def generate_offline_reply(text: str) -> ResolvedReply:
    """Pick a canned reply by trigger substring. Pure and deterministic.

    Triggers are checked in priority order: greeting ("hello"/"hi"),
    "help", "thank".  Anything else gets an echo reply.
    """
    lowered = text.lower()

    if "hello" in lowered or "hi" in lowered:
        return ResolvedReply(
            text=GREETING_TEXT,
            confidence=0.9,
            provenance=Provenance.OFFLINE,
            related_topics=["greeting", "help", "assistance"],
        )

    if "help" in lowered:
        return ResolvedReply(
            text=HELP_TEXT,
            confidence=0.8,
            provenance=Provenance.OFFLINE,
            related_topics=["help", "features", "voice"],
        )

    if "thank" in lowered:
        return ResolvedReply(
            text=THANKS_TEXT,
            confidence=0.9,
            provenance=Provenance.OFFLINE,
            related_topics=["thanks", "assistance"],
        )

    return ResolvedReply(
        text=(
            f'I understand you\'re asking about: "{text}". '
            "Let me search our database for relevant information. "
            "If you need immediate assistance, please try rephrasing your question."
        ),
        confidence=0.5,
        provenance=Provenance.OFFLINE,
        related_topics=["search", "information"],
    )
