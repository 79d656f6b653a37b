"""Concierge terminal entry point."""

import asyncio
import logging

from concierge.assistant import Assistant
from concierge.config import settings
from concierge.errors import MessageRejectedError
from concierge.models import Message, ResolvedReply

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

HELP = "Commands: /new [title], /sessions, /load <id>, /sync, /export, /quit"


async def _print_reply(reply: ResolvedReply, message: Message) -> None:
    print(f"\nassistant [{reply.provenance}, {reply.confidence:.1f}]> {message.text}\n")


async def run() -> None:
    assistant = Assistant()
    await assistant.initialize()
    assistant.sessions.subscribe(_print_reply)
    print(HELP)

    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "you> ")
            except EOFError:
                break
            command, _, arg = line.strip().partition(" ")

            if command == "/quit":
                break
            if command == "/new":
                session = await assistant.sessions.create_session(arg or None)
                print(f"Started {session.title} ({session.id})")
            elif command == "/sessions":
                for s in await assistant.sessions.get_all_sessions():
                    print(f"{s.id}  {s.title}  ({len(s.messages)} messages)")
            elif command == "/load":
                loaded = await assistant.sessions.load_session(arg)
                print(f"Loaded {loaded.title}" if loaded else f"No session {arg}")
            elif command == "/sync":
                ok = await assistant.sync_with_server()
                print("Sync complete" if ok else "Sync failed")
            elif command == "/export":
                print(await assistant.export_chat_history())
            else:
                try:
                    await assistant.submit(line)
                except MessageRejectedError as exc:
                    print(exc)
                    continue
                await assistant.sessions.wait_for_replies()
    finally:
        await assistant.cleanup()


def main() -> None:
    """Start the interactive assistant."""
    logger.info("Starting Concierge against %s", settings.api_base_url)
    asyncio.run(run())


if __name__ == "__main__":
    main()
