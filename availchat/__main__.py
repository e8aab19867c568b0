"""availchat console entry point."""

import asyncio
import logging

from availchat.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def run() -> None:
    """Read messages from stdin and print the assistant's replies."""
    from availchat.chat.context import ConversationContext
    from availchat.chat.orchestrator import ChatService
    from availchat.chat.session import SessionManager
    from availchat.chat.storage import LocalStorage
    from availchat.integrations.availability_api import AvailabilityApi
    from availchat.llm.client import build_completion_client
    from availchat.tools.availability_tools import build_catalog

    if not settings.user_id:
        logger.warning("AVAILCHAT_USER_ID is empty; availability queries will fail")

    registry = build_catalog(AvailabilityApi())
    storage = LocalStorage()
    chat = ChatService(
        registry,
        context=ConversationContext(user_id=settings.user_id),
        remote=build_completion_client(registry),
        sessions=SessionManager(user_id=settings.user_id, storage=storage),
    )
    window = storage.load_window_state()
    window.is_open = True
    storage.save_window_state(window)

    logger.info("availchat ready (backend=%s, tools=%d)", settings.completion_backend, len(registry.tool_names))
    loop = asyncio.get_running_loop()
    try:
        while True:
            text = await loop.run_in_executor(None, input, "> ")
            if text.strip() in ("/quit", "/exit"):
                break
            if text.strip() == "/clear":
                chat.clear_chat()
                print("Chat cleared.")
                continue
            reply = await chat.send_message(text)
            if reply is not None:
                print(reply.content)
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        window.close()
        storage.save_window_state(window)


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
