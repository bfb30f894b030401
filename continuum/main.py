"""
Continuum - Main Entry Point
Interactive narrative session backed by Supabase or in-process storage.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

from .config import create_default_config_from_env
from .core.errors import ContinuumError
from .core.orchestrator import NarrativeOrchestrator
from .models import RuntimeSettings
from .services import InMemoryStorage, StorageBackend, SupabaseStorage

logger = logging.getLogger("continuum")

QUIT_COMMANDS = ("/quit", "/exit")


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_storage() -> StorageBackend:
    """Supabase when credentials are present, otherwise an in-process store."""
    if os.getenv("SUPABASE_URL") and os.getenv("SUPABASE_SERVICE_KEY"):
        storage = SupabaseStorage()
        storage.connect()
        logger.info("[main] Using Supabase storage")
        return storage

    logger.info("[main] SUPABASE_URL not set, using in-memory storage")
    return InMemoryStorage(RuntimeSettings(
        behavior_prompt=os.getenv("CONTINUUM_BEHAVIOR_PROMPT") or RuntimeSettings().behavior_prompt,
        framework_template=os.getenv("CONTINUUM_FRAMEWORK_TEMPLATE", ""),
    ))


async def run_session(orchestrator: NarrativeOrchestrator, stop: asyncio.Event) -> None:
    print("Continuum is ready. Type /quit to leave.")
    while not stop.is_set():
        try:
            user_message = await asyncio.to_thread(input, "> ")
        except EOFError:
            break

        user_message = user_message.strip()
        if not user_message:
            continue
        if user_message.lower() in QUIT_COMMANDS:
            break

        try:
            result = await orchestrator.handle_request(user_message)
        except ContinuumError as e:
            print(f"Error: {e}")
            continue

        print(f"\n[{result.location}]\n{result.response}\n")

    await orchestrator.wait_for_consolidation()


async def main() -> None:
    """Main entry point."""
    load_dotenv()
    configure_logging()

    config = create_default_config_from_env()
    if not config.get_enabled_providers():
        logger.warning("[main] No provider keys in the environment; the stored settings key will be used")
    for error in config.validate_agent_models():
        logger.warning(f"[main] {error}")

    orchestrator = NarrativeOrchestrator(create_storage(), config)

    # Handle shutdown signals
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop.set)

    await run_session(orchestrator, stop)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
