"""Brainstore entry point."""

import asyncio
import logging

from brainstore.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    from brainstore.api.server import ApiServer
    from brainstore.memory.seed import prepare_memory
    from brainstore.memory.store import MemoryStore

    if not await prepare_memory(MemoryStore.get()):
        logger.warning("Starting without vector memory; memory routes will report 503")

    server = ApiServer()
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Prepare memory and serve the HTTP API until interrupted."""
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty; chat requests will fail")

    logger.info("Starting %s with model %s...", settings.assistant_name, settings.claude_model)
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
