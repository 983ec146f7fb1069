"""
Booking assistant entry point.

Runs the chat against the configured chat-completion provider, falling
back to rule-based replies whenever the model call fails.
Supports both live model mode and an offline console mode.

Usage:
    Live model:   python main.py
    Console mode: python main.py console [--scenario booking]
"""

import asyncio
import logging
import sys

from booking_engine.config import settings

logger = logging.getLogger(__name__)


def _run_live_mode() -> None:
    """Chat in the terminal with replies from the model (requires API keys)."""
    from console_demo import ConsoleSession
    from booking_engine.tools.model_gateway import OpenAIChatGateway

    logger.info(
        "Starting live chat with %s/%s", settings.model.provider, settings.model.model
    )
    console = ConsoleSession(gateway=OpenAIChatGateway())
    try:
        asyncio.run(console.run())
    except (KeyboardInterrupt, EOFError):
        logger.info("Chat interrupted")


def _run_console_mode(argv: list[str]) -> int:
    """Start the offline console demo (no API keys required)."""
    from console_demo import main as console_main

    return console_main(argv)


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        sys.exit(_run_console_mode(sys.argv[2:]))
    else:
        _run_live_mode()
