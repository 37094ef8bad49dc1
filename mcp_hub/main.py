"""
Main entry point for MCP Hub Server.

This module provides the main() function and the process lifecycle:
configure logging, build the hub, serve over stdio until cancelled, then
release the graph driver.
"""

import asyncio
import signal

from mcp.server.stdio import stdio_server

from .config import SERVER_NAME, SERVER_VERSION, Settings, settings as default_settings
from .logging import configure_logging, get_logger
from .server import build_hub, create_server

logger = get_logger(__name__)


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Log exceptions escaping background tasks instead of dying."""
    error = context.get("exception")
    logger.error(
        "unhandled_error",
        message=context.get("message"),
        error=str(error) if error else None,
        kind=type(error).__name__ if error else None,
    )


async def serve(settings: Settings) -> None:
    hub = build_hub(settings)
    server = create_server(hub)

    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_log_unhandled)

    async def run() -> None:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    task = asyncio.create_task(run())
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except NotImplementedError:
            # Windows event loops
            pass

    logger.info("server_starting", name=SERVER_NAME, version=SERVER_VERSION, tools=len(hub.registry))
    try:
        await task
    except asyncio.CancelledError:
        logger.info("server_shutdown_requested")
    finally:
        await hub.graph.close()
        logger.info("server_stopped")


def main():
    """Main entry point."""
    configure_logging(default_settings.log_level)
    asyncio.run(serve(default_settings))


if __name__ == "__main__":
    main()
