"""
Perplexity relay server entry point.

Runs, in one process and on one event loop:
- the MCP tools over the stdio transport (for MCP clients), and
- the HTTP relay with uvicorn (for the panel and scripts),
both backed by a single PerplexityAutomation and therefore a single browser
session.

Usage:
    # MCP over stdio + HTTP on port 3333 (or $MCP_HTTP_PORT)
    python -m perplexity_web.serve

    # HTTP only, headless browser, custom port
    python -m perplexity_web.serve --no-mcp --headless --port 4000

SIGINT/SIGTERM close the browser session before the process exits.
"""

import argparse
import asyncio
import contextlib
import os
import signal

import structlog
import uvicorn

from .api_server import create_api_server
from .automation import NullDiagnostics, PerplexityAutomation
from .config import AutomationConfig, ServerConfig
from .logging_config import configure_logging
from .tools import create_mcp_server

logger = structlog.stdlib.get_logger(component=__name__)


class RelayServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to `serve()`."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self) -> None:
        pass


async def _warmup(automation: PerplexityAutomation) -> None:
    try:
        await automation.initialize()
    except Exception as e:
        logger.error("Failed to initialize Perplexity session at startup", error=str(e))


async def serve(
    server_config: ServerConfig,
    automation: PerplexityAutomation,
    stop: asyncio.Event | None = None,
) -> None:
    """
    Run the HTTP relay (and, if enabled, the MCP stdio transport) until a
    signal arrives, `stop` is set, or one of the transports exits. The
    browser session is closed before this returns.
    """
    app = create_api_server(
        automation, service_name=server_config.service_name, close_on_shutdown=False
    )
    http_server = RelayServer(
        uvicorn.Config(app, host=server_config.host, port=server_config.port, log_level="info")
    )

    if stop is None:
        stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled_signals = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
            handled_signals.append(sig)

    http_task = asyncio.create_task(http_server.serve(), name="http")
    tasks = {asyncio.create_task(stop.wait(), name="signal"), http_task}
    mcp_task = None
    if server_config.enable_mcp:
        mcp_task = asyncio.create_task(
            create_mcp_server(automation).run_stdio_async(), name="mcp"
        )
        tasks.add(mcp_task)

    logger.info(
        "Starting Perplexity relay",
        http=f"http://{server_config.host}:{server_config.port}",
        mcp="stdio" if server_config.enable_mcp else "disabled",
    )
    if server_config.warmup:
        tasks.add(asyncio.create_task(_warmup(automation), name="warmup"))

    try:
        while True:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            finished = {task.get_name() for task in done}
            for task in done:
                tasks.discard(task)
                if not task.cancelled() and task.exception() is not None:
                    logger.error("Task failed", task=task.get_name(), error=str(task.exception()))
            if finished - {"warmup"}:
                logger.info("Shutting down", reason=sorted(finished))
                break
    finally:
        for sig in handled_signals:
            loop.remove_signal_handler(sig)
        http_server.should_exit = True
        for task in tasks:
            if task is not http_task and task is not mcp_task:
                task.cancel()
        await automation.close()
        if not http_task.done():
            await http_task

    if mcp_task is not None and not mcp_task.done():
        # The stdio reader blocks in a worker thread that cannot be cancelled.
        os._exit(0)


def main() -> None:
    parser = argparse.ArgumentParser(description="Perplexity MCP + HTTP relay server")
    parser.add_argument(
        "--port",
        metavar="PORT",
        type=int,
        default=None,
        help="HTTP port (default: $MCP_HTTP_PORT or 3333)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="HTTP bind address")
    parser.add_argument("--no-mcp", action="store_true", help="Serve HTTP only, no stdio MCP")
    parser.add_argument("--headless", action="store_true", help="Run Chromium headless")
    parser.add_argument(
        "--user-data-dir", default=None, help="Persistent browser profile directory"
    )
    parser.add_argument(
        "--no-screenshots", action="store_true", help="Disable diagnostic screenshots"
    )
    parser.add_argument(
        "--no-warmup", action="store_true", help="Open the browser on first use, not at startup"
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    args = parser.parse_args()

    configure_logging(args.log_level)

    server_overrides: dict = {
        "host": args.host,
        "enable_mcp": not args.no_mcp,
        "warmup": not args.no_warmup,
    }
    if args.port is not None:
        server_overrides["port"] = args.port
    automation_overrides: dict = {}
    if args.headless:
        automation_overrides["headless"] = True
    if args.user_data_dir:
        automation_overrides["user_data_dir"] = args.user_data_dir
    automation = PerplexityAutomation(
        AutomationConfig.from_env(**automation_overrides),
        diagnostics=NullDiagnostics() if args.no_screenshots else None,
    )

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(ServerConfig.from_env(**server_overrides), automation))


if __name__ == "__main__":
    main()
