#!/usr/bin/env python3
"""
Bridge entrypoint - runs the local hook server.

Responsibilities:
1. Resolve runtime configuration (token, port, state path)
2. Build the Discord client and event dispatcher
3. Serve the hook endpoints on loopback
4. Drain in-flight requests on SIGTERM/SIGINT, then release the HTTP pool
"""

import argparse
import asyncio
import sys
import time
from dataclasses import replace
from pathlib import Path

import uvicorn

from . import __version__
from .bridge.discord import DiscordClient
from .bridge.dispatcher import EventDispatcher
from .config import ConfigError, RuntimeConfig, load_runtime_config
from .log_config import configure_logging, get_logger
from .web_api import create_app

LISTEN_HOST = "127.0.0.1"


class BridgeDaemon:
    """Owns the HTTP server and the outbound Discord client."""

    def __init__(self, config: RuntimeConfig):
        self.config = config
        self.log = get_logger("daemon", port=config.hook_server_port)
        self.discord = DiscordClient(config.discord_token)
        self.dispatcher = EventDispatcher(self.discord, config.state_path)
        self.app = create_app(self.dispatcher, on_shutdown=self.shutdown)
        self.start_time: float | None = None
        self.shutdown_complete = False

    def build_server(self) -> uvicorn.Server:
        server_config = uvicorn.Config(
            self.app,
            host=LISTEN_HOST,
            port=self.config.hook_server_port,
            log_config=None,
            access_log=False,
        )
        return uvicorn.Server(server_config)

    async def run(self) -> None:
        """Serve until a shutdown signal is received.

        uvicorn installs its own SIGINT/SIGTERM handlers, waits for open
        requests, then runs the app lifespan exit (``shutdown``) before
        re-raising the signal. The ``finally`` covers servers that fail
        before the lifespan completes.
        """
        self.start_time = time.time()
        server = self.build_server()
        self.log.info(
            "daemon.start",
            host=LISTEN_HOST,
            version=__version__,
            config_path=str(self.config.config_path),
            state_path=str(self.config.state_path),
        )

        try:
            await server.serve()
        except Exception as e:
            self.log.error("daemon.error", exc=e)
            raise
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Release the Discord HTTP pool. Safe to call more than once."""
        if self.shutdown_complete:
            return
        self.shutdown_complete = True

        self.log.info("daemon.shutdown_start")
        await self.discord.aclose()
        uptime_s = round(time.time() - self.start_time, 1) if self.start_time else None
        self.log.info("daemon.shutdown_complete", uptime_s=uptime_s)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mudcode-bridge",
        description="Forward OpenCode session events to Discord",
    )
    parser.add_argument("--port", type=int, help="Hook server port (default: 18470)")
    parser.add_argument("--state-path", type=Path, help="Path to the mudcode state file")
    parser.add_argument("--config-path", type=Path, help="Path to the mudcode config file")
    parser.add_argument("--log-level", help="Log level (default: MUDCODE_LOG_LEVEL or INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``mudcode-bridge`` command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    log = get_logger("cli")

    try:
        config = load_runtime_config(config_path=args.config_path, state_path=args.state_path)
    except ConfigError as e:
        log.error("config.error", exc=e)
        return 1

    if args.port is not None:
        config = replace(config, hook_server_port=args.port)

    asyncio.run(BridgeDaemon(config).run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
