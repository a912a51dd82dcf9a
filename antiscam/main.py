"""Main entry point: local API server and operator CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from .config import ScanConfig, Settings, load_settings, validate_settings
from .pipeline.commands import (
    CheckHealth,
    ClearAll,
    ClearCache,
    ClearHistory,
    CommandHandler,
    CommandResponse,
    GetConfig,
    GetHistory,
    SaveConfig,
    ScanUrl,
    SubmitReport,
)
from .pipeline.orchestrator import ScanOrchestrator
from .server import ApiServer
from .storage import InstallIdentity, SqliteStore, StateStore
from .utils.domains import normalize_whitelist
from .utils.keywords import compute_keyword_hits

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


@asynccontextmanager
async def open_service(settings: Settings) -> AsyncIterator[CommandHandler]:
    """Connect the store and wire orchestrator + command handler."""
    kv = SqliteStore(settings.db_path)
    await kv.connect()
    try:
        state = StateStore(
            kv,
            default_config=ScanConfig(
                api_base_url=settings.api_base_url,
                whitelist=list(settings.default_whitelist),
            ),
            history_limit=settings.history_limit,
        )
        await state.ensure_config()
        orchestrator = ScanOrchestrator(state, settings)
        yield CommandHandler(orchestrator, InstallIdentity(kv))
    finally:
        await kv.close()


async def serve(settings: Settings) -> None:
    """Run the local API server until SIGINT/SIGTERM."""
    async with open_service(settings) as handler:
        server = ApiServer(handler, host=settings.server_host, port=settings.server_port)
        stop_event = asyncio.Event()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)

        await server.start()
        try:
            await stop_event.wait()
        finally:
            await server.stop()
            logger.info("API server stopped")


def _on_off(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"on", "true", "yes", "1"}:
        return True
    if lowered in {"off", "false", "no", "0"}:
        return False
    raise argparse.ArgumentTypeError(f"expected on/off, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="antiscam", description="Anti-scam page verdict service")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the local API server")

    scan = sub.add_parser("scan", help="Scan a URL and print the verdict")
    scan.add_argument("url")
    scan.add_argument("--text", default=None, help="Page text; keyword hits are derived from it")

    report = sub.add_parser("report", help="Report a link as a scam")
    report.add_argument("link")
    report.add_argument("reason", nargs="?", default="")

    history = sub.add_parser("history", help="Show recent verdicts")
    history.add_argument("--limit", type=int, default=20)

    clear = sub.add_parser("clear", help="Clear local (and optionally remote) state")
    clear.add_argument("target", choices=["cache", "history", "all"])
    clear.add_argument("--remote", action="store_true", help="Also clear the classifier's state")

    sub.add_parser("health", help="Check the classifier backend")

    config = sub.add_parser("config", help="Show or change settings")
    config.add_argument("--api-base-url")
    config.add_argument("--auto-protection", type=_on_off)
    config.add_argument("--mock-mode", type=_on_off)
    config.add_argument("--force-danger", type=_on_off)
    config.add_argument("--whitelist-add", action="append", default=[])
    config.add_argument("--whitelist-remove", action="append", default=[])

    return parser


async def _config_command(handler: CommandHandler, args: argparse.Namespace) -> CommandResponse:
    patch: dict = {}
    if args.api_base_url is not None:
        patch["api_base_url"] = args.api_base_url
    for name in ("auto_protection", "mock_mode", "force_danger"):
        value = getattr(args, name)
        if value is not None:
            patch[name] = value
    if args.whitelist_add or args.whitelist_remove:
        current = await handler.handle(GetConfig())
        removed = set(normalize_whitelist(args.whitelist_remove))
        entries = [d for d in current.data["config"]["whitelist"] if d not in removed]
        patch["whitelist"] = entries + normalize_whitelist(args.whitelist_add)
    if not patch:
        return await handler.handle(GetConfig())
    return await handler.handle(SaveConfig(patch=patch))


async def run_command(settings: Settings, args: argparse.Namespace) -> CommandResponse:
    async with open_service(settings) as handler:
        if args.command == "scan":
            hits = compute_keyword_hits(args.text, settings.phishing_keywords) if args.text else None
            return await handler.handle(ScanUrl(url=args.url, text=args.text, keyword_hits=hits))
        if args.command == "report":
            return await handler.handle(SubmitReport(link=args.link, reason=args.reason))
        if args.command == "history":
            return await handler.handle(GetHistory(limit=args.limit))
        if args.command == "clear":
            if args.target == "all":
                return await handler.handle(ClearAll())
            if args.target == "cache":
                return await handler.handle(ClearCache(include_remote=args.remote))
            return await handler.handle(ClearHistory(include_remote=args.remote))
        if args.command == "health":
            return await handler.handle(CheckHealth())
        return await _config_command(handler, args)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    validation_errors = validate_settings(settings)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 1

    if args.command == "serve":
        asyncio.run(serve(settings))
        return 0

    response = asyncio.run(run_command(settings, args))
    print(json.dumps(response.to_dict(), indent=2, default=str))
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
