"""Local HTTP API exposing the command surface to extension collaborators."""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web

from .config import as_bool
from .pipeline.commands import (
    CheckHealth,
    ClearAll,
    ClearCache,
    ClearHistory,
    Command,
    CommandHandler,
    GetConfig,
    GetHistory,
    GetLastScan,
    SaveConfig,
    ScanUrl,
    SubmitReport,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


class BadRequest(Exception):
    """Request body or query could not be turned into a command."""


def _coerce_limit(value: Optional[str]) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        raise BadRequest("limit must be an integer")


class ApiServer:
    """Serves scan, config, history, report and health endpoints."""

    def __init__(self, handler: CommandHandler, host: str = "127.0.0.1", port: int = 8765):
        self.handler = handler
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self.app = self._build_app()

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_healthz)
        app.router.add_post("/scan", self._handle_scan)
        app.router.add_get("/config", self._route(lambda req, body: GetConfig()))
        app.router.add_post("/config", self._route(lambda req, body: SaveConfig(patch=body)))
        app.router.add_get("/last-scan", self._handle_last_scan)
        app.router.add_get(
            "/history",
            self._route(lambda req, body: GetHistory(limit=_coerce_limit(req.query.get("limit")))),
        )
        app.router.add_post(
            "/history/clear",
            self._route(lambda req, body: ClearHistory(include_remote=as_bool(body.get("include_remote")))),
        )
        app.router.add_post(
            "/cache/clear",
            self._route(lambda req, body: ClearCache(include_remote=as_bool(body.get("include_remote")))),
        )
        app.router.add_post("/clear-all", self._route(lambda req, body: ClearAll()))
        app.router.add_post("/report", self._handle_report)
        app.router.add_get("/classifier/health", self._route(lambda req, body: CheckHealth()))
        return app

    async def start(self):
        """Start the API server."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("API server listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the API server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    @staticmethod
    async def _read_body(request: web.Request) -> dict:
        if request.method == "GET" or not request.can_read_body:
            return {}
        try:
            body = await request.json()
        except ValueError:
            raise BadRequest("Body must be valid JSON")
        if not isinstance(body, dict):
            raise BadRequest("Body must be a JSON object")
        return body

    async def _dispatch(self, command: Command) -> web.Response:
        response = await self.handler.handle(command)
        return web.json_response(response.to_dict(), headers=CORS_HEADERS)

    def _route(self, build):
        """Wrap a body/query -> command builder into an aiohttp handler."""

        async def handler(request: web.Request) -> web.Response:
            try:
                body = await self._read_body(request)
                command = build(request, body)
            except BadRequest as exc:
                return web.json_response({"ok": False, "error": str(exc)}, status=400, headers=CORS_HEADERS)
            return await self._dispatch(command)

        return handler

    async def _handle_healthz(self, request: web.Request) -> web.Response:
        history = await self.handler.state.get_history()
        cache = await self.handler.state.get_cache()
        return web.json_response(
            {"status": "ok", "history_entries": len(history), "cached_domains": len(cache)},
            headers=CORS_HEADERS,
        )

    async def _handle_scan(self, request: web.Request) -> web.Response:
        try:
            body = await self._read_body(request)
        except BadRequest as exc:
            return web.json_response({"ok": False, "error": str(exc)}, status=400, headers=CORS_HEADERS)
        hits = body.get("keyword_hits", body.get("keywordHits"))
        command = ScanUrl(
            url=str(body.get("url") or ""),
            text=body.get("text"),
            keyword_hits=hits if isinstance(hits, dict) else None,
        )
        return await self._dispatch(command)

    async def _handle_last_scan(self, request: web.Request) -> web.Response:
        return await self._dispatch(GetLastScan(url=request.query.get("url", "")))

    async def _handle_report(self, request: web.Request) -> web.Response:
        try:
            body = await self._read_body(request)
        except BadRequest as exc:
            return web.json_response({"ok": False, "error": str(exc)}, status=400, headers=CORS_HEADERS)
        command = SubmitReport(link=str(body.get("link") or ""), reason=str(body.get("reason") or ""))
        return await self._dispatch(command)
