"""Command surface: one dataclass per operation, dispatched through CommandHandler.handle()."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from ..analyzer.classifier import ClassifierClient
from ..exceptions import ClassifierError, InvalidURLError
from ..reporter.classifier import ClassifierReporter
from ..storage.identity import InstallIdentity
from .orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class ScanUrl:
    url: str
    text: Optional[str] = None
    keyword_hits: Optional[dict] = None


@dataclass
class GetConfig:
    pass


@dataclass
class SaveConfig:
    patch: dict = field(default_factory=dict)


@dataclass
class GetLastScan:
    url: str


@dataclass
class GetHistory:
    limit: Optional[int] = None


@dataclass
class ClearHistory:
    include_remote: bool = False


@dataclass
class ClearCache:
    include_remote: bool = False


@dataclass
class ClearAll:
    pass


@dataclass
class SubmitReport:
    link: str
    reason: str = ""


@dataclass
class CheckHealth:
    pass


Command = Union[
    ScanUrl,
    GetConfig,
    SaveConfig,
    GetLastScan,
    GetHistory,
    ClearHistory,
    ClearCache,
    ClearAll,
    SubmitReport,
    CheckHealth,
]


@dataclass
class CommandResponse:
    """Result of a command: ok plus data, or an error message."""

    ok: bool
    data: dict = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"ok": self.ok, **self.data}
        if self.error:
            body["error"] = self.error
        return body


class CommandHandler:
    """Routes commands from UI collaborators to the orchestrator and state store."""

    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        identity: InstallIdentity,
        reporter_factory: Optional[Callable[[str], ClassifierReporter]] = None,
    ):
        self.orchestrator = orchestrator
        self.state = orchestrator.state
        self.settings = orchestrator.settings
        self.identity = identity
        self._reporter_factory = reporter_factory or self._default_reporter
        self._handlers: dict[type, Callable[[Any], Awaitable[CommandResponse]]] = {
            ScanUrl: self._scan,
            GetConfig: self._get_config,
            SaveConfig: self._save_config,
            GetLastScan: self._get_last_scan,
            GetHistory: self._get_history,
            ClearHistory: self._clear_history,
            ClearCache: self._clear_cache,
            ClearAll: self._clear_all,
            SubmitReport: self._submit_report,
            CheckHealth: self._check_health,
        }

    def _default_reporter(self, base_url: str) -> ClassifierReporter:
        return ClassifierReporter(base_url, self.identity, timeout=self.settings.report_timeout)

    async def _classifier(self) -> ClassifierClient:
        config = await self.state.get_config()
        return self.orchestrator.classifier_factory(config.api_base_url or self.settings.api_base_url)

    async def handle(self, command: Command) -> CommandResponse:
        handler = self._handlers.get(type(command))
        if handler is None:
            return CommandResponse(ok=False, error=f"Unknown command: {type(command).__name__}")
        return await handler(command)

    async def _scan(self, command: ScanUrl) -> CommandResponse:
        try:
            verdict = await self.orchestrator.scan(command.url, command.text, command.keyword_hits)
        except InvalidURLError:
            return CommandResponse(ok=False, error="Invalid URL")
        return CommandResponse(ok=True, data={"result": verdict.to_dict()})

    async def _get_config(self, command: GetConfig) -> CommandResponse:
        config = await self.state.get_config()
        return CommandResponse(ok=True, data={"config": config.to_dict()})

    async def _save_config(self, command: SaveConfig) -> CommandResponse:
        config = await self.state.save_config(command.patch)
        logger.info("Configuration saved")
        return CommandResponse(ok=True, data={"config": config.to_dict()})

    async def _get_last_scan(self, command: GetLastScan) -> CommandResponse:
        verdict = await self.orchestrator.get_last_scan(command.url)
        return CommandResponse(ok=True, data={"last_scan": verdict.to_dict() if verdict else None})

    async def _get_history(self, command: GetHistory) -> CommandResponse:
        history = await self.state.get_history(command.limit)
        return CommandResponse(ok=True, data={"history": [v.to_dict() for v in history]})

    async def _clear_remote(self, action: str) -> dict:
        client = await self._classifier()
        try:
            if action == "cache":
                data = await client.clear_cache()
            else:
                data = await client.clear_history()
        except ClassifierError as exc:
            logger.warning(f"Remote {action} clear failed: {exc}")
            return {"remote_ok": False, "remote_error": str(exc)}
        return {"remote_ok": True, "remote": data}

    async def _clear_history(self, command: ClearHistory) -> CommandResponse:
        data: dict[str, Any] = {}
        if command.include_remote:
            data.update(await self._clear_remote("history"))
        data["history_cleared"] = await self.state.clear_history()
        return CommandResponse(ok=True, data=data)

    async def _clear_cache(self, command: ClearCache) -> CommandResponse:
        data: dict[str, Any] = {}
        if command.include_remote:
            data.update(await self._clear_remote("cache"))
        data["cache_cleared"] = await self.state.clear_cache()
        return CommandResponse(ok=True, data=data)

    async def _clear_all(self, command: ClearAll) -> CommandResponse:
        """Ask the backend to purge, then wipe local state whatever the outcome."""
        client = await self._classifier()
        data: dict[str, Any] = {"remote_ok": False, "cache_cleared": 0, "log_cleared": False}
        try:
            remote = await client.clear_all()
            data.update(
                remote_ok=True,
                cache_cleared=remote.get("cache_cleared", 0),
                log_cleared=bool(remote.get("log_cleared")),
                message=remote.get("message"),
            )
        except ClassifierError as exc:
            logger.warning(f"Remote clear_all failed: {exc}")
            data["message"] = f"Server not cleared: {exc}"

        local = await self.state.clear_all()
        data["local_cache_cleared"] = local["cache_cleared"]
        data["local_history_cleared"] = local["history_cleared"]
        if not data.get("message"):
            data["message"] = (
                f"All cleared! ({data['cache_cleared']} cache entries, "
                f"logs {'cleared' if data['log_cleared'] else 'not found'})"
            )
        return CommandResponse(ok=True, data=data)

    async def _submit_report(self, command: SubmitReport) -> CommandResponse:
        config = await self.state.get_config()
        reporter = self._reporter_factory(config.api_base_url or self.settings.api_base_url)
        result = await reporter.submit(command.link, command.reason)
        return CommandResponse(
            ok=result.success,
            data=result.to_dict(),
            error=None if result.success else result.message,
        )

    async def _check_health(self, command: CheckHealth) -> CommandResponse:
        client = await self._classifier()
        health = await client.health()
        return CommandResponse(ok=health.connected, data={"health": health.to_dict()}, error=health.error)
