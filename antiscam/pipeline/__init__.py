"""Scan pipeline: orchestration and the command surface."""

from .commands import CommandHandler, CommandResponse
from .orchestrator import ScanOrchestrator

__all__ = ["CommandHandler", "CommandResponse", "ScanOrchestrator"]
