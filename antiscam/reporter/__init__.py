"""User-initiated scam report submission."""

from .base import ReportResult, ReportStatus
from .classifier import ClassifierReporter

__all__ = ["ClassifierReporter", "ReportResult", "ReportStatus"]
