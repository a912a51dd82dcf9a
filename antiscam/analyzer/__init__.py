"""Verdict producers: classifier client, normalizer and verdict sources."""

from .classifier import ClassifierClient
from .normalizer import normalize
from .sources import RemoteVerdictSource, ScanRequest, SyntheticVerdictSource, VerdictSource

__all__ = [
    "ClassifierClient",
    "normalize",
    "RemoteVerdictSource",
    "ScanRequest",
    "SyntheticVerdictSource",
    "VerdictSource",
]
