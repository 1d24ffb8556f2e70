"""Analysis backends for skillaudit."""

from skillaudit.providers.base import AnalysisProvider
from skillaudit.providers.factory import SUPPORTED_PROVIDERS, build_provider
from skillaudit.providers.scaffold import ScaffoldProvider

__all__ = ["AnalysisProvider", "SUPPORTED_PROVIDERS", "ScaffoldProvider", "build_provider"]
