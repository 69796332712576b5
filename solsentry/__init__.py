"""Heuristic static analyzer for Solidity smart-contract source."""

__version__ = "0.1.0"

from solsentry.models import AnalyzerRules, Finding, FindingCode, NamingConfig, Severity  # noqa: E402
from solsentry.services.analyzer import analyze  # noqa: E402

__all__ = ["analyze", "AnalyzerRules", "Finding", "FindingCode", "NamingConfig", "Severity"]
