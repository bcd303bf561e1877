"""Jaro-Winkler reconciliation of the old and new anesthesia supply catalogs."""

from insumo_matcher.errors import CatalogLoadError, InsumoMatcherError
from insumo_matcher.matcher import analyze, analyze_payload, classify, find_best_match, preview_candidates
from insumo_matcher.models import AnalysisResult, CatalogItem, ConfigurationRecord, MatchResult, MatchStatistics
from insumo_matcher.similarity import jaro_winkler

__all__ = [
    "AnalysisResult",
    "CatalogItem",
    "CatalogLoadError",
    "ConfigurationRecord",
    "InsumoMatcherError",
    "MatchResult",
    "MatchStatistics",
    "analyze",
    "analyze_payload",
    "classify",
    "find_best_match",
    "jaro_winkler",
    "preview_candidates",
]
