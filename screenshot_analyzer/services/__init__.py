"""Services orchestrating providers (retries, batching)."""
from .analyzer import AnalysisItem, AnalyzerService, quota_exceeded

__all__ = ["AnalysisItem", "AnalyzerService", "quota_exceeded"]
