"""Providers package for model providers (e.g. OpenAI)."""
from .base import ModelProvider
from .openai_provider import OpenAIProvider, error_status, is_quota_error, is_timeout_error

__all__ = ["ModelProvider", "OpenAIProvider", "error_status", "is_quota_error", "is_timeout_error"]
