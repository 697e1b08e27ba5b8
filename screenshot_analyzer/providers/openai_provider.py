"""OpenAI-compatible vision provider plus helpers to classify SDK errors."""
from __future__ import annotations

import asyncio
from typing import Any, Optional

import requests
from openai import APITimeoutError, AsyncOpenAI

from ..errors import QuotaExceededError
from ..utils import debug


def error_status(exc: BaseException) -> Optional[int]:
    """HTTP status carried by an SDK/HTTP error, if any."""
    for attr in ("status_code", "status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    return None


def is_quota_error(exc: BaseException) -> bool:
    if isinstance(exc, QuotaExceededError):
        return True
    for attr in ("code", "type"):
        if getattr(exc, attr, None) == "insufficient_quota":
            return True
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict) and "insufficient_quota" in (err.get("type"), err.get("code")):
            return True
    return "quota" in str(exc).lower()


def is_timeout_error(exc: BaseException) -> bool:
    return isinstance(exc, (asyncio.TimeoutError, APITimeoutError))


class OpenAIProvider:
    """Chat-completions vision calls through the official async SDK.

    A client can be injected to ease testing.
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    def _build_client(self, cfg: Any):
        if self._client is not None:
            return self._client
        # retries and backoff belong to AnalyzerService
        kwargs = {"api_key": getattr(cfg, "api_key", None), "max_retries": 0}
        if getattr(cfg, "base_url", None):
            kwargs["base_url"] = cfg.base_url
        self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def call_image(self, cfg: Any, image_url: str, prompt: str) -> Optional[str]:
        client = self._build_client(cfg)
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }
        ]
        debug(f"chat.completions.create model={cfg.model} prompt_len={len(prompt)} image_url_len={len(image_url)}")
        resp = await client.chat.completions.create(
            model=cfg.model,
            messages=messages,
            max_tokens=cfg.max_tokens,
        )
        if not resp.choices:
            return None
        return resp.choices[0].message.content

    def check_balance(self, cfg: Any) -> dict:
        # Only some OpenAI-compatible providers expose GET <base_url>/balance
        if not getattr(cfg, "base_url", None):
            raise RuntimeError("OPENAI_BASE_URL is not set; cannot check balance")
        url = cfg.base_url.rstrip("/") + "/balance"
        headers = {"Authorization": f"Bearer {cfg.api_key}"}
        resp = requests.get(url, headers=headers, timeout=getattr(cfg, "timeout", 30))
        resp.raise_for_status()
        return resp.json()
