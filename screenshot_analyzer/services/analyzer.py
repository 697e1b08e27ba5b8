"""AnalyzerService: retrying extraction calls on top of a ModelProvider."""
import asyncio
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..errors import ExtractionTimeoutError, QuotaExceededError
from ..image_io import load_image_as_data_url
from ..parsing import normalize_content
from ..prompts import resolve_prompt
from ..providers.base import ModelProvider
from ..providers.openai_provider import error_status, is_quota_error, is_timeout_error
from ..utils import log

RETRYABLE_STATUSES = frozenset({429, 500, 503})
QUOTA_SKIPPED = "Skipped due to API quota limit"


@dataclass
class AnalysisItem:
    path: str
    data: Any = None
    error: Optional[str] = None
    status: str = "ok"

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict:
        out: dict = {"path": self.path}
        if self.ok:
            out["data"] = self.data
        else:
            out["error"] = self.error
        out["status"] = self.status
        return out


class AnalyzerService:
    def __init__(
        self,
        provider: ModelProvider,
        cfg: Any,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        quiet: bool = False,
    ):
        self.provider = provider
        self.cfg = cfg
        self._sleep = sleep
        self.quiet = quiet
        self.prompt = resolve_prompt(getattr(cfg, "prompt_file", None))

    def retry_delay_ms(self, retry: int) -> int:
        """Delay before retry number `retry` (1-based): doubling, capped."""
        delay = self.cfg.retry_initial_delay_ms * 2 ** (retry - 1)
        ceiling = getattr(self.cfg, "retry_max_delay_ms", None)
        if ceiling:
            delay = min(delay, ceiling)
        return delay

    async def _attempt(self, image_url: str) -> Optional[str]:
        call = self.provider.call_image(self.cfg, image_url, self.prompt)
        timeout = getattr(self.cfg, "timeout", None)
        if timeout:
            return await asyncio.wait_for(call, timeout=timeout)
        return await call

    async def analyze(self, image_path: str) -> Any:
        """Extract activity data from one screenshot.

        Returns parsed JSON, the raw model text when it is not JSON, or None
        for an empty answer. Quota exhaustion raises QuotaExceededError at
        once; 429/500/503 and per-attempt timeouts are retried with
        exponential backoff; anything else propagates as is.
        """
        # local read errors propagate as they are; only provider failures are classified
        image_url = load_image_as_data_url(image_path)
        retries = 0
        max_retries = self.cfg.max_retries
        while True:
            try:
                content = await self._attempt(image_url)
            except QuotaExceededError:
                raise
            except Exception as e:
                if is_quota_error(e):
                    log("API quota exceeded, not retrying", self.quiet)
                    raise QuotaExceededError(str(e)) from e
                timed_out = is_timeout_error(e)
                if (timed_out or error_status(e) in RETRYABLE_STATUSES) and retries < max_retries:
                    retries += 1
                    delay = self.retry_delay_ms(retries)
                    reason = "timed out" if timed_out else f"failed with status {error_status(e)}"
                    log(f"API request {reason}. Retrying in {delay}ms ({retries}/{max_retries})...", self.quiet)
                    await self._sleep(delay / 1000.0)
                    continue
                log(f"Error analyzing image {image_path}: {e}", self.quiet)
                if timed_out:
                    raise ExtractionTimeoutError(f"request for {image_path} timed out after {retries + 1} attempt(s)") from e
                raise
            log(f"Model answered for {os.path.basename(image_path)}", self.quiet)
            return normalize_content(content)

    async def analyze_many(self, image_paths: Sequence[str], stop_on_quota: bool = True) -> List[AnalysisItem]:
        """Analyze images one after another; a failed item never aborts the batch.

        After quota exhaustion the remaining items are marked `skipped`
        without contacting the provider (unless `stop_on_quota` is False).
        """
        items: List[AnalysisItem] = []
        quota_hit = False
        for path in image_paths:
            if quota_hit and stop_on_quota:
                items.append(AnalysisItem(path, error=QUOTA_SKIPPED, status="skipped"))
                continue
            log(f"Processing image: {path}", self.quiet)
            try:
                data = await self.analyze(path)
            except QuotaExceededError as e:
                quota_hit = True
                items.append(AnalysisItem(path, error=str(e), status="quota_exceeded"))
            except Exception as e:
                items.append(AnalysisItem(path, error=str(e) or type(e).__name__, status="error"))
            else:
                items.append(AnalysisItem(path, data=data))
        return items

    def check_balance(self) -> dict:
        return self.provider.check_balance(self.cfg)


def quota_exceeded(items: Sequence[AnalysisItem]) -> bool:
    return any(i.status == "quota_exceeded" for i in items)
