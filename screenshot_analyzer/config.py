from dataclasses import dataclass
from typing import Optional
import os

from dotenv import load_dotenv, find_dotenv

from .image_processing import MergeOptions
from .utils import log


@dataclass
class Settings:
    api_key: Optional[str]
    base_url: Optional[str]
    model: str
    timeout: int
    max_tokens: int
    max_retries: int
    retry_initial_delay_ms: int
    retry_max_delay_ms: int
    prompt_file: Optional[str]
    images_dir: str
    data_dir: str
    merge_direction: str = "vertical"
    merge_margin: int = 10
    merge_max_per_row: Optional[int] = None
    merge_format: str = "jpeg"
    merge_quality: int = 90

    def merge_options(self) -> MergeOptions:
        return MergeOptions(
            direction=self.merge_direction,
            margin=self.merge_margin,
            max_per_row=self.merge_max_per_row,
            output_format=self.merge_format,
            quality=self.merge_quality,
        )


def _search_up(start: str) -> Optional[str]:
    p = os.path.abspath(start)
    while True:
        cand = os.path.join(p, ".env")
        if os.path.exists(cand):
            return cand
        parent = os.path.dirname(p)
        if parent == p:
            return None
        p = parent


def _locate_env() -> str:
    # find_dotenv() misses files above the caller's frame; walk up from the CWD,
    # then from this package (handles being imported from subfolders)
    env = find_dotenv()
    if env:
        return env
    return _search_up(os.getcwd()) or _search_up(os.path.dirname(__file__)) or ".env"


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return default
    try:
        return int(v.split("#", 1)[0].strip())
    except ValueError:
        log(f"WARNING: invalid {name}={v!r}, using default {default}")
        return default


def load_config(require_api_key: bool = True) -> Settings:
    load_dotenv(_locate_env())
    api_key = os.environ.get("OPENAI_API_KEY") or None
    if require_api_key and not api_key:
        raise RuntimeError("OPENAI_API_KEY is not set")

    return Settings(
        api_key=api_key,
        base_url=os.environ.get("OPENAI_BASE_URL") or None,
        model=os.environ.get("OPENAI_MODEL") or "gpt-4o",
        timeout=_int_env("OPENAI_TIMEOUT", 120),
        max_tokens=_int_env("OPENAI_MAX_TOKENS", 1000),
        max_retries=_int_env("OPENAI_MAX_RETRIES", 3),
        retry_initial_delay_ms=_int_env("RETRY_INITIAL_DELAY_MS", 1000),
        retry_max_delay_ms=_int_env("RETRY_MAX_DELAY_MS", 30000),
        prompt_file=os.environ.get("PROMPT_FILE") or None,
        images_dir=os.environ.get("IMAGES_DIR") or os.path.join("public", "images"),
        data_dir=os.environ.get("DATA_DIR") or "data",
        merge_direction=(os.environ.get("MERGE_DIRECTION") or "vertical").lower(),
        merge_margin=_int_env("MERGE_MARGIN", 10),
        merge_max_per_row=_int_env("MERGE_MAX_PER_ROW", None),
        merge_format=(os.environ.get("MERGE_FORMAT") or "jpeg").lower(),
        merge_quality=_int_env("MERGE_QUALITY", 90),
    )


def read_prompt_file(path: Optional[str]) -> str:
    # Non-fatal: callers fall back to the built-in extraction prompt
    if not path:
        return ""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError as e:
        log(f"ERROR: failed to read PROMPT_FILE={path!r}: {e}")
        return ""
