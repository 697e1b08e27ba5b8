import json
import re
from typing import Any, Optional

from .utils import debug

_FENCE_RE = re.compile(r"```(?:json)?[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)


def unwrap_fence(content: str) -> str:
    """Body of the first ``` code block, or the trimmed content if there is none."""
    m = _FENCE_RE.search(content)
    if m:
        return m.group(1).strip()
    return content.strip()


def _looks_like_json(text: str) -> bool:
    return (text.startswith("{") and text.endswith("}")) or (text.startswith("[") and text.endswith("]"))


def normalize_content(content: Optional[str]) -> Any:
    """Turn model output into parsed JSON when possible.

    Two stages: unwrap a fenced block if present, then parse the candidate
    if it is a bare JSON object or array. Anything else, including a failed
    parse, returns `content` unchanged. Empty output gives None.
    """
    if content is None or not content.strip():
        return None
    candidate = unwrap_fence(content)
    if not _looks_like_json(candidate):
        return content
    try:
        return json.loads(candidate)
    except ValueError as e:
        debug(f"model output is not valid JSON, keeping raw text: {e}")
        return content
