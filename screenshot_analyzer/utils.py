import glob
import os
import sys
from typing import List, Sequence

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")


def log(msg: str, quiet: bool = False) -> None:
    """Prefixed log line on stderr."""
    if not quiet:
        print(f"[screenshot_analyzer] {msg}", file=sys.stderr)


def debug_enabled() -> bool:
    # DEBUG wins; IMAGE_DEBUG kept for older .env files
    env_dbg = os.environ.get("DEBUG", None)
    if env_dbg is None:
        env_dbg = os.environ.get("IMAGE_DEBUG", "")
    return str(env_dbg).lower() in ("1", "true", "yes")


def debug(msg: str) -> None:
    if debug_enabled():
        print(f"[DEBUG] {msg}", file=sys.stderr)


def is_image_file(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def list_image_files(folder: str) -> List[str]:
    """Sorted JPEG/PNG regular files directly inside `folder` (full paths)."""
    out = []
    for name in sorted(os.listdir(folder)):
        path = os.path.join(folder, name)
        if os.path.isfile(path) and is_image_file(name):
            out.append(path)
    return out


def expand_image_patterns(patterns: Sequence[str]) -> List[str]:
    """Expand glob masks, keeping order and dropping duplicates."""
    result: List[str] = []
    for p in patterns:
        expanded = glob.glob(p)
        if expanded:
            result.extend(sorted(expanded))
        else:
            result.append(p)
    seen = set()
    uniq: List[str] = []
    for p in result:
        if p not in seen:
            seen.add(p)
            uniq.append(p)
    return uniq
