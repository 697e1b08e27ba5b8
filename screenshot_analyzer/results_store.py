import json
import os
from typing import Any, Optional


def _ensure_parent_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def write_json(path: str, data: Any) -> str:
    _ensure_parent_dir(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    return path


def results_path(data_dir: str, user_id: str) -> str:
    return os.path.join(data_dir, f"{user_id}-results.json")


def save_results(data_dir: str, user_id: str, results: Any) -> str:
    """Overwrite the user's results file; last writer wins."""
    return write_json(results_path(data_dir, user_id), results)


def load_results(data_dir: str, user_id: str) -> Optional[Any]:
    path = results_path(data_dir, user_id)
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
