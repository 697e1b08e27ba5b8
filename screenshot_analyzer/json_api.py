"""Transport-independent request handlers for per-user screenshot folders.

Each handler returns `(status_code, body)`; the HTTP server and tests call
them directly.
"""
import os
from typing import Any, Optional, Tuple

from .config import Settings, load_config
from .errors import QuotaExceededError
from .image_processing import MERGED_SUBDIR, MergeOptions, merge_images_in_folder
from .providers.openai_provider import OpenAIProvider
from .results_store import load_results, save_results
from .services.analyzer import AnalyzerService, quota_exceeded
from .utils import list_image_files, log

Response = Tuple[int, dict]


def validate_user_id(user_id: Optional[str]) -> Optional[str]:
    """Error message for an unusable identifier, None when it is fine."""
    if not user_id or not user_id.strip():
        return "User ID is required"
    if user_id in (".", "..") or "/" in user_id or "\\" in user_id or "\x00" in user_id:
        return "Invalid user ID"
    return None


def user_dir(cfg: Settings, user_id: str) -> str:
    return os.path.join(cfg.images_dir, user_id)


def _flag(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def merge_options_from_request(req: dict, cfg: Settings) -> MergeOptions:
    """Merge options from request keys, falling back to the configured defaults."""
    opts = cfg.merge_options()
    if req.get("direction"):
        opts.direction = str(req["direction"]).lower()
    if req.get("margin") not in (None, ""):
        opts.margin = int(req["margin"])
    if req.get("maxPerRow") not in (None, ""):
        opts.max_per_row = int(req["maxPerRow"])
    if req.get("format"):
        opts.output_format = str(req["format"]).lower()
    if req.get("quality") not in (None, ""):
        opts.quality = int(req["quality"])
    opts.validate()
    return opts


def list_user_images(user_id: Optional[str], cfg: Settings) -> Response:
    err = validate_user_id(user_id)
    if err:
        return 400, {"message": err, "images": []}
    folder = user_dir(cfg, user_id)
    if not os.path.isdir(folder):
        return 200, {"message": "No images found for this user", "images": []}
    try:
        files = list_image_files(folder)
    except OSError as e:
        log(f"Error retrieving images for {user_id}: {e}")
        return 500, {"message": "Error retrieving images", "images": []}
    urls = [f"/images/{user_id}/{os.path.basename(p)}" for p in files]
    return 200, {"message": "Images retrieved successfully", "images": urls}


def get_user_results(user_id: Optional[str], cfg: Settings) -> Response:
    err = validate_user_id(user_id)
    if err:
        return 400, {"success": False, "message": err}
    try:
        results = load_results(cfg.data_dir, user_id)
    except (OSError, ValueError) as e:
        log(f"Error reading results for {user_id}: {e}")
        return 500, {"success": False, "message": "Error retrieving results"}
    if results is None:
        return 404, {"success": False, "message": "No results found for this user"}
    return 200, {"success": True, "message": "Results retrieved successfully", "data": {user_id: results}}


def merge_user_images(user_id: Optional[str], cfg: Settings, options: Optional[MergeOptions] = None) -> Response:
    err = validate_user_id(user_id)
    if err:
        return 400, {"success": False, "message": err}
    folder = user_dir(cfg, user_id)
    if not os.path.isdir(folder):
        return 404, {"success": False, "message": "No images found for this user"}
    result = merge_images_in_folder(folder, options=options or cfg.merge_options())
    if not result.success:
        status = 404 if result.error and result.error.startswith("No image files found") else 500
        return status, {"message": "Error merging images", **result.to_dict()}
    return 200, {"message": "Images merged successfully", **result.to_dict()}


async def process_user_images(
    user_id: Optional[str],
    cfg: Settings,
    service: Optional[AnalyzerService] = None,
    merge: bool = True,
    options: Optional[MergeOptions] = None,
) -> Response:
    """Analyze a user's screenshots and store the results.

    With `merge` the folder is tiled into one composite and that single
    image is analyzed; otherwise every image is analyzed on its own and
    per-image failures are recorded next to the successful entries.
    """
    err = validate_user_id(user_id)
    if err:
        return 400, {"success": False, "message": err}
    folder = user_dir(cfg, user_id)
    if not os.path.isdir(folder):
        return 404, {"success": False, "message": "No images found for this user"}
    files = list_image_files(folder)
    if not files:
        return 404, {"success": False, "message": "No image files found for this user"}

    if service is None:
        if not cfg.api_key:
            return 500, {"success": False, "message": "OpenAI API key not configured"}
        service = AnalyzerService(OpenAIProvider(), cfg)

    message = "Images processed successfully"
    try:
        if merge:
            composite = merge_images_in_folder(folder, options=options or cfg.merge_options())
            if not composite.success:
                return 500, {"success": False, "message": "Error merging images", "error": composite.error}
            analysis = await service.analyze(composite.output_path)
            results = [
                {
                    "image": f"{MERGED_SUBDIR}/{os.path.basename(composite.output_path)}",
                    "sources": composite.sources,
                    "analysis": analysis,
                }
            ]
        else:
            items = await service.analyze_many(files)
            results = []
            for item in items:
                entry = {"image": os.path.basename(item.path)}
                if item.ok:
                    entry["analysis"] = item.data
                else:
                    entry["error"] = item.error
                results.append(entry)
            if quota_exceeded(items):
                message = "Some images were not processed due to API quota limitations"
            elif any(not i.ok for i in items):
                message = "Images processed with errors"
        save_results(cfg.data_dir, user_id, results)
    except QuotaExceededError as e:
        log(f"Quota exceeded while processing images for {user_id}")
        return 402, {"success": False, "message": str(e)}
    except Exception as e:
        log(f"Error processing images for {user_id}: {e}")
        return 500, {"success": False, "message": "Error processing images", "error": str(e)}

    return 200, {"success": True, "message": message, "data": {user_id: results}}


async def handle_json_request(req: dict, cfg: Optional[Settings] = None, service: Optional[AnalyzerService] = None) -> Response:
    """Dispatch on `action`: list | results | merge | process."""
    action = req.get("action")
    if action not in ("list", "results", "merge", "process"):
        return 400, {"success": False, "message": "unsupported action"}
    if cfg is None:
        cfg = load_config(require_api_key=False)
    user_id = req.get("userId")

    if action == "list":
        return list_user_images(user_id, cfg)
    if action == "results":
        return get_user_results(user_id, cfg)

    try:
        options = merge_options_from_request(req, cfg)
    except ValueError as e:
        return 400, {"success": False, "message": f"Invalid merge options: {e}"}
    if action == "merge":
        return merge_user_images(user_id, cfg, options)
    return await process_user_images(user_id, cfg, service, merge=_flag(req.get("merge"), True), options=options)
