"""Public API for screenshot_analyzer.

Expose a small, explicit set of helpers used by the CLI, the server and tests.
"""
from importlib.metadata import PackageNotFoundError, version

try:
	__version__ = version("screenshot-analyzer")
except PackageNotFoundError:
	__version__ = "0.0.0"

from .config import Settings, load_config, read_prompt_file
from .errors import ExtractionError, ExtractionTimeoutError, QuotaExceededError
from .image_io import ImageDescriptor, load_image_descriptor, image_bytes_to_data_url
from .image_processing import (
	CompositeResult,
	LayoutPlan,
	MergeOptions,
	Placement,
	compose,
	merge_images_in_folder,
	plan_layout,
	render_composite,
)
from .parsing import normalize_content
from .services.analyzer import AnalysisItem, AnalyzerService
from .json_api import handle_json_request

__all__ = [
	"Settings",
	"load_config",
	"read_prompt_file",
	"ExtractionError",
	"ExtractionTimeoutError",
	"QuotaExceededError",
	"ImageDescriptor",
	"load_image_descriptor",
	"image_bytes_to_data_url",
	"CompositeResult",
	"LayoutPlan",
	"MergeOptions",
	"Placement",
	"compose",
	"merge_images_in_folder",
	"plan_layout",
	"render_composite",
	"normalize_content",
	"AnalysisItem",
	"AnalyzerService",
	"handle_json_request",
	"__version__",
]
