"""
screenshot-analyzer

Extract activity data from tracker screenshots with an OpenAI-compatible
vision model.

- .env config (OPENAI_*, RETRY_*, IMAGES_DIR, MERGE_*, PROMPT_FILE),
  overridable from the command line.
- Modes:
  * every image on its own (default) → one request per image; stops
    contacting the API once the quota is exhausted;
  * --merge → images are tiled into one composite, one request.
- Results are printed as JSON and written to --output.
- Provider balance check (--check-balance).
"""
import argparse
import asyncio
import json
import os
import sys
from typing import List, Optional, Sequence

from .config import Settings, load_config
from .errors import BILLING_URL, QuotaExceededError
from .image_io import load_image_descriptor
from .image_processing import DIRECTIONS, FORMATS, MergeOptions, compose, merged_output_path
from .providers.openai_provider import OpenAIProvider
from .results_store import write_json
from .services.analyzer import AnalyzerService, quota_exceeded
from .utils import expand_image_patterns, list_image_files, log


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="screenshot-analyzer",
        description="Extract activity data from screenshots with an OpenAI-compatible vision model.",
    )
    parser.add_argument(
        "images",
        nargs="*",
        help="Image file paths (supports glob masks like '*.jpg'). If omitted, all JPEG/PNG files in --dir are used.",
    )
    parser.add_argument("-d", "--dir", dest="images_dir", help="Override IMAGES_DIR from .env (folder scanned when no images are given).")
    parser.add_argument("-o", "--output", dest="output", default="results.json", help="Where to write the JSON results (default: results.json).")
    parser.add_argument("--merge", action="store_true", help="Tile all images into one composite and analyze it with a single request.")
    parser.add_argument("--direction", choices=DIRECTIONS, help="Override MERGE_DIRECTION from .env.")
    parser.add_argument("--margin", type=int, help="Override MERGE_MARGIN from .env (pixels between images).")
    parser.add_argument("--max-per-row", dest="max_per_row", type=int, help="Override MERGE_MAX_PER_ROW from .env (horizontal grid wrapping).")
    parser.add_argument("--format", dest="output_format", choices=FORMATS, help="Override MERGE_FORMAT from .env.")
    parser.add_argument("--quality", type=int, help="Override MERGE_QUALITY from .env (1-100).")
    parser.add_argument("--output-name", dest="output_name", default="merged-images", help="Base name of the composite file (default: merged-images).")
    parser.add_argument("-p", "--prompt-file", dest="prompt_file", help="Override PROMPT_FILE from .env.")
    # OpenAI / provider overrides
    parser.add_argument("-k", "--OPENAI_API_KEY", dest="openai_api_key", help="Override OPENAI_API_KEY from .env.")
    parser.add_argument("-u", "--OPENAI_BASE_URL", dest="openai_base_url", help="Override OPENAI_BASE_URL from .env.")
    parser.add_argument("-m", "--OPENAI_MODEL", dest="openai_model", help="Override OPENAI_MODEL from .env.")
    parser.add_argument("-T", "--OPENAI_TIMEOUT", dest="openai_timeout", type=int, help="Override OPENAI_TIMEOUT from .env (seconds per attempt).")
    parser.add_argument("-M", "--OPENAI_MAX_TOKENS", dest="openai_max_tokens", type=int, help="Override OPENAI_MAX_TOKENS from .env.")
    parser.add_argument("--max-retries", dest="max_retries", type=int, help="Override OPENAI_MAX_RETRIES from .env.")
    parser.add_argument("--retry-delay", dest="retry_delay", type=int, help="Override RETRY_INITIAL_DELAY_MS from .env.")
    parser.add_argument("--check-balance", dest="check_balance", action="store_true", help="Check provider balance (if supported) and exit.")
    parser.add_argument("--debug", dest="debug", action="store_true", help="Enable debug output to stderr.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Quiet mode: suppress informational logs.")
    return parser.parse_args(argv)


def apply_overrides(cfg: Settings, args: argparse.Namespace) -> Settings:
    if args.openai_api_key:
        cfg.api_key = args.openai_api_key
    if args.openai_base_url:
        cfg.base_url = args.openai_base_url
    if args.openai_model:
        cfg.model = args.openai_model
    if args.openai_timeout is not None:
        cfg.timeout = args.openai_timeout
    if args.openai_max_tokens is not None:
        cfg.max_tokens = args.openai_max_tokens
    if args.max_retries is not None:
        cfg.max_retries = args.max_retries
    if args.retry_delay is not None:
        cfg.retry_initial_delay_ms = args.retry_delay
    if args.prompt_file:
        cfg.prompt_file = args.prompt_file
    if args.images_dir:
        cfg.images_dir = args.images_dir
    if args.direction:
        cfg.merge_direction = args.direction
    if args.margin is not None:
        cfg.merge_margin = args.margin
    if args.max_per_row is not None:
        cfg.merge_max_per_row = args.max_per_row
    if args.output_format:
        cfg.merge_format = args.output_format
    if args.quality is not None:
        cfg.merge_quality = args.quality
    if args.debug:
        os.environ["DEBUG"] = "1"
    return cfg


def collect_images(args: argparse.Namespace, cfg: Settings) -> List[str]:
    if args.images:
        return expand_image_patterns(args.images)
    if not os.path.isdir(cfg.images_dir):
        log(f"Directory not found: {cfg.images_dir}", args.quiet)
        return []
    return list_image_files(cfg.images_dir)


def merge_inputs(paths: Sequence[str], options: MergeOptions, output_name: str, quiet: bool) -> str:
    """Compose `paths` into `<dir of first image>/merged/<output_name>.<format>`."""
    images = [load_image_descriptor(p) for p in paths]
    folder = os.path.dirname(os.path.abspath(paths[0]))
    result = compose(images, merged_output_path(folder, output_name, options.output_format), options)
    log(f"Composite written to {result.output_path}", quiet)
    return result.output_path


async def run(args: argparse.Namespace, cfg: Settings) -> int:
    service = AnalyzerService(OpenAIProvider(), cfg, quiet=args.quiet)

    if args.check_balance:
        try:
            data = service.check_balance()
        except Exception as e:
            print(f"Failed to get balance: {e}", file=sys.stderr)
            return 1
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    paths = collect_images(args, cfg)
    log(f"Found {len(paths)} images to process", args.quiet)
    if not paths:
        print("Nothing to do: no images found.", file=sys.stderr)
        return 1

    stopped_by_quota = False
    if args.merge:
        try:
            composite_path = merge_inputs(paths, cfg.merge_options(), args.output_name, args.quiet)
        except Exception as e:
            print(f"Failed to merge images: {e}", file=sys.stderr)
            return 1
        entry = {"image": composite_path, "sources": [os.path.basename(p) for p in paths]}
        try:
            entry["analysis"] = await service.analyze(composite_path)
        except QuotaExceededError as e:
            stopped_by_quota = True
            entry["error"] = str(e)
        except Exception as e:
            entry["error"] = str(e)
        results = [entry]
    else:
        items = await service.analyze_many(paths)
        stopped_by_quota = quota_exceeded(items)
        results = [item.to_dict() for item in items]

    print(json.dumps(results, ensure_ascii=False, indent=2))
    out_path = write_json(args.output, results)
    log(f"Results saved to {out_path}", args.quiet)
    if stopped_by_quota:
        print(
            "Note: some images were not processed due to API quota limitations. "
            f"Please check your billing details at {BILLING_URL}",
            file=sys.stderr,
        )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    cfg = apply_overrides(load_config(require_api_key=False), args)
    if not cfg.api_key:
        sys.exit("ERROR: OPENAI_API_KEY is not set")

    log(f"Model: {cfg.model}", args.quiet)
    log(f"BASE_URL: {cfg.base_url or 'default'}", args.quiet)
    log(f"MAX_TOKENS={cfg.max_tokens}, TIMEOUT={cfg.timeout}, MAX_RETRIES={cfg.max_retries}", args.quiet)
    if args.merge:
        log(
            f"MERGE: direction={cfg.merge_direction}, margin={cfg.merge_margin}, "
            f"max_per_row={cfg.merge_max_per_row}, format={cfg.merge_format}, quality={cfg.merge_quality}",
            args.quiet,
        )
    sys.exit(asyncio.run(run(args, cfg)))


if __name__ == "__main__":
    main()
