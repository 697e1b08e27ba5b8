"""FastAPI application exposing the per-user screenshot endpoints.

Run locally with:
    screenshot-analyzer-serve          (SERVER_HOST / SERVER_PORT)
    uvicorn screenshot_analyzer.server:app --port 8000
"""
import os
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, load_config
from .json_api import handle_json_request
from .providers.base import ModelProvider
from .providers.openai_provider import OpenAIProvider
from .services.analyzer import AnalyzerService
from .utils import log


def create_app(cfg: Optional[Settings] = None, provider: Optional[ModelProvider] = None) -> FastAPI:
    cfg = cfg or load_config(require_api_key=False)
    app = FastAPI(title="Screenshot Analyzer API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # one provider (and SDK client) for the lifetime of the app
    if provider is None and cfg.api_key:
        provider = OpenAIProvider()
    service = AnalyzerService(provider, cfg) if provider is not None else None

    async def _respond(req: dict, service: Optional[AnalyzerService] = None) -> JSONResponse:
        status, body = await handle_json_request(req, cfg=cfg, service=service)
        return JSONResponse(status_code=status, content=body)

    @app.get("/api/images")
    async def list_images(userId: Optional[str] = None):
        return await _respond({"action": "list", "userId": userId})

    @app.post("/api/images")
    async def process_images(
        userId: Optional[str] = None,
        merge: bool = True,
        direction: Optional[str] = None,
        margin: Optional[str] = None,
        maxPerRow: Optional[str] = None,
        format: Optional[str] = None,
        quality: Optional[str] = None,
    ):
        req = {
            "action": "process",
            "userId": userId,
            "merge": merge,
            "direction": direction,
            "margin": margin,
            "maxPerRow": maxPerRow,
            "format": format,
            "quality": quality,
        }
        return await _respond(req, service)

    @app.post("/api/images/merge")
    async def merge_images(
        userId: Optional[str] = None,
        direction: Optional[str] = None,
        margin: Optional[str] = None,
        maxPerRow: Optional[str] = None,
        format: Optional[str] = None,
        quality: Optional[str] = None,
    ):
        req = {
            "action": "merge",
            "userId": userId,
            "direction": direction,
            "margin": margin,
            "maxPerRow": maxPerRow,
            "format": format,
            "quality": quality,
        }
        return await _respond(req)

    @app.get("/api/results")
    async def get_results(userId: Optional[str] = None):
        return await _respond({"action": "results", "userId": userId})

    app.mount("/images", StaticFiles(directory=cfg.images_dir, check_dir=False), name="images")
    log(f"API ready: images_dir={cfg.images_dir} data_dir={cfg.data_dir} model={cfg.model}")
    return app


app = create_app()


def main() -> None:
    host = os.environ.get("SERVER_HOST", "127.0.0.1")
    try:
        port = int(os.environ.get("SERVER_PORT", "8000"))
    except ValueError:
        sys.exit("SERVER_PORT must be an integer")
    uvicorn.run("screenshot_analyzer.server:app", host=host, port=port)
