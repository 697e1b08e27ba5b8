import asyncio
import base64
import io
import json
import os

from PIL import Image

from screenshot_analyzer.json_api import handle_json_request
from screenshot_analyzer.services.analyzer import AnalyzerService


class DecodingProvider:
    """Decodes the submitted data URL and answers like the model would."""

    def __init__(self, fail_first=0):
        self.sizes = []
        self.fail_first = fail_first

    async def call_image(self, cfg, image_url, prompt):
        if self.fail_first:
            self.fail_first -= 1
            err = RuntimeError("service unavailable")
            err.status_code = 503
            raise err
        assert image_url.startswith("data:image/jpeg;base64,")
        assert "Strava" in prompt
        raw = base64.b64decode(image_url.split(",", 1)[1])
        with Image.open(io.BytesIO(raw)) as im:
            self.sizes.append(im.size)
        return '```json\n{"distance": "12.3 km", "moving time": "45:10"}\n```'

    def check_balance(self, cfg):
        return {}


def test_grid_composite_is_analyzed_once(settings, make_image, sleeper):
    folder = os.path.join(settings.images_dir, "runner")
    make_image(os.path.join(folder, "a.png"), 30, 20)
    make_image(os.path.join(folder, "b.png"), 40, 10, mode="RGBA")
    make_image(os.path.join(folder, "c.jpg"), 25, 50)

    provider = DecodingProvider(fail_first=1)
    service = AnalyzerService(provider, settings, sleep=sleeper, quiet=True)
    req = {"action": "process", "userId": "runner", "direction": "horizontal", "maxPerRow": 2, "margin": 5, "format": "png"}
    status, body = asyncio.run(handle_json_request(req, cfg=settings, service=service))

    assert status == 200
    # rows [a, b] and [c]: width 30+5+40, height 20+5+50
    assert provider.sizes == [(75, 75)]
    assert sleeper.delays == [1.0]
    entry = body["data"]["runner"][0]
    assert entry["sources"] == ["a.png", "b.png", "c.jpg"]
    assert entry["analysis"] == {"distance": "12.3 km", "moving time": "45:10"}

    composite = os.path.join(folder, "merged", "merged-images.png")
    with Image.open(composite) as im:
        assert im.size == (75, 75)
        # gap between the two tiles of the first row stays white
        assert im.convert("RGB").getpixel((32, 5)) == (255, 255, 255)

    with open(os.path.join(settings.data_dir, "runner-results.json"), encoding="utf-8") as f:
        assert json.load(f) == body["data"]["runner"]
