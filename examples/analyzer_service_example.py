"""Small example: tile two generated screenshots and analyze the composite
with a dummy provider (no network access).

Run directly to see output:
    python examples/analyzer_service_example.py
"""
import asyncio
import os
import tempfile

from PIL import Image

from screenshot_analyzer import AnalyzerService, MergeOptions, Settings, merge_images_in_folder


class DummyProvider:
    async def call_image(self, cfg, image_url, prompt):
        return '```json\n{"activity name": "Evening Run", "distance": "8.1 km"}\n```'

    def check_balance(self, cfg):
        return {"balance": 123.45}


async def main():
    with tempfile.TemporaryDirectory() as folder:
        Image.new("RGB", (320, 640), (252, 76, 2)).save(os.path.join(folder, "1.png"))
        Image.new("RGB", (320, 480), (40, 40, 40)).save(os.path.join(folder, "2.png"))

        composite = merge_images_in_folder(folder, options=MergeOptions(direction="horizontal", margin=10))
        print("Composite:", composite.to_dict())

        cfg = Settings(
            api_key="dummy",
            base_url=None,
            model="gpt-4o",
            timeout=30,
            max_tokens=1000,
            max_retries=3,
            retry_initial_delay_ms=100,
            retry_max_delay_ms=1000,
            prompt_file=None,
            images_dir=folder,
            data_dir=folder,
        )
        svc = AnalyzerService(DummyProvider(), cfg)
        print("Analysis:", await svc.analyze(composite.output_path))


if __name__ == "__main__":
    asyncio.run(main())
