from typing import Protocol, Any, Optional


class ModelProvider(Protocol):
    """Protocol describing a vision model provider implementation."""

    async def call_image(self, cfg: Any, image_url: str, prompt: str) -> Optional[str]:
        ...

    def check_balance(self, cfg: Any) -> dict:
        ...
