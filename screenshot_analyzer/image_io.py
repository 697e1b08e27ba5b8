from __future__ import annotations

import base64
import io
import os
from dataclasses import dataclass

from PIL import Image, ImageOps

WHITE = (255, 255, 255)


@dataclass(frozen=True)
class ImageDescriptor:
    source_path: str
    width: int
    height: int
    raw_bytes: bytes = b""

    @property
    def name(self) -> str:
        return os.path.basename(self.source_path)


def descriptor_from_bytes(data: bytes, source_path: str = "<memory>") -> ImageDescriptor:
    """Decode `data` fully and record its size after EXIF orientation."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            im.load()
            w, h = ImageOps.exif_transpose(im).size
    except Exception as e:
        raise RuntimeError(f"Failed to decode image {source_path!r}: {e}") from e
    return ImageDescriptor(source_path=source_path, width=w, height=h, raw_bytes=data)


def load_image_descriptor(path: str) -> ImageDescriptor:
    with open(path, "rb") as f:
        data = f.read()
    return descriptor_from_bytes(data, path)


def decode_for_paste(image: ImageDescriptor) -> Image.Image:
    """Open the descriptor's bytes as an opaque RGB image (alpha flattened onto white)."""
    with Image.open(io.BytesIO(image.raw_bytes)) as im:
        im = ImageOps.exif_transpose(im)
        if im.mode in ("RGBA", "LA") or (im.mode == "P" and "transparency" in im.info):
            rgba = im.convert("RGBA")
            flat = Image.new("RGB", rgba.size, WHITE)
            flat.paste(rgba, mask=rgba.getchannel("A"))
            return flat
        return im.convert("RGB")


def image_bytes_to_data_url(data: bytes) -> str:
    """Base64 data URL in the JPEG framing the vision endpoint expects."""
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:image/jpeg;base64,{b64}"


def load_image_as_data_url(path: str) -> str:
    with open(path, "rb") as f:
        return image_bytes_to_data_url(f.read())
