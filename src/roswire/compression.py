"""PNG compression hack.

rosbridge can ship a JSON message as the pixel data of a PNG image: the
UTF-8 text is laid out byte by byte across the image's channels in raster
order, padded with spaces to fill the last pixel. Decoding reverses that.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import json
import logging
from typing import Any

from PIL import Image, UnidentifiedImageError

from .errors import FrameDecodeError

logger = logging.getLogger(__name__)


def _pixel_bytes(png_data: bytes) -> bytes:
    with Image.open(io.BytesIO(png_data)) as image:
        image.load()
        if image.mode not in ("RGBA", "RGB", "L"):
            image = image.convert("RGBA")
        return image.tobytes()


def decompress_png_sync(data: str) -> Any:
    """Decode a base64 PNG payload back into the JSON document it carries."""
    try:
        png_data = base64.b64decode(data, validate=True)
        raw = _pixel_bytes(png_data)
        return json.loads(raw.rstrip(b"\x00").decode("utf-8"))
    except (binascii.Error, UnidentifiedImageError, OSError, ValueError) as exc:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        logger.warning("Cannot process PNG encoded message: %s", exc)
        raise FrameDecodeError(f"invalid PNG payload: {exc}") from exc


async def decompress_png(data: str) -> Any:
    """Async variant; the image decode runs in a worker thread."""
    return await asyncio.to_thread(decompress_png_sync, data)
