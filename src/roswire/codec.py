"""Inbound frame decoding and outbound frame encoding.

A frame arrives with no header saying how it was encoded, so the codec
decides per frame:

  1. an injected decoder strategy, when configured, handles everything;
  2. a binary frame that is a well-formed length-prefixed document is BSON;
  3. any other binary frame is CBOR, with RFC 8746 typed-array tags turned
     into numpy arrays;
  4. text frames are JSON.

BSON and JSON results then go through the PNG stage: an ``op: "png"``
envelope is unpacked into the message it carries. Outbound frames are
always JSON text.
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

import bson
import cbor2
import numpy as np
from bson.errors import BSONError

from .compression import decompress_png
from .errors import FrameDecodeError
from .models import WireMessage

logger = logging.getLogger(__name__)

Frame = str | bytes | bytearray | memoryview
# Returns a message mapping, or an awaitable resolving to one.
FrameDecoder = Callable[[Frame], Any]

# RFC 8746 tag -> little-endian element type. These are the tags rosbridge
# emits for "cbor-raw" and "cbor" compression.
TYPED_ARRAY_TAGS: dict[int, np.dtype] = {
    64: np.dtype("u1"),
    69: np.dtype("<u2"),
    70: np.dtype("<u4"),
    71: np.dtype("<u8"),
    72: np.dtype("i1"),
    77: np.dtype("<i2"),
    78: np.dtype("<i4"),
    79: np.dtype("<i8"),
    85: np.dtype("<f4"),
    86: np.dtype("<f8"),
}

_TAGS_BY_KIND: dict[tuple[str, int], int] = {
    (dtype.kind, dtype.itemsize): tag for tag, dtype in TYPED_ARRAY_TAGS.items()
}


# ---------------------------------------------------------------------------
# Primary decoders
# ---------------------------------------------------------------------------


def is_binary_document(data: bytes) -> bool:
    """True when *data* carries a BSON document's own length prefix and trailer."""
    return (
        len(data) >= 5
        and int.from_bytes(data[:4], "little") == len(data)
        and data[-1] == 0
    )


def decode_json(frame: str | bytes) -> Any:
    try:
        return json.loads(frame)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise FrameDecodeError(f"invalid JSON frame: {exc}") from exc


def decode_bson(data: bytes) -> dict[str, Any]:
    try:
        return bson.decode(data)
    except BSONError as exc:
        raise FrameDecodeError(f"invalid BSON frame: {exc}") from exc


def _typed_array_hook(decoder: cbor2.CBORDecoder, tag: cbor2.CBORTag) -> Any:
    dtype = TYPED_ARRAY_TAGS.get(tag.tag)
    if dtype is None or not isinstance(tag.value, bytes):
        return tag
    return np.frombuffer(tag.value, dtype=dtype).astype(dtype.newbyteorder("="))


def decode_cbor(data: bytes) -> Any:
    try:
        return cbor2.loads(data, tag_hook=_typed_array_hook)
    except (cbor2.CBORDecodeError, ValueError) as exc:
        raise FrameDecodeError(f"invalid CBOR frame: {exc}") from exc


def _typed_array_default(encoder: cbor2.CBOREncoder, value: Any) -> None:
    if isinstance(value, np.ndarray):
        tag = _TAGS_BY_KIND.get((value.dtype.kind, value.dtype.itemsize))
        if tag is not None:
            little = value.astype(TYPED_ARRAY_TAGS[tag], copy=False)
            encoder.encode(cbor2.CBORTag(tag, np.ascontiguousarray(little).tobytes()))
            return
    raise cbor2.CBOREncodeTypeError(f"cannot serialize type {type(value).__name__}")


def encode_cbor(message: Any) -> bytes:
    """Encode *message* as CBOR, tagging numpy arrays the way rosbridge does."""
    return cbor2.dumps(message, default=_typed_array_default)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class FrameCodec:
    """Turns raw transport frames into canonical message dicts and back."""

    def __init__(self, decoder: FrameDecoder | None = None) -> None:
        self._decoder = decoder

    async def decode(self, frame: Frame) -> Any:
        """Decode one inbound frame. Raises FrameDecodeError on malformed input."""
        if self._decoder is not None:
            return await self._decode_with_override(frame)

        if isinstance(frame, (bytes, bytearray, memoryview)):
            data = bytes(frame)
            if is_binary_document(data):
                return await self._expand_png(decode_bson(data))
            return decode_cbor(data)

        return await self._expand_png(decode_json(frame))

    def encode(self, message: WireMessage) -> str:
        return message.model_dump_json()

    async def _decode_with_override(self, frame: Frame) -> Any:
        try:
            result = self._decoder(frame)
            if inspect.isawaitable(result):
                result = await result
        except FrameDecodeError:
            raise
        except Exception as exc:
            raise FrameDecodeError(f"custom decoder failed: {exc}") from exc
        return result

    async def _expand_png(self, message: Any) -> Any:
        if isinstance(message, Mapping) and message.get("op") == "png":
            data = message.get("data")
            if not isinstance(data, str):
                raise FrameDecodeError("png frame without base64 data")
            return await decompress_png(data)
        return message
