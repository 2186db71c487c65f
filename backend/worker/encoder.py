"""
MessagePack encoder/decoder for messages crossing the worker boundary.

Both sides only ever exchange plain dicts (pydantic ``model_dump(mode="json")``
output), so the wire format stays independent of the Python types used on
either side.
"""

from typing import Any

import msgpack


class DecodeError(Exception):
    """Error raised when MessagePack decoding fails."""


# Size limits for a single message. Seeded recordings of very long games are
# the largest payloads by far.
MAX_BUFFER_LEN = 4 * 1024 * 1024
MAX_STR_LEN = 2 * 1024 * 1024
MAX_BIN_LEN = 64 * 1024
MAX_ARRAY_LEN = 4096
MAX_MAP_LEN = 256
MAX_EXT_LEN = 1024


def encode(data: dict[str, Any]) -> bytes:
    """
    Encode a dict to MessagePack bytes.
    """
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode MessagePack bytes to a dict.

    Raises DecodeError if data is invalid, not a dict, or exceeds size limits.
    """
    if len(data) > MAX_BUFFER_LEN:
        raise DecodeError(f"payload too large: {len(data)} bytes (max {MAX_BUFFER_LEN})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"failed to decode MessagePack data: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected dict, got {type(result).__name__}")

    return result
