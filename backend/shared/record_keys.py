"""Timestamp-derived record keys (TIDs).

A TID is 13 characters of sortable base32 encoding a 64-bit integer: the
top bit is zero, the next 53 bits are microseconds since the Unix epoch and
the low 10 bits are a clock identifier. Lexicographic order of TIDs matches
creation order, which keeps remote game listings chronological.
"""

import re
import secrets
import threading
import time

_ALPHABET = "234567abcdefghijklmnopqrstuvwxyz"
_TID_LEN = 13
_CLOCK_ID_BITS = 10
_MAX_CLOCK_ID = (1 << _CLOCK_ID_BITS) - 1

TID_PATTERN = re.compile(r"^[234567abcdefghij][234567abcdefghijklmnopqrstuvwxyz]{12}$")


def encode_tid(value: int) -> str:
    """Encode a non-negative 63-bit integer as a TID string."""
    if value < 0 or value >= 1 << 63:
        msg = f"TID value out of range: {value}"
        raise ValueError(msg)
    chars = []
    for _ in range(_TID_LEN):
        value, rem = divmod(value, 32)
        chars.append(_ALPHABET[rem])
    return "".join(reversed(chars))


def decode_tid(tid: str) -> int:
    if not TID_PATTERN.match(tid):
        msg = f"Invalid TID: {tid!r}"
        raise ValueError(msg)
    value = 0
    for ch in tid:
        value = value * 32 + _ALPHABET.index(ch)
    return value


def tid_timestamp_us(tid: str) -> int:
    """Return the microsecond timestamp embedded in a TID."""
    return decode_tid(tid) >> _CLOCK_ID_BITS


class RecordKeyAllocator:
    """Hand out strictly increasing TIDs, even if the wall clock stalls or steps back."""

    def __init__(self, clock_id: int | None = None) -> None:
        if clock_id is None:
            clock_id = secrets.randbelow(_MAX_CLOCK_ID + 1)
        if not 0 <= clock_id <= _MAX_CLOCK_ID:
            msg = f"clock_id must be 0-{_MAX_CLOCK_ID}, got {clock_id}"
            raise ValueError(msg)
        self._clock_id = clock_id
        self._last_us = 0
        self._lock = threading.Lock()

    def _now_us(self) -> int:
        return time.time_ns() // 1000

    def next_key(self) -> str:
        with self._lock:
            now = max(self._now_us(), self._last_us + 1)
            self._last_us = now
        return encode_tid((now << _CLOCK_ID_BITS) | self._clock_id)
