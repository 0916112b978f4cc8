"""Opaque keyset cursors.

A cursor is the position ``(id, timestamp)`` of the last row of a page,
serialized as URL-safe base64 (no padding) over ``"<id>|<unix-nanos>"``.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from blog_api.pagination.errors import InvalidCursorError

MAX_CURSOR_LENGTH = 512
# Largest id a BIGINT column (and SQLite INTEGER) can hold
MAX_CURSOR_ID = 2**63 - 1

_EPOCH = datetime(1970, 1, 1)
_ID_RE = re.compile(r"[0-9]+")
_NANOS_RE = re.compile(r"-?[0-9]+")


def datetime_to_nanos(value: datetime) -> int:
    """Nanoseconds since the Unix epoch for a naive UTC datetime."""
    if value.tzinfo is not None:
        value = _to_naive_utc(value)
    return ((value - _EPOCH) // timedelta(microseconds=1)) * 1000


def nanos_to_datetime(nanos: int) -> datetime:
    """Inverse of ``datetime_to_nanos``; sub-microsecond digits are dropped."""
    return _EPOCH + timedelta(microseconds=nanos // 1000)


def _to_naive_utc(value: datetime) -> datetime:
    offset = value.utcoffset() or timedelta(0)
    return (value - offset).replace(tzinfo=None)


@dataclass(frozen=True)
class Cursor:
    """Position of a row in the sort order."""

    id: int
    created_at: datetime

    def encode(self) -> str:
        return encode_cursor(self.id, self.created_at)


def encode_cursor(post_id: int, created_at: datetime) -> str:
    raw = f"{int(post_id)}|{datetime_to_nanos(created_at)}".encode("ascii")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(value: str) -> Cursor:
    """Decode a cursor produced by ``encode_cursor``.

    Raises:
        InvalidCursorError: on bad base64, a wrong number of parts or
            non-integer fields, or an id beyond the 64-bit range.
    """
    s = (value or "").strip()
    if not s:
        raise InvalidCursorError("Empty cursor")
    if len(s) > MAX_CURSOR_LENGTH:
        raise InvalidCursorError("Cursor too long")

    # Accept padded and unpadded input alike
    s = s.rstrip("=")
    pad = "=" * ((4 - len(s) % 4) % 4)
    try:
        raw = base64.b64decode(s + pad, altchars=b"-_", validate=True).decode("ascii")
    except (binascii.Error, ValueError) as e:
        raise InvalidCursorError("Cursor is not valid base64") from e

    parts = raw.split("|")
    if len(parts) != 2:
        raise InvalidCursorError(f"Cursor must have 2 parts, got {len(parts)}")

    id_part, nanos_part = parts
    if not _ID_RE.fullmatch(id_part) or not _NANOS_RE.fullmatch(nanos_part):
        raise InvalidCursorError("Cursor fields must be integers")

    try:
        created_at = nanos_to_datetime(int(nanos_part))
    except OverflowError as e:
        raise InvalidCursorError("Cursor timestamp out of range") from e

    post_id = int(id_part)
    if post_id > MAX_CURSOR_ID:
        raise InvalidCursorError("Cursor id out of range")

    return Cursor(id=post_id, created_at=created_at)
