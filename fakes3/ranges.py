"""Byte range requests for object downloads."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import ErrorCode, S3Error, error_message

RANGE_NO_END = -1

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def _invalid_range() -> S3Error:
    return S3Error(ErrorCode.INVALID_RANGE)


@dataclass(frozen=True)
class ObjectRange:
    """A resolved byte range within an object of known size."""

    start: int
    length: int

    def headers(self, size: int) -> dict[str, str]:
        """Response headers describing this range of an object of ``size`` bytes."""
        return {
            "Content-Range": f"bytes {self.start}-{self.start + self.length - 1}/{size}",
            "Content-Length": str(self.length),
        }


def range_headers(object_range: ObjectRange | None, size: int) -> dict[str, str]:
    """Response headers for a full or partial object body."""
    if object_range is None:
        return {"Content-Length": str(size)}
    return object_range.headers(size)


@dataclass(frozen=True)
class ObjectRangeRequest:
    """A single byte range as requested by a client."""

    start: int = 0
    end: int = 0
    from_end: bool = False

    def range(self, size: int) -> ObjectRange:
        """Resolve the request against an object of ``size`` bytes."""
        if not self.from_end:
            start = self.start
            if self.end == RANGE_NO_END:
                length = size - start
            else:
                length = self.end - start + 1
        else:
            # Without a start, end is a length counted back from the end.
            start = size - self.end
            length = size - start

        if start < 0 or length < 0 or start >= size:
            raise _invalid_range()

        if start + length > size:
            return ObjectRange(start=start, length=size - start)
        return ObjectRange(start=start, length=length)


def _parse_int(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(text)
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(text)
    return value


def parse_range_header(value: str) -> ObjectRangeRequest | None:
    """Parse a single byte range from a Range header; None if the header is empty."""
    if value == "":
        return None

    marker = "bytes="
    if not value.startswith(marker):
        raise _invalid_range()

    ranges = value[len(marker):].split(",")
    if len(ranges) > 1:
        raise error_message(ErrorCode.NOT_IMPLEMENTED, "multiple ranges not supported")

    spec = ranges[0].strip()
    if not spec:
        raise _invalid_range()

    start_text, dash, end_text = spec.partition("-")
    if not dash:
        raise _invalid_range()
    start_text, end_text = start_text.strip(), end_text.strip()

    if start_text == "":
        try:
            end = _parse_int(end_text)
        except ValueError:
            raise _invalid_range() from None
        return ObjectRangeRequest(end=end, from_end=True)

    try:
        start = _parse_int(start_text)
    except ValueError:
        raise _invalid_range() from None
    if start < 0:
        raise _invalid_range()

    if end_text == "":
        return ObjectRangeRequest(start=start, end=RANGE_NO_END)

    try:
        end = _parse_int(end_text)
    except ValueError:
        raise _invalid_range() from None
    if start > end:
        raise _invalid_range()
    return ObjectRangeRequest(start=start, end=end)