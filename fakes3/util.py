"""Parsing, validation and encoding helpers."""

from __future__ import annotations

import ipaddress
import re
from typing import BinaryIO

from .errors import ErrorCode, S3Error, error_message

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

# Matches a whole bucket name and each of its period-separated labels.
_BUCKET_NAME_PATTERN = re.compile(r"[a-z0-9][a-z0-9.-]+[a-z0-9]")
_ETAG_PATTERN = re.compile(r'"[a-z0-9]+"')

_UNESCAPED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_./*"
)


def parse_clamped_int(value: str, default: int, minimum: int, maximum: int) -> int:
    """Parse ``value`` as an integer, falling back to ``default``, clamped to the bounds."""
    if value == "":
        result = default
    else:
        if not _INT_PATTERN.fullmatch(value):
            raise S3Error(ErrorCode.INVALID_ARGUMENT)
        result = int(value)
        if not _INT64_MIN <= result <= _INT64_MAX:
            raise S3Error(ErrorCode.INVALID_ARGUMENT)

    if result < minimum:
        return minimum
    if result > maximum:
        return maximum
    return result


def read_all(reader: BinaryIO, size: int) -> bytes:
    """Read exactly ``size`` bytes; anything more or less is an incomplete body."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = reader.read(remaining)
        if not chunk:
            raise S3Error(ErrorCode.INCOMPLETE_BODY)
        chunks.append(chunk)
        remaining -= len(chunk)

    if reader.read():
        raise S3Error(ErrorCode.INCOMPLETE_BODY)
    return b"".join(chunks)


def _is_ip_address(name: str) -> bool:
    try:
        ipaddress.ip_address(name)
    except ValueError:
        return False
    return True


def validate_bucket_name(name: str) -> None:
    """Check a bucket name against the S3 naming rules, raising on failure."""
    if not 3 <= len(name.encode("utf-8")) <= 63:
        raise error_message(
            ErrorCode.INVALID_BUCKET_NAME, "bucket name must be >= 3 characters and <= 63"
        )
    if not _BUCKET_NAME_PATTERN.fullmatch(name):
        raise error_message(
            ErrorCode.INVALID_BUCKET_NAME,
            "bucket must start and end with 'a-z, 0-9', and contain only 'a-z, 0-9, -' in between",
        )
    if _is_ip_address(name):
        raise error_message(
            ErrorCode.INVALID_BUCKET_NAME, "bucket names must not be formatted as an IP address"
        )
    if not all(_BUCKET_NAME_PATTERN.fullmatch(label) for label in name.split(".")):
        raise error_message(
            ErrorCode.INVALID_BUCKET_NAME,
            "label must start and end with 'a-z, 0-9', and contain only 'a-z, 0-9, -' in between",
        )


def valid_etag(value: str) -> bool:
    """Report whether ``value`` is a quoted lowercase hex-like ETag."""
    return _ETAG_PATTERN.fullmatch(value) is not None


def url_encode(value: str) -> str:
    """Query-escape ``value`` the S3 way: keep '/' and '*', always escape '~'."""
    out = []
    for byte in value.encode("utf-8"):
        if byte == 0x20:
            out.append("+")
        elif byte in _UNESCAPED:
            out.append(chr(byte))
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)