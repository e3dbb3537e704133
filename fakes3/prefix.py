"""Prefix and delimiter matching for bucket listings."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class CommonPrefix:
    """A rolled-up pseudo-directory in a listing."""

    prefix: str


@dataclass(frozen=True)
class PrefixMatch:
    """The result of matching a key against a :class:`Prefix`."""

    key: str
    # Whether the key belongs to the common prefixes rather than the contents.
    common_prefix: bool = False
    # The longest matched part of the key.
    matched_part: str = ""

    def as_common_prefix(self) -> CommonPrefix:
        return CommonPrefix(prefix=self.matched_part)


def _first(value: Sequence[str] | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value[0] if value else ""


def _split(value: str, sep: str) -> list[str]:
    if sep:
        return value.split(sep)
    return list(value)


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


@dataclass(frozen=True)
class Prefix:
    """An optional prefix and optional delimiter used to filter keys."""

    has_prefix: bool = False
    prefix: str = ""
    has_delimiter: bool = False
    delimiter: str = ""

    @classmethod
    def from_query(cls, query: Mapping[str, Sequence[str] | str]) -> Prefix:
        """Build a prefix from the ``prefix`` and ``delimiter`` query parameters."""
        return cls(
            has_prefix="prefix" in query,
            prefix=_first(query.get("prefix")),
            has_delimiter="delimiter" in query,
            delimiter=_first(query.get("delimiter")),
        )

    def file_prefix(self) -> tuple[str, str] | None:
        """Split the prefix into its path and remaining parts.

        Only applies when the delimiter is "/"; otherwise returns None.
        """
        if not self.has_prefix or not self.has_delimiter or self.delimiter != "/":
            return None
        path, sep, remaining = self.prefix.rpartition("/")
        if not sep:
            return "", self.prefix
        return path, remaining

    def match(self, key: str) -> PrefixMatch | None:
        """Match ``key`` against this prefix, returning None when it does not match."""
        if not self.has_prefix and not self.has_delimiter:
            return PrefixMatch(key=key, matched_part=key)

        if not self.has_delimiter:
            if key.startswith(self.prefix):
                return PrefixMatch(key=key, matched_part=self.prefix)
            return None

        delim = self.delimiter
        key_parts = _split(key.lstrip(delim), delim)
        pre_parts = _split(self.prefix.lstrip(delim), delim)

        if len(key_parts) < len(pre_parts) or not pre_parts:
            return None

        # A key that goes on past the prefix's last segment gets the delimiter
        # appended, as AWS does for pseudo-directories.
        append_delim = len(key_parts) != len(pre_parts)

        *leading, last = pre_parts
        if key_parts[: len(leading)] != leading:
            return None
        if not key_parts[len(leading)].startswith(last):
            return None

        out = delim.join(key_parts[: len(pre_parts)])
        if append_delim:
            out += delim
        return PrefixMatch(key=key, common_prefix=out != key, matched_part=out)

    def __str__(self) -> str:
        if self.has_delimiter:
            return f"prefix:{_quote(self.prefix)}, delim:{_quote(self.delimiter)}"
        return f"prefix:{_quote(self.prefix)}"


def new_prefix(prefix: str | None, delim: str | None) -> Prefix:
    """Build a prefix; None means the part is absent."""
    return Prefix(
        has_prefix=prefix is not None,
        prefix=prefix or "",
        has_delimiter=delim is not None,
        delimiter=delim or "",
    )


def new_folder_prefix(prefix: str) -> Prefix:
    """Build a prefix delimited by "/"."""
    return Prefix(has_prefix=True, prefix=prefix, has_delimiter=True, delimiter="/")