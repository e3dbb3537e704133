"""Generation of lexicographically sortable object version IDs."""

from __future__ import annotations

import base64
import threading

_MASK64 = (1 << 64) - 1
_GOLDEN_GAMMA = 0x9E3779B97F4A7C15
_MIX1 = 0xBF58476D1CE4E5B9
_MIX2 = 0x94D049BB133111EB

# Every ID carries a single 8-byte random word after the counter.
_RANDOM_WORDS = 1


class VersionGenerator:
    """Produces version IDs that sort in the order they were generated.

    Each ID is a zero-padded decimal counter followed by pseudo-random bytes
    from a splitmix64-style sequence seeded with ``seed``. The whole block is
    encoded as base32hex, which keeps the IDs sortable, and prefixed with
    "3/" like the IDs S3 hands out. ``size`` is accepted but IDs always carry
    one 8-byte random word.
    """

    def __init__(self, seed: int, size: int = 0) -> None:
        self._state = seed & _MASK64
        self._counter = 0
        self._lock = threading.Lock()

    def _random_word(self) -> bytes:
        self._state = (self._state + _GOLDEN_GAMMA) & _MASK64
        z = self._state
        z = ((z ^ (z >> 30)) * _MIX1) & _MASK64
        z = ((z ^ (z >> 27)) * _MIX2) & _MASK64
        return z.to_bytes(8, "little")

    def next(self) -> str:
        """Return the next version ID."""
        with self._lock:
            self._counter += 1
            counter = f"{self._counter:030d}".encode("ascii")
            random_block = b"".join(self._random_word() for _ in range(_RANDOM_WORDS))
        raw = counter + b"\x00" + random_block
        return "3/" + base64.b32hexencode(raw).decode("ascii")