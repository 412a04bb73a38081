"""
savesync content digests.

A Digest is the 32-byte SHA-256 fingerprint of a directory tree. It is
persisted as 64 lowercase hex characters in each target's lastsync file.
"""

from __future__ import annotations

import binascii
from dataclasses import dataclass

from savesync.core.errors import BadDigestError

DIGEST_SIZE = 32


@dataclass(frozen=True)
class Digest:
    """Immutable fixed-width content identifier."""

    value: bytes = bytes(DIGEST_SIZE)

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bytes, bytearray)):
            raise TypeError(f"Digest value must be bytes, not {type(self.value).__name__}")
        if len(self.value) != DIGEST_SIZE:
            raise BadDigestError(f"incorrect hash size (should be '{DIGEST_SIZE}')")
        object.__setattr__(self, "value", bytes(self.value))

    @classmethod
    def from_bytes(cls, data: bytes) -> Digest:
        return cls(bytes(data))

    @classmethod
    def from_hex(cls, text: str) -> Digest:
        """Parse the canonical hex form; surrounding whitespace is ignored."""
        text = text.strip()
        try:
            data = binascii.unhexlify(text)
        except (binascii.Error, ValueError) as exc:
            raise BadDigestError(f"invalid digest text: {exc}") from exc
        return cls(data)

    @classmethod
    def zero(cls) -> Digest:
        """Digest used when no sync has been recorded yet."""
        return cls()

    @property
    def is_zero(self) -> bool:
        return not any(self.value)

    def hex(self) -> str:
        return self.value.hex()

    def short(self, length: int = 16) -> str:
        return self.hex()[:length]

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"Digest({self.short()}...)"
