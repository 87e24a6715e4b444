"""Value types shared by the discovery pipeline.

Everything here is created fresh for one discovery call and thrown away
afterwards; none of it is cached between calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_CHUNK_SIZE = 512 * 1024
DEFAULT_MAX_REGION_BYTES = 64 * 1024 * 1024
DEFAULT_LOOKAHEAD = 200


@dataclass(frozen=True)
class MemoryRegion:
    """One contiguous mapping in a target process."""

    start: int
    end: int
    permissions: str = "r"

    @property
    def readable(self) -> bool:
        return "r" in self.permissions

    @property
    def size(self) -> int:
        return max(0, self.end - self.start)

    @property
    def scannable(self) -> bool:
        return self.readable and self.end > self.start


@dataclass(frozen=True)
class AnchorPattern:
    """A marker string in the two encodings memory is searched for."""

    utf8_bytes: bytes
    utf16le_bytes: bytes

    @classmethod
    def from_marker(cls, marker: str) -> "AnchorPattern":
        if not marker:
            raise ValueError("anchor marker must not be empty")
        return cls(
            utf8_bytes=marker.encode("utf-8"),
            utf16le_bytes=marker.encode("utf-16-le"),
        )

    @property
    def encodings(self) -> tuple[bytes, bytes]:
        return (self.utf8_bytes, self.utf16le_bytes)

    @property
    def max_length(self) -> int:
        return max(len(self.utf8_bytes), len(self.utf16le_bytes))


@dataclass(frozen=True)
class ScanBudget:
    """Chunking limits for one memory scan.

    ``overlap`` bytes are re-read at the start of each following chunk so an
    anchor plus its lookahead window split across a boundary is still seen
    whole by at least one chunk.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    overlap: int = 0
    max_region_bytes: int = DEFAULT_MAX_REGION_BYTES

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.overlap < 0:
            raise ValueError("overlap must not be negative")
        if self.max_region_bytes <= 0:
            raise ValueError("max_region_bytes must be positive")

    @classmethod
    def for_anchor(
        cls,
        anchor: AnchorPattern,
        lookahead: int = DEFAULT_LOOKAHEAD,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_region_bytes: int = DEFAULT_MAX_REGION_BYTES,
    ) -> "ScanBudget":
        return cls(
            chunk_size=chunk_size,
            overlap=anchor.max_length + lookahead,
            max_region_bytes=max_region_bytes,
        )

    def covers(self, anchor: AnchorPattern, lookahead: int) -> bool:
        return self.overlap >= anchor.max_length + lookahead


@dataclass(frozen=True, order=True)
class CandidateProcess:
    """A running process whose image name matches a target."""

    pid: int
    name: str = field(compare=False)


@dataclass(frozen=True)
class DiscoveredSecret:
    """The session token lifted from process memory. Never persisted."""

    value: str = field(repr=False)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LanguageServerPorts:
    """Ports announced in the language server log, one per announcement kind."""

    https: Optional[int] = None
    http: Optional[int] = None
    extension: Optional[int] = None

    def get(self, kind: str) -> Optional[int]:
        return {"https": self.https, "http": self.http, "extension": self.extension}.get(kind)

    def to_dict(self) -> dict:
        return {"https": self.https, "http": self.http, "extension": self.extension}


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of one successful discovery call."""

    port: int
    token: DiscoveredSecret
    log_path: Path
    pid: int
