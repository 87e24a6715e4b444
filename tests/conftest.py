"""Shared test fixtures."""

import os
from pathlib import Path
from typing import Optional

import pytest

from lsprobe.discovery.models import CandidateProcess, MemoryRegion
from lsprobe.errors import ProcessAccessDenied, RegionReadFailure
from lsprobe.memory.base import ProcessMemory

ANCHOR = "x-codeium-csrf-token"
TOKEN = "3f2b8c1e-9a4d-4e7f-b6c2-1d0e5a7f9b34"
OTHER_TOKEN = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"


class FakeProcessMemory(ProcessMemory):
    """In-memory stand-in for a target process.

    ``layout`` maps region start address -> (bytes, permissions).
    """

    def __init__(
        self,
        pid: int,
        layout: dict[int, tuple[bytes, str]],
        fail_at: Optional[set[int]] = None,
        deny: bool = False,
        max_read: Optional[int] = None,
    ):
        super().__init__(pid)
        self.layout = layout
        self.fail_at = fail_at or set()
        self.deny = deny
        self.max_read = max_read
        self.reads: list[tuple[int, int]] = []
        self.opened = False
        self.closed = False

    def open(self) -> None:
        if self.deny:
            raise ProcessAccessDenied(self.pid, "denied by test")
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def regions(self) -> list[MemoryRegion]:
        return [
            MemoryRegion(start=start, end=start + len(data), permissions=perms)
            for start, (data, perms) in self.layout.items()
        ]

    def read(self, address: int, size: int) -> bytes:
        self.reads.append((address, size))
        if address in self.fail_at:
            raise RegionReadFailure(address, size, "fault injected")
        for start, (data, _perms) in self.layout.items():
            if start <= address < start + len(data):
                offset = address - start
                if self.max_read is not None:
                    size = min(size, self.max_read)
                return data[offset:offset + size]
        raise RegionReadFailure(address, size, "unmapped")


def token_blob(token: str = TOKEN, prefix: bytes = b"", encoding: str = "utf-8") -> bytes:
    """Bytes resembling a request header entry holding the CSRF token."""
    return prefix + f'{ANCHOR}":"{token}"'.encode(encoding)


@pytest.fixture
def fake_memory_factory():
    """Build a memory_factory returning prepared FakeProcessMemory objects by pid."""
    created: dict[int, FakeProcessMemory] = {}

    def _make(memories: dict[int, FakeProcessMemory]):
        def factory(pid: int) -> ProcessMemory:
            created[pid] = memories[pid]
            return memories[pid]
        factory.created = created
        return factory

    return _make


@pytest.fixture
def candidates():
    return [
        CandidateProcess(pid=300, name="language_server_windsurf"),
        CandidateProcess(pid=200, name="Antigravity.exe"),
    ]


@pytest.fixture
def log_tree(tmp_path):
    """Create log files under tmp_path: ``make(relpath, text, mtime=None)``."""

    def make(relpath: str, text: str = "", mtime: Optional[float] = None) -> Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return make


SAMPLE_LOG = """\
2025-11-20 09:14:02.101 [info] Starting language server process with pid 41250
2025-11-20 09:14:02.512 [info] (Antigravity) Language server listening on random port at 41871 for HTTPS
2025-11-20 09:14:02.513 [info] (Antigravity) Language server listening on random port at 41872 for HTTP
2025-11-20 09:14:02.640 [info] (Antigravity) Created extension server client at port 41901
"""
