"""Per-OS process memory access, behind one small interface."""

from abc import ABC, abstractmethod

from ..discovery.models import MemoryRegion


class ProcessMemory(ABC):
    """Read-only view of another process's address space.

    Use as a context manager: ``open()`` acquires whatever the OS needs
    (handle, task port) and raises ``ProcessAccessDenied`` when refused;
    ``close()`` releases it.
    """

    def __init__(self, pid: int):
        self.pid = pid

    def open(self) -> None:
        """Acquire access to the process. No-op where the OS needs no handle."""

    def close(self) -> None:
        """Release access to the process."""

    def __enter__(self) -> "ProcessMemory":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def regions(self) -> list[MemoryRegion]:
        """Mapped regions in listing order. Raises ProcessAccessDenied."""
        ...

    @abstractmethod
    def read(self, address: int, size: int) -> bytes:
        """Read up to ``size`` bytes at ``address``. Raises RegionReadFailure."""
        ...
