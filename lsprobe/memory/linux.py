"""Linux process memory access via /proc/<pid>/maps and process_vm_readv."""

import ctypes
import ctypes.util
import os
from typing import Optional

from ..discovery.models import MemoryRegion
from ..errors import ProcessAccessDenied, RegionReadFailure
from ..utils.logging import get_logger
from .base import ProcessMemory

logger = get_logger("memory.linux")


class IOVEC(ctypes.Structure):
    """struct iovec from <sys/uio.h>."""
    _fields_ = [
        ("iov_base", ctypes.c_void_p),
        ("iov_len", ctypes.c_size_t),
    ]


_libc = None


def _load_libc():
    global _libc
    if _libc is None:
        _libc = ctypes.CDLL(ctypes.util.find_library("c") or "libc.so.6", use_errno=True)
        _libc.process_vm_readv.argtypes = [
            ctypes.c_int,
            ctypes.POINTER(IOVEC),
            ctypes.c_ulong,
            ctypes.POINTER(IOVEC),
            ctypes.c_ulong,
            ctypes.c_ulong,
        ]
        _libc.process_vm_readv.restype = ctypes.c_ssize_t
    return _libc


def parse_maps_line(line: str) -> Optional[MemoryRegion]:
    """Parse one ``/proc/<pid>/maps`` line, e.g. ``7f00-7f80 rw-p 0 08:01 42 /lib/x.so``."""
    parts = line.split()
    if len(parts) < 2:
        return None
    bounds, perms = parts[0], parts[1]
    start_s, sep, end_s = bounds.partition("-")
    if not sep:
        return None
    try:
        start = int(start_s, 16)
        end = int(end_s, 16)
    except ValueError:
        return None
    return MemoryRegion(start=start, end=end, permissions=perms)


def parse_maps(text: str) -> list[MemoryRegion]:
    """Readable, non-empty regions from a maps listing, in listing order."""
    regions = []
    for line in text.splitlines():
        region = parse_maps_line(line)
        if region is not None and region.scannable:
            regions.append(region)
    return regions


def process_vm_readv(pid: int, address: int, size: int) -> bytes:
    """Copy ``size`` bytes at ``address`` out of ``pid`` in one syscall.

    Returns the bytes actually copied, which may be fewer than requested
    when the range crosses into an unmapped page.
    """
    libc = _load_libc()
    buf = ctypes.create_string_buffer(size)
    local = IOVEC(ctypes.cast(buf, ctypes.c_void_p), size)
    remote = IOVEC(ctypes.c_void_p(address), size)
    nread = libc.process_vm_readv(pid, ctypes.byref(local), 1, ctypes.byref(remote), 1, 0)
    if nread < 0:
        err = ctypes.get_errno()
        raise RegionReadFailure(address, size, os.strerror(err))
    if nread == 0:
        raise RegionReadFailure(address, size, "no bytes copied")
    return buf.raw[:nread]


class LinuxProcessMemory(ProcessMemory):
    """Reads another process's memory without ptrace-attaching to it."""

    def __init__(self, pid: int, proc_root: str = "/proc"):
        super().__init__(pid)
        self._maps_path = os.path.join(proc_root, str(pid), "maps")

    def regions(self) -> list[MemoryRegion]:
        try:
            with open(self._maps_path, "r", errors="replace") as fh:
                text = fh.read()
        except OSError as e:
            raise ProcessAccessDenied(self.pid, f"cannot read {self._maps_path}: {e.strerror or e}")
        return parse_maps(text)

    def read(self, address: int, size: int) -> bytes:
        return process_vm_readv(self.pid, address, size)
