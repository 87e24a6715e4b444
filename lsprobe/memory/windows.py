"""Win32 process memory access.

ctypes wrappers for OpenProcess, VirtualQueryEx and ReadProcessMemory.
"""

import ctypes
import ctypes.wintypes
from typing import Optional

from ..discovery.models import MemoryRegion
from ..errors import ProcessAccessDenied, RegionReadFailure
from ..utils.logging import get_logger
from .base import ProcessMemory

logger = get_logger("memory.windows")

# Constants
PROCESS_VM_READ = 0x0010
PROCESS_QUERY_INFORMATION = 0x0400

MEM_COMMIT = 0x1000

PAGE_NOACCESS = 0x01
PAGE_READONLY = 0x02
PAGE_READWRITE = 0x04
PAGE_WRITECOPY = 0x08
PAGE_EXECUTE_READ = 0x20
PAGE_EXECUTE_READWRITE = 0x40
PAGE_EXECUTE_WRITECOPY = 0x80
PAGE_GUARD = 0x100

READABLE_PROTECTIONS = (
    PAGE_READONLY,
    PAGE_READWRITE,
    PAGE_WRITECOPY,
    PAGE_EXECUTE_READ,
    PAGE_EXECUTE_READWRITE,
    PAGE_EXECUTE_WRITECOPY,
)

try:
    _kernel32 = ctypes.windll.kernel32
    _WINDOWS = True
except (AttributeError, OSError):
    _kernel32 = None
    _WINDOWS = False

if _WINDOWS:
    # 64-bit handles and addresses must not be truncated to int
    _kernel32.OpenProcess.restype = ctypes.wintypes.HANDLE
    _kernel32.OpenProcess.argtypes = [ctypes.wintypes.DWORD, ctypes.wintypes.BOOL, ctypes.wintypes.DWORD]
    _kernel32.VirtualQueryEx.restype = ctypes.c_size_t
    _kernel32.VirtualQueryEx.argtypes = [
        ctypes.wintypes.HANDLE, ctypes.c_void_p, ctypes.c_void_p, ctypes.c_size_t,
    ]
    _kernel32.ReadProcessMemory.restype = ctypes.wintypes.BOOL
    _kernel32.ReadProcessMemory.argtypes = [
        ctypes.wintypes.HANDLE, ctypes.c_void_p, ctypes.c_void_p, ctypes.c_size_t,
        ctypes.POINTER(ctypes.c_size_t),
    ]
    _kernel32.CloseHandle.argtypes = [ctypes.wintypes.HANDLE]


class MEMORY_BASIC_INFORMATION(ctypes.Structure):
    """Windows MEMORY_BASIC_INFORMATION structure."""
    _fields_ = [
        ("BaseAddress", ctypes.c_void_p),
        ("AllocationBase", ctypes.c_void_p),
        ("AllocationProtect", ctypes.wintypes.DWORD),
        ("RegionSize", ctypes.c_size_t),
        ("State", ctypes.wintypes.DWORD),
        ("Protect", ctypes.wintypes.DWORD),
        ("Type", ctypes.wintypes.DWORD),
    ]


def is_available() -> bool:
    """Check if Win32 memory APIs are available."""
    return _WINDOWS and _kernel32 is not None


def is_readable_protection(protect: int) -> bool:
    if protect & PAGE_GUARD or protect & PAGE_NOACCESS:
        return False
    return (protect & 0xFF) in READABLE_PROTECTIONS


def protection_string(protect: int) -> str:
    """Protection flags in /proc/<pid>/maps style, e.g. ``rw-``."""
    base = protect & 0xFF
    read = "r" if is_readable_protection(protect) else "-"
    write = "w" if base in (PAGE_READWRITE, PAGE_WRITECOPY, PAGE_EXECUTE_READWRITE, PAGE_EXECUTE_WRITECOPY) else "-"
    execute = "x" if base in (PAGE_EXECUTE_READ, PAGE_EXECUTE_READWRITE, PAGE_EXECUTE_WRITECOPY) else "-"
    return read + write + execute


def open_process(pid: int, access: int = PROCESS_VM_READ | PROCESS_QUERY_INFORMATION) -> Optional[int]:
    """Open a process handle. Returns handle or None."""
    if not _WINDOWS:
        return None
    handle = _kernel32.OpenProcess(access, False, pid)
    return handle if handle else None


def close_handle(handle: int) -> None:
    """Close a process handle."""
    if _WINDOWS and handle:
        _kernel32.CloseHandle(handle)


def virtual_query_ex(handle: int, address: int = 0) -> list[MemoryRegion]:
    """Enumerate committed memory regions of a process via VirtualQueryEx."""
    regions = []
    if not _WINDOWS:
        return regions

    mbi = MEMORY_BASIC_INFORMATION()
    current = address

    while True:
        result = _kernel32.VirtualQueryEx(
            handle,
            ctypes.c_void_p(current),
            ctypes.byref(mbi),
            ctypes.sizeof(mbi),
        )
        if result == 0:
            break

        base = mbi.BaseAddress or 0
        if mbi.State == MEM_COMMIT:
            regions.append(MemoryRegion(
                start=base,
                end=base + mbi.RegionSize,
                permissions=protection_string(mbi.Protect),
            ))

        # Advance to next region
        next_addr = base + mbi.RegionSize
        if next_addr <= current:
            break
        current = next_addr

    return regions


def read_process_memory(handle: int, address: int, size: int) -> Optional[bytes]:
    """Read process memory. Returns the bytes read or None."""
    if not _WINDOWS:
        return None

    buf = ctypes.create_string_buffer(size)
    bytes_read = ctypes.c_size_t(0)

    success = _kernel32.ReadProcessMemory(
        handle,
        ctypes.c_void_p(address),
        buf,
        size,
        ctypes.byref(bytes_read),
    )
    # A partial copy fails with ERROR_PARTIAL_COPY but still fills bytes_read
    if bytes_read.value > 0:
        return buf.raw[:bytes_read.value]
    if success:
        return None
    logger.debug("read_process_memory_failed", address=hex(address), error=ctypes.GetLastError())
    return None


class WindowsProcessMemory(ProcessMemory):
    """Windows backend: one process handle for the duration of a scan."""

    def __init__(self, pid: int):
        super().__init__(pid)
        self._handle: Optional[int] = None

    def open(self) -> None:
        if not is_available():
            raise ProcessAccessDenied(self.pid, "Win32 memory APIs unavailable")
        self._handle = open_process(self.pid)
        if not self._handle:
            raise ProcessAccessDenied(self.pid, f"OpenProcess failed ({ctypes.GetLastError()})")

    def close(self) -> None:
        if self._handle:
            close_handle(self._handle)
            self._handle = None

    def regions(self) -> list[MemoryRegion]:
        if not self._handle:
            raise ProcessAccessDenied(self.pid, "process not opened")
        return [r for r in virtual_query_ex(self._handle) if r.scannable]

    def read(self, address: int, size: int) -> bytes:
        data = read_process_memory(self._handle, address, size)
        if not data:
            raise RegionReadFailure(address, size, "ReadProcessMemory failed")
        return data
