"""macOS process memory access via Mach task ports.

ctypes wrappers for task_for_pid, mach_vm_region and mach_vm_read_overwrite.
task_for_pid needs root or the com.apple.security.cs.debugger entitlement;
without it the process is reported as access denied.
"""

import ctypes
import ctypes.util
from typing import Optional

from ..discovery.models import MemoryRegion
from ..errors import ProcessAccessDenied, RegionReadFailure
from ..utils.logging import get_logger
from .base import ProcessMemory

logger = get_logger("memory.macos")

KERN_SUCCESS = 0
KERN_INVALID_ADDRESS = 1

VM_PROT_READ = 0x01
VM_PROT_WRITE = 0x02
VM_PROT_EXECUTE = 0x04

VM_REGION_BASIC_INFO_64 = 9

mach_port_t = ctypes.c_uint
kern_return_t = ctypes.c_int
mach_vm_address_t = ctypes.c_uint64
mach_vm_size_t = ctypes.c_uint64
mach_msg_type_number_t = ctypes.c_uint


class VM_REGION_BASIC_INFO_64_T(ctypes.Structure):
    """vm_region_basic_info_data_64_t from <mach/vm_region.h>."""
    _pack_ = 4
    _layout_ = "ms"
    _fields_ = [
        ("protection", ctypes.c_int),
        ("max_protection", ctypes.c_int),
        ("inheritance", ctypes.c_uint),
        ("shared", ctypes.c_uint),
        ("reserved", ctypes.c_uint),
        ("offset", ctypes.c_uint64),
        ("behavior", ctypes.c_int),
        ("user_wired_count", ctypes.c_ushort),
    ]


VM_REGION_BASIC_INFO_COUNT_64 = ctypes.sizeof(VM_REGION_BASIC_INFO_64_T) // ctypes.sizeof(ctypes.c_int)

_libsystem = None


def _load_libsystem():
    global _libsystem
    if _libsystem is None:
        lib = ctypes.CDLL(ctypes.util.find_library("System") or "/usr/lib/libSystem.B.dylib")
        lib.task_for_pid.argtypes = [mach_port_t, ctypes.c_int, ctypes.POINTER(mach_port_t)]
        lib.task_for_pid.restype = kern_return_t
        lib.mach_vm_region.argtypes = [
            mach_port_t,
            ctypes.POINTER(mach_vm_address_t),
            ctypes.POINTER(mach_vm_size_t),
            ctypes.c_int,
            ctypes.POINTER(VM_REGION_BASIC_INFO_64_T),
            ctypes.POINTER(mach_msg_type_number_t),
            ctypes.POINTER(mach_port_t),
        ]
        lib.mach_vm_region.restype = kern_return_t
        lib.mach_vm_read_overwrite.argtypes = [
            mach_port_t,
            mach_vm_address_t,
            mach_vm_size_t,
            mach_vm_address_t,
            ctypes.POINTER(mach_vm_size_t),
        ]
        lib.mach_vm_read_overwrite.restype = kern_return_t
        lib.mach_port_deallocate.argtypes = [mach_port_t, mach_port_t]
        lib.mach_port_deallocate.restype = kern_return_t
        _libsystem = lib
    return _libsystem


def _task_self() -> int:
    # mach_task_self() is a macro over this global
    return mach_port_t.in_dll(_load_libsystem(), "mach_task_self_").value


def protection_string(protection: int) -> str:
    return (
        ("r" if protection & VM_PROT_READ else "-")
        + ("w" if protection & VM_PROT_WRITE else "-")
        + ("x" if protection & VM_PROT_EXECUTE else "-")
    )


def task_for_pid(pid: int) -> Optional[int]:
    """Return the task port for ``pid`` or None when refused."""
    lib = _load_libsystem()
    task = mach_port_t(0)
    kr = lib.task_for_pid(_task_self(), pid, ctypes.byref(task))
    if kr != KERN_SUCCESS:
        logger.debug("task_for_pid_failed", pid=pid, kern_return=kr)
        return None
    return task.value


def deallocate_port(port: int) -> None:
    if port:
        _load_libsystem().mach_port_deallocate(_task_self(), port)


def mach_vm_regions(task: int) -> list[MemoryRegion]:
    """Walk the task's address space with mach_vm_region, lowest address first."""
    lib = _load_libsystem()
    regions = []
    address = mach_vm_address_t(0)

    while True:
        size = mach_vm_size_t(0)
        info = VM_REGION_BASIC_INFO_64_T()
        count = mach_msg_type_number_t(VM_REGION_BASIC_INFO_COUNT_64)
        object_name = mach_port_t(0)
        kr = lib.mach_vm_region(
            task,
            ctypes.byref(address),
            ctypes.byref(size),
            VM_REGION_BASIC_INFO_64,
            ctypes.byref(info),
            ctypes.byref(count),
            ctypes.byref(object_name),
        )
        if kr != KERN_SUCCESS:
            # KERN_INVALID_ADDRESS marks the end of the address space
            if kr != KERN_INVALID_ADDRESS:
                logger.debug("mach_vm_region_failed", kern_return=kr, address=hex(address.value))
            break

        regions.append(MemoryRegion(
            start=address.value,
            end=address.value + size.value,
            permissions=protection_string(info.protection),
        ))
        next_addr = address.value + size.value
        if next_addr <= address.value:
            break
        address = mach_vm_address_t(next_addr)

    return regions


def mach_vm_read(task: int, address: int, size: int) -> bytes:
    lib = _load_libsystem()
    buf = ctypes.create_string_buffer(size)
    out_size = mach_vm_size_t(0)
    kr = lib.mach_vm_read_overwrite(
        task,
        address,
        size,
        ctypes.addressof(buf),
        ctypes.byref(out_size),
    )
    if kr != KERN_SUCCESS or out_size.value == 0:
        raise RegionReadFailure(address, size, f"mach_vm_read_overwrite returned {kr}")
    return buf.raw[:out_size.value]


class MacProcessMemory(ProcessMemory):
    """macOS backend: one task port for the duration of a scan."""

    def __init__(self, pid: int):
        super().__init__(pid)
        self._task: Optional[int] = None

    def open(self) -> None:
        self._task = task_for_pid(self.pid)
        if not self._task:
            raise ProcessAccessDenied(self.pid, "task_for_pid refused")

    def close(self) -> None:
        if self._task:
            deallocate_port(self._task)
            self._task = None

    def regions(self) -> list[MemoryRegion]:
        if not self._task:
            raise ProcessAccessDenied(self.pid, "process not opened")
        return [r for r in mach_vm_regions(self._task) if r.scannable]

    def read(self, address: int, size: int) -> bytes:
        return mach_vm_read(self._task, address, size)
