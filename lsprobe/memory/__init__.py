"""Process memory backends, one per operating system."""

import sys

from .base import ProcessMemory


def open_process_memory(pid: int) -> ProcessMemory:
    """Return the memory backend for ``pid`` on the running OS (not yet opened)."""
    if sys.platform == "win32":
        from .windows import WindowsProcessMemory
        return WindowsProcessMemory(pid)
    if sys.platform == "darwin":
        from .macos import MacProcessMemory
        return MacProcessMemory(pid)
    # Best-effort on other Unix-like systems: /proc layout
    from .linux import LinuxProcessMemory
    return LinuxProcessMemory(pid)


__all__ = ["ProcessMemory", "open_process_memory"]
