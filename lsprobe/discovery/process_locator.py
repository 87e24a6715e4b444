"""Find running IDE / language server processes."""

from typing import Iterable

import psutil

from ..utils.logging import get_logger
from .models import CandidateProcess

logger = get_logger("discovery.process_locator")

DEFAULT_TARGETS = ("antigravity", "windsurf")


def normalize_process_name(name: str) -> str:
    """Lower-case the image name and drop any trailing ``.exe``."""
    normalized = name.strip().lower()
    while normalized.endswith(".exe"):
        normalized = normalized[: -len(".exe")]
    return normalized


def is_target_process(name: str, targets: Iterable[str] = DEFAULT_TARGETS) -> bool:
    normalized = normalize_process_name(name)
    return any(target.lower() in normalized for target in targets)


def find_candidate_processes(targets: Iterable[str] = DEFAULT_TARGETS) -> list[CandidateProcess]:
    """Matching processes, newest PID first.

    Higher PIDs are usually the most recently started renderer or language
    server child, which is the one holding the current token.
    """
    targets = tuple(targets)
    candidates = []
    for proc in psutil.process_iter(["pid", "name"]):
        try:
            info = proc.info
            name = info.get("name") or ""
            if name and is_target_process(name, targets):
                candidates.append(CandidateProcess(pid=info["pid"], name=name))
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue

    candidates.sort(key=lambda c: c.pid, reverse=True)
    logger.debug("candidate_processes", count=len(candidates), pids=[c.pid for c in candidates])
    return candidates
