"""Chunked, overlap-preserving scan of one process's readable memory.

The loop here is written once against ``ProcessMemory``; only region
enumeration and the raw read differ between operating systems.
"""

from typing import Callable, Iterator, Optional, Pattern

from ..errors import RegionReadFailure
from ..memory import ProcessMemory, open_process_memory
from ..utils.logging import get_logger
from .models import DEFAULT_LOOKAHEAD, AnchorPattern, MemoryRegion, ScanBudget
from .token_search import UUID_RE, search_token

logger = get_logger("discovery.scanner")


def iter_region_chunks(memory: ProcessMemory, region: MemoryRegion, budget: ScanBudget) -> Iterator[bytes]:
    """Yield successive chunks of ``region``, each overlapping the previous one.

    Reads never go past the region end or ``max_region_bytes`` from its
    start. A failed read skips ahead instead of abandoning the region.
    """
    cursor = region.start
    cap_end = region.start + min(region.size, budget.max_region_bytes)

    while cursor < cap_end:
        size = min(budget.chunk_size, cap_end - cursor)
        try:
            data = memory.read(cursor, size)
        except RegionReadFailure as e:
            logger.debug("chunk_read_failed", pid=memory.pid, address=hex(cursor), size=size, error=str(e))
            cursor += max(1, size - budget.overlap)
            continue

        data = data[:size]
        yield data

        if cursor + len(data) >= cap_end:
            # Everything up to the cap has been seen
            break
        cursor += max(1, len(data) - budget.overlap)


def iter_chunks(memory: ProcessMemory, budget: ScanBudget) -> Iterator[bytes]:
    """Chunks of every scannable region, regions in listing order."""
    for region in memory.regions():
        if not region.scannable:
            continue
        yield from iter_region_chunks(memory, region, budget)


def scan_process(
    pid: int,
    anchor: AnchorPattern,
    budget: ScanBudget,
    lookahead: int = DEFAULT_LOOKAHEAD,
    validator: Pattern[str] = UUID_RE,
    memory_factory: Callable[[int], ProcessMemory] = open_process_memory,
) -> Optional[str]:
    """Return the first token found in ``pid``'s memory, or None once exhausted.

    Raises ProcessAccessDenied when the OS refuses access to the process.
    """
    if not budget.covers(anchor, lookahead):
        raise ValueError(
            f"scan overlap {budget.overlap} is smaller than anchor length plus lookahead "
            f"({anchor.max_length + lookahead})"
        )

    chunks = 0
    with memory_factory(pid) as memory:
        for chunk in iter_chunks(memory, budget):
            chunks += 1
            token = search_token(chunk, anchor, validator=validator, lookahead=lookahead)
            if token:
                logger.debug("token_found_in_process", pid=pid, chunks_scanned=chunks)
                return token

    logger.debug("process_exhausted", pid=pid, chunks_scanned=chunks)
    return None
