"""Tests for the chunked memory scan loop."""

import pytest

from conftest import ANCHOR, TOKEN, FakeProcessMemory, token_blob

from lsprobe.discovery.models import AnchorPattern, MemoryRegion, ScanBudget
from lsprobe.discovery.scanner import iter_chunks, iter_region_chunks, scan_process
from lsprobe.errors import ProcessAccessDenied

LOOKAHEAD = 80


@pytest.fixture
def anchor():
    return AnchorPattern.from_marker(ANCHOR)


@pytest.fixture
def budget(anchor):
    # overlap = 40 (UTF-16 anchor) + 80 = 120
    return ScanBudget.for_anchor(anchor, lookahead=LOOKAHEAD, chunk_size=160, max_region_bytes=1 << 20)


def _scan(memory, anchor, budget):
    return scan_process(memory.pid, anchor, budget, lookahead=LOOKAHEAD, memory_factory=lambda pid: memory)


class TestScanBudget:
    def test_for_anchor_overlap(self, anchor, budget):
        assert budget.overlap == 120
        assert budget.covers(anchor, LOOKAHEAD)

    def test_insufficient_overlap_rejected(self, anchor):
        """A budget whose overlap cannot hold anchor plus lookahead is refused."""
        memory = FakeProcessMemory(1, {0x1000: (token_blob(), "r--p")})
        with pytest.raises(ValueError):
            _scan(memory, anchor, ScanBudget(chunk_size=160, overlap=10))

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            ScanBudget(chunk_size=0)
        with pytest.raises(ValueError):
            ScanBudget(overlap=-1)


class TestScanProcess:
    def test_anchor_split_across_chunk_boundary(self, anchor, budget):
        """An anchor straddling two chunks is still found."""
        data = b"\x00" * 150 + token_blob() + b"\x00" * 200
        # The anchor occupies bytes 150..170, across the first 160-byte chunk
        assert 150 < budget.chunk_size < 170
        memory = FakeProcessMemory(7, {0x1000: (data, "rw-p")})
        assert _scan(memory, anchor, budget) == TOKEN

    def test_utf16_token(self, anchor, budget):
        data = b"\x00" * 301 + token_blob(encoding="utf-16-le", prefix="\x00".encode("utf-16-le")) + b"\x00" * 64
        memory = FakeProcessMemory(7, {0x2000: (data, "r--p")})
        assert _scan(memory, anchor, budget) == TOKEN

    def test_read_failure_skips_ahead(self, anchor, budget):
        """A failed read moves on by chunk minus overlap and keeps scanning."""
        memory = FakeProcessMemory(
            7,
            {
                0x1000: (b"\x00" * 1000, "rw-p"),
                0x9000: (token_blob(prefix=b"\x00" * 10), "rw-p"),
            },
            fail_at={0x1000},
        )
        assert _scan(memory, anchor, budget) == TOKEN
        assert memory.reads[0] == (0x1000, 160)
        assert memory.reads[1][0] == 0x1000 + 40

    def test_region_cap_respected(self, anchor):
        """No read goes past max_region_bytes from the region start."""
        budget = ScanBudget.for_anchor(anchor, lookahead=LOOKAHEAD, chunk_size=160, max_region_bytes=512)
        data = b"\x00" * 1500 + token_blob() + b"\x00" * 100
        memory = FakeProcessMemory(7, {0x1000: (data, "rw-p")})
        assert _scan(memory, anchor, budget) is None
        assert all(addr + size <= 0x1000 + 512 for addr, size in memory.reads)

    def test_never_reads_past_region_end(self, anchor, budget):
        memory = FakeProcessMemory(7, {0x1000: (b"\x00" * 300, "rw-p"), 0x5000: (b"\x00" * 77, "rw-p")})
        assert _scan(memory, anchor, budget) is None
        for addr, size in memory.reads:
            if addr < 0x5000:
                assert addr + size <= 0x1000 + 300
            else:
                assert addr + size <= 0x5000 + 77

    def test_unreadable_region_skipped(self, anchor, budget):
        memory = FakeProcessMemory(7, {0x1000: (token_blob(), "---p")})
        assert _scan(memory, anchor, budget) is None
        assert memory.reads == []

    def test_short_reads_still_progress(self, anchor, budget):
        """A backend returning fewer bytes than asked never stalls the cursor."""
        memory = FakeProcessMemory(7, {0x1000: (b"\x00" * 300, "rw-p")}, max_read=10)
        assert _scan(memory, anchor, budget) is None
        addresses = [addr for addr, _ in memory.reads]
        assert addresses == sorted(set(addresses))
        assert addresses[-1] < 0x1000 + 300

    def test_access_denied_propagates(self, anchor, budget):
        memory = FakeProcessMemory(7, {}, deny=True)
        with pytest.raises(ProcessAccessDenied):
            _scan(memory, anchor, budget)

    def test_memory_closed_after_hit(self, anchor, budget):
        """The backend is released even on early exit."""
        memory = FakeProcessMemory(7, {0x1000: (token_blob(), "rw-p")})
        assert _scan(memory, anchor, budget) == TOKEN
        assert memory.opened and memory.closed

    def test_stops_at_first_hit(self, anchor, budget):
        memory = FakeProcessMemory(
            7,
            {0x1000: (token_blob(), "rw-p"), 0x8000: (b"\x00" * 4096, "rw-p")},
        )
        _scan(memory, anchor, budget)
        assert all(addr < 0x8000 for addr, _ in memory.reads)

    def test_deterministic(self, anchor, budget):
        layout = {
            0x1000: (b"\x00" * 500 + token_blob(token="11111111-2222-3333-4444-555555555555"), "rw-p"),
            0x9000: (token_blob(), "rw-p"),
        }
        first = _scan(FakeProcessMemory(7, layout), anchor, budget)
        second = _scan(FakeProcessMemory(7, layout), anchor, budget)
        assert first == second == "11111111-2222-3333-4444-555555555555"


class TestChunkIteration:
    def test_chunks_cover_region_in_ascending_order(self, budget):
        memory = FakeProcessMemory(7, {0x1000: (bytes(range(256)) * 4, "rw-p")})
        region = MemoryRegion(0x1000, 0x1000 + 1024, "rw-p")
        chunks = list(iter_region_chunks(memory, region, budget))
        starts = [addr for addr, _ in memory.reads]
        assert starts == sorted(starts)
        covered = set()
        for addr, size in memory.reads:
            covered.update(range(addr, addr + size))
        assert covered == set(range(0x1000, 0x1000 + 1024))
        assert all(len(c) <= budget.chunk_size for c in chunks)

    def test_consecutive_chunks_overlap(self, budget):
        """Each chunk starts overlap bytes before the previous one ends."""
        memory = FakeProcessMemory(7, {0x1000: (b"\x00" * 1024, "rw-p")})
        list(iter_region_chunks(memory, MemoryRegion(0x1000, 0x1000 + 1024, "rw-p"), budget))
        for (a1, s1), (a2, _) in zip(memory.reads, memory.reads[1:]):
            assert a1 + s1 - a2 == budget.overlap

    def test_regions_in_listing_order(self, budget):
        memory = FakeProcessMemory(7, {0x9000: (b"b" * 10, "r--p"), 0x1000: (b"a" * 10, "r--p")})
        assert list(iter_chunks(memory, budget)) == [b"b" * 10, b"a" * 10]
