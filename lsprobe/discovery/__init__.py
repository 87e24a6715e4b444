"""Discovery of the running language server's port and CSRF token.

The orchestrator lives in ``lsprobe.discovery.orchestrator``; it depends on
``lsprobe.config``, which itself builds on the value types exported here.
"""

from .models import (
    AnchorPattern,
    CandidateProcess,
    DiscoveredSecret,
    DiscoveryResult,
    LanguageServerPorts,
    MemoryRegion,
    ScanBudget,
)

__all__ = [
    "AnchorPattern",
    "CandidateProcess",
    "DiscoveredSecret",
    "DiscoveryResult",
    "LanguageServerPorts",
    "MemoryRegion",
    "ScanBudget",
]
