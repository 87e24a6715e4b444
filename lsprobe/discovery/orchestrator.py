"""Language server discovery: log port plus in-memory CSRF token.

One ``discover()`` call is a single point-in-time lookup. Nothing is cached
between calls, and two concurrent calls each pay for a full scan.
"""

import asyncio
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config import ProbeConfig, get_config
from ..errors import (
    DiscoveryError,
    LogNotFound,
    NoCandidateProcess,
    PortNotFound,
    SecretNotFound,
)
from ..memory import ProcessMemory, open_process_memory
from ..utils.logging import get_logger, mask_secret
from .log_locator import candidate_log_roots, find_latest_log
from .models import CandidateProcess, DiscoveredSecret, DiscoveryResult, LanguageServerPorts
from .port_parser import parse_ports
from .process_locator import find_candidate_processes
from .scanner import scan_process

logger = get_logger("discovery.orchestrator")


class LanguageServerDiscovery:
    """Finds the language server's port and CSRF token.

    The collaborators (log roots, process enumeration, memory backend) can be
    swapped out; by default they are the live OS ones.
    """

    def __init__(
        self,
        config: ProbeConfig | None = None,
        log_roots: Optional[Iterable[Path]] = None,
        process_finder: Optional[Callable[[Iterable[str]], list[CandidateProcess]]] = None,
        memory_factory: Callable[[int], ProcessMemory] = open_process_memory,
    ):
        self.config = config or get_config()
        self._log_roots = list(log_roots) if log_roots is not None else None
        self._process_finder = process_finder or find_candidate_processes
        self._memory_factory = memory_factory

    # ------------------------------------------------------------------ ports

    def locate_log(self) -> Path:
        roots = self._log_roots
        if roots is None:
            roots = candidate_log_roots(self.config.app_dir_name)
        path = find_latest_log(roots, filename=self.config.log_filename, max_depth=self.config.log_max_depth)
        if path is None:
            raise LogNotFound(f"{self.config.log_filename} not found; cannot determine port")
        return path

    def read_ports(self, log_path: Path | None = None) -> LanguageServerPorts:
        log_path = log_path or self.locate_log()
        try:
            text = log_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise LogNotFound(f"cannot read {log_path.name}: {e.strerror or e}")
        ports = parse_ports(text)
        logger.info("ports_parsed", log=str(log_path), **ports.to_dict())
        return ports

    def find_port(self, log_path: Path | None = None) -> int:
        ports = self.read_ports(log_path)
        port = ports.get(self.config.port_kind)
        if port is None:
            raise PortNotFound(f"log does not announce a {self.config.port_kind.upper()} port")
        return port

    # ------------------------------------------------------------------ token

    def find_token(self) -> tuple[DiscoveredSecret, int]:
        """Scan candidate processes newest-first; return the token and its pid."""
        candidates = self._process_finder(self.config.target_process_names)
        if not candidates:
            raise NoCandidateProcess()

        anchor = self.config.anchor()
        budget = self.config.scan_budget()

        for candidate in candidates:
            try:
                token = scan_process(
                    candidate.pid,
                    anchor,
                    budget,
                    lookahead=self.config.scan_lookahead,
                    memory_factory=self._memory_factory,
                )
            except DiscoveryError as e:
                if e.fatal:
                    raise
                logger.warning(
                    "process_scan_skipped", pid=candidate.pid, name=candidate.name, kind=e.kind, error=str(e),
                )
                continue
            if token:
                logger.info("csrf_token_found", pid=candidate.pid, name=candidate.name, token=mask_secret(token))
                return DiscoveredSecret(token), candidate.pid
            logger.debug("process_scan_no_token", pid=candidate.pid, name=candidate.name)

        raise SecretNotFound()

    # ------------------------------------------------------------------ both

    def discover(self) -> DiscoveryResult:
        """Blocking: run on a worker thread, never on an event loop thread."""
        log_path = self.locate_log()
        port = self.find_port(log_path)
        token, pid = self.find_token()
        return DiscoveryResult(port=port, token=token, log_path=log_path, pid=pid)

    async def discover_async(self) -> DiscoveryResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.discover)

    async def read_ports_async(self) -> LanguageServerPorts:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.read_ports)
