"""lsprobe configuration system using Pydantic Settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .discovery.models import AnchorPattern, ScanBudget


class ProbeConfig(BaseSettings):
    """Main configuration class. Loads from .env file and LSPROBE_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="LSPROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "lsprobe"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8765

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 5_000_000
    log_backup_count: int = 3

    # Log discovery
    app_dir_name: str = "Antigravity"
    log_filename: str = "Antigravity.log"
    log_max_depth: int = 6
    port_kind: str = "https"  # https / http / extension

    # Process discovery
    target_process_names: list[str] = ["antigravity", "windsurf"]

    # Memory scanning
    csrf_anchor: str = "x-codeium-csrf-token"
    scan_chunk_size: int = 512 * 1024
    scan_max_region_bytes: int = 64 * 1024 * 1024
    scan_lookahead: int = 200

    # Language server RPC
    rpc_host: str = "127.0.0.1"
    rpc_timeout_seconds: float = 4.0
    ide_name: str = "antigravity"
    ide_version: str = "1.11.5"
    extension_name: str = "antigravity"
    locale: str = "en"

    @field_validator("port_kind")
    @classmethod
    def validate_port_kind(cls, v: str) -> str:
        allowed = {"https", "http", "extension"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"port_kind must be one of {allowed}")
        return v

    @field_validator("scan_chunk_size", "scan_max_region_bytes", "scan_lookahead")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("scan sizes must be positive")
        return v

    def anchor(self) -> AnchorPattern:
        return AnchorPattern.from_marker(self.csrf_anchor)

    def scan_budget(self) -> ScanBudget:
        """Smallest-overlap budget that still covers the configured anchor."""
        return ScanBudget.for_anchor(
            self.anchor(),
            lookahead=self.scan_lookahead,
            chunk_size=self.scan_chunk_size,
            max_region_bytes=self.scan_max_region_bytes,
        )


def get_config() -> ProbeConfig:
    """Factory function to create config instance."""
    return ProbeConfig()
