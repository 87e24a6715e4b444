"""FastAPI dependency injection providers."""

from .config import ProbeConfig, get_config
from .discovery.orchestrator import LanguageServerDiscovery
from .rpc.client import LanguageServerClient

_config_instance: ProbeConfig | None = None


def get_app_config() -> ProbeConfig:
    """Get the application config singleton."""
    global _config_instance
    if _config_instance is None:
        _config_instance = get_config()
    return _config_instance


def get_discovery() -> LanguageServerDiscovery:
    """A fresh discovery per request; results are never shared between calls."""
    return LanguageServerDiscovery(get_app_config())


def get_language_server_client() -> LanguageServerClient:
    return LanguageServerClient(get_app_config())
