"""Error taxonomy for language server discovery.

Each kind carries whether it ends a discovery call (``fatal``) and the HTTP
status the API layer answers with. Messages describe what was missing and
never include bytes read from a target process.
"""


class DiscoveryError(Exception):
    """Base class for every discovery failure."""

    kind = "discovery_error"
    fatal = True
    status_code = 500
    default_message = "language server discovery failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class LogNotFound(DiscoveryError):
    kind = "log_not_found"
    status_code = 404
    default_message = "no language server log file found"


class PortNotFound(DiscoveryError):
    kind = "port_not_found"
    status_code = 404
    default_message = "language server log does not announce the required port"


class NoCandidateProcess(DiscoveryError):
    kind = "no_candidate_process"
    status_code = 404
    default_message = "no running Antigravity/Windsurf process found"


class ProcessAccessDenied(DiscoveryError):
    """The OS refused memory access to one candidate; the next one is tried."""

    kind = "process_access_denied"
    fatal = False
    status_code = 403
    default_message = "access to process memory denied"

    def __init__(self, pid: int, reason: str = ""):
        self.pid = pid
        self.reason = reason
        message = f"access to memory of pid {pid} denied"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RegionReadFailure(DiscoveryError):
    """One chunk read failed; the scan skips ahead and continues."""

    kind = "region_read_failure"
    fatal = False
    default_message = "process memory read failed"

    def __init__(self, address: int, size: int, reason: str = ""):
        self.address = address
        self.size = size
        self.reason = reason
        message = f"read of {size} bytes at {address:#x} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SecretNotFound(DiscoveryError):
    kind = "secret_not_found"
    status_code = 404
    default_message = "CSRF token not found in any running Antigravity/Windsurf process"


class LanguageServerRequestError(Exception):
    """The GetUserStatus call to the local language server failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
