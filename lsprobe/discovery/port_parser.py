"""Port announcements in the language server log.

A restarted language server announces fresh ports further down the same
file, so the last announcement of each kind is the live one.
"""

import re
from typing import Optional, Pattern

from .models import LanguageServerPorts

HTTPS_PORT_RE = re.compile(r"random port at (\d+) for HTTPS")
HTTP_PORT_RE = re.compile(r"random port at (\d+) for HTTP(?!S)")
EXTENSION_PORT_RE = re.compile(r"extension server client at port (\d+)")

MAX_PORT = 65535


def _last_port(pattern: Pattern[str], text: str) -> Optional[int]:
    last = None
    for last in pattern.finditer(text):
        pass
    if last is None:
        return None
    digits = last.group(1)
    # Longer captures are out of range anyway and int() rejects huge ones
    if len(digits) > len(str(MAX_PORT)):
        return None
    value = int(digits)
    if value > MAX_PORT:
        return None
    return value


def parse_ports(text: str) -> LanguageServerPorts:
    """Extract the HTTPS, HTTP and extension-server ports from log text."""
    return LanguageServerPorts(
        https=_last_port(HTTPS_PORT_RE, text),
        http=_last_port(HTTP_PORT_RE, text),
        extension=_last_port(EXTENSION_PORT_RE, text),
    )
