"""CSRF token search over raw process-memory buffers.

The language server keeps its token next to the ``x-codeium-csrf-token``
header name, sometimes as UTF-8 (native heap) and sometimes as UTF-16-LE
(Chromium/V8 strings). Every occurrence of the anchor in either encoding is
inspected, because the first one is often an unrelated header table entry
with no value after it.
"""

import re
from typing import Iterator, Optional, Pattern

from .models import DEFAULT_LOOKAHEAD, AnchorPattern

UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)

# Order matters: UTF-8 is tried first for every window.
WINDOW_ENCODINGS = ("utf-8", "utf-16-le")


def find_all_positions(haystack: bytes, needle: bytes) -> list[int]:
    """Return every offset of ``needle`` in ``haystack``, overlaps included."""
    if not needle or len(haystack) < len(needle):
        return []
    positions = []
    pos = haystack.find(needle)
    while pos != -1:
        positions.append(pos)
        pos = haystack.find(needle, pos + 1)
    return positions


def match_window(window: bytes, encoding: str, validator: Pattern[str] = UUID_RE) -> Optional[str]:
    """Decode ``window`` lossily as ``encoding`` and return the first validator match."""
    if encoding == "utf-16-le" and len(window) % 2:
        # Trailing half code unit at a truncated window end
        window = window[:-1]
    text = window.decode(encoding, errors="replace")
    match = validator.search(text)
    return match.group(0) if match else None


def _windows_after_anchor(data: bytes, anchor: AnchorPattern, lookahead: int) -> Iterator[bytes]:
    for pattern in anchor.encodings:
        for pos in find_all_positions(data, pattern):
            start = pos + len(pattern)
            if start >= len(data):
                continue
            yield data[start:start + lookahead]


def search_token(
    data: bytes,
    anchor: AnchorPattern,
    validator: Pattern[str] = UUID_RE,
    lookahead: int = DEFAULT_LOOKAHEAD,
) -> Optional[str]:
    """Return the first token found after an anchor occurrence in ``data``.

    UTF-8 anchor occurrences are examined before UTF-16-LE ones, each in
    buffer order. Each lookahead window is decoded as UTF-8 and then as
    UTF-16-LE before moving to the next occurrence.
    """
    for window in _windows_after_anchor(data, anchor, lookahead):
        for encoding in WINDOW_ENCODINGS:
            token = match_window(window, encoding, validator)
            if token:
                return token
    return None
