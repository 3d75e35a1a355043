"""Text helpers for iCalendar (RFC 5545) content lines.

Two operations live here: escaping free text so it can sit inside a single
property value, and folding a finished property line so that no physical
line exceeds 75 octets of UTF-8.
"""

from __future__ import annotations

from typing import List, Optional


FOLD_LIMIT = 75
CRLF = "\r\n"


def escape_text(raw: Optional[str]) -> str:
    """Escape a raw TEXT value for use inside a property.

    Backslashes are escaped first so the sequences added for ``;``, ``,``
    and line feeds are not escaped a second time. Carriage returns are
    dropped entirely: a bare CR inside a value breaks conformant parsers.
    """

    if not raw:
        return ""

    return (
        raw.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r", "")
        .replace("\n", "\\n")
    )


def _is_continuation_byte(byte: int) -> bool:
    return (byte & 0xC0) == 0x80


def fold_line(line: str) -> str:
    """Fold ``line`` at 75 UTF-8 octets without splitting a character.

    Continuation segments carry at most 74 octets because folding prefixes
    each of them with a single space.
    """

    data = line.encode("utf-8")
    if len(data) <= FOLD_LIMIT:
        return line

    segments: List[str] = []
    start = 0
    limit = FOLD_LIMIT
    while start < len(data):
        end = min(start + limit, len(data))
        if end < len(data):
            while end > start and _is_continuation_byte(data[end]):
                end -= 1
        segments.append(data[start:end].decode("utf-8"))
        start = end
        limit = FOLD_LIMIT - 1

    return (CRLF + " ").join(segments)
