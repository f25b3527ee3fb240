"""Payload sanitization.

Removes characters that are syntactically invisible but can corrupt JSON
parsing downstream or hide content from reviewers: zero-width and bidi
formatting marks, variant spaces, and C0 control bytes.

Security notes:
- Input is attacker-controlled text; every step is a bounded regex pass.
- The canonical output is ASCII-escaped JSON, so sanitizing it again is a no-op.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

log = logging.getLogger("blockify.core")

# Backslash-u escapes of formatting code points, as they appear in JSON text.
# Group 1 keeps any preceding escaped backslashes intact. Escaped narrow NBSP
# (U+202F) is left to decode and become a plain space like its literal form.
_ESCAPED_FORMAT_MARKS_RE = re.compile(
    r"(?<!\\)((?:\\\\)*)\\u(?:200[b-f]|202[8-9a-e]|205f|206[0-9a-f]|feff)", re.IGNORECASE
)

# Zero-width marks (ZWSP, word joiner, BOM) are not spaces; the raw-mark pass removes them.
_VARIANT_SPACES = (
    "\u00a0",  # no-break space
    "\u202f",  # narrow no-break space
    "\u2007",  # figure space
    "\u2002",  # en space
    "\u2003",  # em space
    "\u2009",  # thin space
    "\u200a",  # hair space
)
_VARIANT_SPACES_RE = re.compile("[" + "".join(_VARIANT_SPACES) + "]")

_CONTROL_BYTES_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_ALL_CONTROL_BYTES_RE = re.compile(r"[\x00-\x1f\x7f]")

_RAW_FORMAT_MARKS_RE = re.compile("[\u200b-\u200f\u2028-\u202f\u205f-\u206f\ufeff]")

# Letters that start a valid JSON escape (b f n r t u) are excluded: "\n{" is a
# newline before a brace, not a malformed sequence.
_BRACE_ESCAPES_RE = re.compile(r"(?<!\\)\\u\{[^}]*\}|(?<!\\)\\[ac-eg-mo-qsv-zA-Z]\{[^}]*\}")

_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7e\t\n\r]")

_ESCAPED_WHITESPACE_RE = re.compile(r"(?<!\\)\\[nrt]")

_MAX_PASSES = 4


def _canonical(value: Any) -> str:
    return json.dumps(value, ensure_ascii=True, separators=(",", ":"))


def _literal(value: Any) -> str:
    # Non-ASCII stays literal so the character passes can see it.
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _try_parse(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def _to_text(raw: Any) -> Optional[str]:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    try:
        return _literal(raw)
    except (TypeError, ValueError, RecursionError):
        return None


def _clean_once(text: str) -> tuple[bool, Any]:
    cleaned = _ESCAPED_FORMAT_MARKS_RE.sub(r"\1", text)
    cleaned = _VARIANT_SPACES_RE.sub(" ", cleaned)
    cleaned = _CONTROL_BYTES_RE.sub("", cleaned)
    cleaned = _RAW_FORMAT_MARKS_RE.sub("", cleaned)
    cleaned = _BRACE_ESCAPES_RE.sub("", cleaned)

    ok, parsed = _try_parse(cleaned)
    if ok:
        return True, parsed

    # Aggressive fallback: printable ASCII only.
    final = _NON_PRINTABLE_RE.sub("", cleaned)
    final = _ESCAPED_FORMAT_MARKS_RE.sub(r"\1", final)

    ok, parsed = _try_parse(final)
    if ok:
        log.debug("payload recovered by printable-ASCII fallback")
    return ok, parsed


def sanitize_json(raw: Any) -> Optional[str]:
    """Clean a raw payload and return it as canonical JSON text.

    raw may be JSON text, UTF-8 bytes, or an already structured value.
    Returns None when no usable structured data can be recovered; callers
    must treat that as "no usable input".

    Decoding escapes can surface new characters (e.g. an escaped NBSP), so
    the decoded value is re-serialized with literal non-ASCII and cleaned
    again until it is stable. Only the final output is ASCII-escaped.
    """

    text = _to_text(raw)
    if text is None:
        return None

    ok, value = _clean_once(text)
    if not ok:
        return None

    for _ in range(_MAX_PASSES):
        current = _literal(value)
        ok, again = _clean_once(current)
        if not ok or _literal(again) == current:
            break
        value = again
    return _canonical(value)


def strip_control_characters(text: str) -> str:
    """Remove control bytes and backslash-escaped n/r/t sequences."""

    cleaned = _ALL_CONTROL_BYTES_RE.sub("", text)
    return _ESCAPED_WHITESPACE_RE.sub("", cleaned)
