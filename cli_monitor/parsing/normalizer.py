"""Strip terminal escape sequences and control codes from raw CLI output."""

from __future__ import annotations

import re

# Cursor forward ESC[NC becomes N spaces (Claude uses ESC[1C between words)
_CURSOR_FORWARD_RE = re.compile(r"\x1b\[(\d*)C")

# All other ANSI sequences (CSI, OSC, SGR) are removed entirely
_ANSI_FULL_RE = re.compile(
    r"\x1b"
    r"(?:"
    r"\[\?[0-9;]*[a-zA-Z]"        # Private mode sequences: ESC[?...
    r"|\[[0-9;:<=>]*[ -/]*[@-~]"  # CSI sequences: ESC [ params intermediates final
    r"|\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC sequences: ESC ] ... BEL or ST
    r"|[()][A-Za-z0-9]"           # Charset selection: ESC ( B
    r"|>[0-9]*[a-zA-Z]?"          # DEC sequences: ESC>...
    r"|[<=78DEHMNOZc]"            # Two-character escapes
    r")"
)

# Truncated sequence at a chunk boundary, or an ESC we could not attribute
_DANGLING_ESC_RE = re.compile(r"\x1b(?:\[[0-9;?]*|\][^\x07\n]*)?")

# SGR fragments whose ESC byte was lost upstream: "[31m", "[1;32m"
_ORPHAN_SGR_RE = re.compile(r"\[\d{1,3}(?:;\d{1,3})*m")

# C0 controls other than \t and \n, plus DEL
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def strip_ansi(text: str) -> str:
    """Strip ANSI escape codes, converting cursor-forward to spaces."""
    text = _CURSOR_FORWARD_RE.sub(lambda m: " " * int(m.group(1) or 1), text)
    return _ANSI_FULL_RE.sub("", text)


def clean_text(chunk: str) -> str:
    """Return ``chunk`` with escape sequences and control codes removed.

    Newlines are preserved so the result still splits into the lines the
    CLI printed. ``\\r\\n``, ``\\r\\r\\n`` and lone ``\\r`` all become
    ``\\n``. Malformed or truncated sequences are dropped best-effort; this
    function never raises on string input.
    """
    if not chunk:
        return ""
    text = strip_ansi(chunk)
    text = _DANGLING_ESC_RE.sub("", text)
    text = _ORPHAN_SGR_RE.sub("", text)
    text = text.replace("\r\r\n", "\n").replace("\r\n", "\n").replace("\r", "\n")
    return _CONTROL_RE.sub("", text)


def split_lines(text: str) -> list[str]:
    """Split cleaned text into trimmed, non-empty lines."""
    return [line.strip() for line in text.split("\n") if line.strip()]
