"""Regex catalogue for the single-line classifier.

All patterns are matched against a line that has already been cleaned of
escape sequences and trimmed.
"""

from __future__ import annotations

import re

# Claude Code announces agent/skill/plugin/MCP invocations with a black circle
BULLET = "●"

# Optional trailing "(description)"; greedy so nested parens stay in the text
_DESCRIPTION = r"(?:\((?P<description>.*)\))?"

# ● /name or ● /name(description)
SKILL_MARKER_RE = re.compile(rf"^{BULLET}\s*/\s*(?P<name>[\w:.-]+){_DESCRIPTION}$")

# ● mcp-server, ● mcp_server, ● mcp:server, each with optional (description)
MCP_MARKER_RE = re.compile(rf"^{BULLET}\s*mcp[-_:](?P<name>[a-zA-Z0-9_-]+){_DESCRIPTION}$")

# ● name or ● name(description); kind resolved through the type registry
GENERIC_MARKER_RE = re.compile(rf"^{BULLET}\s*(?P<name>[\w-]+){_DESCRIPTION}$")

# Legacy bracketed forms: [skill] name: action / [agent] name: action
LEGACY_SKILL_RE = re.compile(r"^\[skill\]\s+(?P<name>[\w-]+):\s*(?P<action>.+)$")
LEGACY_AGENT_RE = re.compile(r"^\[agent\]\s+(?P<name>[\w-]+):\s*(?P<action>.+)$")

# [Bash] npm test, [Read] src/app.py
TOOL_CALL_RE = re.compile(r"^\[(?P<tool>[A-Z][a-zA-Z]*)\]\s+(?P<action>.+)$")

# Plan checkbox: ✓ 1. Write tests / ☐ Update docs
PLAN_CHECKED = "✓✔☑"
PLAN_UNCHECKED = "☐"
PLAN_STEP_RE = re.compile(
    rf"^(?P<glyph>[{PLAN_CHECKED}{PLAN_UNCHECKED}])\s+(?:\d+\.\s*)?(?P<description>.+)$"
)

# "> fix the tests": the user's own prompt echoed back by the CLI
USER_INPUT_RE = re.compile(r"^>(?:\s|$)")

# serverName_result_summary: passive MCP server discovery
MCP_RESULT_RE = re.compile(r"^(?P<name>\w+)_result_\w+")
MCP_RESULT_MIN_LENGTH = 4
MCP_RESULT_STOPLIST = frozenset({"error", "output", "result"})

# Free-text phrases announcing that some unit finished, without naming it
END_SIGNAL_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"Done\s*\(\d+\s*tool uses"),
    re.compile(r"Finished"),
    re.compile(r"Complete", re.IGNORECASE),
    re.compile(r"⎿\s*Done"),
)


def is_user_input(line: str) -> bool:
    """Return True for a prompt line the user typed (``> ...``)."""
    return bool(USER_INPUT_RE.match(line.strip()))


def is_end_signal(text: str) -> bool:
    """Return True when ``text`` announces the end of an execution."""
    return any(pattern.search(text) for pattern in END_SIGNAL_PATTERNS)
