# ---- Terminal output samples in the shape Claude Code writes them ----

# Skill invocation with 256-color styling and cursor-forward word gaps
SKILL_MARKER_ANSI = (
    "\x1b[38;5;174m●\x1b[39m\x1b[1C\x1b[1m/commit\x1b[22m"
    "(Create\x1b[1Ca\x1b[1Cgit\x1b[1Ccommit)\r\n"
)

# MCP invocation wrapped in synchronized-output mode switches
MCP_MARKER_ANSI = (
    "\x1b[?2026h\x1b[38;2;245;158;11m● mcp-github(List open pull requests)\x1b[39m\r\r\n"
    "\x1b[?2026l"
)

# Agent end-of-run summary under the result connector
AGENT_DONE_ANSI = "\x1b[2K\x1b[1G  \x1b[90m⎿\x1b[39m  Done (3 tool uses · 12.4k tokens · 21s)\r\n"

# Window title OSC followed by a plain tool-call line
OSC_TITLE_THEN_TOOL = "\x1b]0;claude\x07[Bash] npm test\r\n"

# Chunk cut in the middle of a CSI sequence
TRUNCATED_CSI = "[Read] src/app.py\r\n\x1b[38;5"

# Plan block as printed in plan mode
PLAN_BLOCK = (
    "Plan:\n"
    "✓ 1. Write failing test\n"
    "✓ 2. Implement parser\n"
    "☐ 3. Update docs\n"
    "☐ 4. Release\n"
)
