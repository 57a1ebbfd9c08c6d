#!/usr/bin/env python3
"""Replay a raw PTY capture through the output pipeline.

Feeds the capture in fixed-size chunks (cutting escape sequences and lines
mid-way, as the live PTY does) and reports every event, the kind
distribution, discovered MCP servers, and bulleted lines no rule matched.

Usage:
    python scripts/replay_capture.py [capture-file] [--chunk-size N]
"""
import argparse
import asyncio
import sys
from collections import Counter
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from cli_monitor.parsing.line_classifier import LineClassifier
from cli_monitor.parsing.line_patterns import BULLET
from cli_monitor.parsing.normalizer import clean_text, split_lines
from cli_monitor.pipeline import OutputPipeline

CAPTURES_DIR = Path(__file__).parent / "captures"


def find_capture(path: str | None) -> Path:
    if path:
        capture = Path(path)
    else:
        files = sorted(CAPTURES_DIR.glob("*")) if CAPTURES_DIR.exists() else []
        if not files:
            print(f"No captures found in {CAPTURES_DIR}")
            sys.exit(1)
        capture = files[-1]
    if not capture.is_file():
        print(f"ERROR: {capture} not found")
        sys.exit(1)
    return capture


def unmatched_bullets(raw: str) -> list[str]:
    """Bulleted lines that the classifier does not recognize."""
    classifier = LineClassifier()
    return [
        line for line in split_lines(clean_text(raw))
        if line.startswith(BULLET) and classifier.classify(line) is None
    ]


async def replay(raw: str, chunk_size: int) -> None:
    states: list[str] = []
    pipeline = OutputPipeline(
        on_state_change=lambda c: states.append(f"{c.state} {c.kind.value} {c.id} ({c.reason})"),
    )
    try:
        await pipeline.refresh_cache()
        for offset in range(0, len(raw), chunk_size):
            pipeline.feed(raw[offset:offset + chunk_size])
        events = pipeline.get_events()
        discovered = pipeline.discovered_mcps()
        plan = pipeline.plan_progress()
    finally:
        pipeline.dispose()

    print(f"{'Kind':<15} {'Name':<25} {'Content'}")
    print("-" * 70)
    for event in events:
        name = event.item_name or event.details.get("tool") or ""
        print(f"  {event.kind.value:<13} {name:<25} {event.content[:40]}")

    print("\n" + "=" * 70)
    print("Kind distribution:")
    kind_counts = Counter(e.kind.value for e in events)
    for kind, count in kind_counts.most_common():
        pct = count / len(events) * 100
        bar = "█" * int(pct / 2)
        print(f"  {kind:<15} {count:>4} ({pct:5.1f}%) {bar}")

    print(f"\nState transitions: {len(states)}")
    for line in states:
        print(f"  {line}")

    if discovered:
        print(f"\nDiscovered MCP servers: {', '.join(discovered)}")
    if plan is not None:
        print(f"\nPlan progress: {plan.current}/{plan.total}")

    missed = unmatched_bullets(raw)
    if missed:
        print(f"\n⚠ {len(missed)} unrecognized bullet lines:")
        for line in missed[:20]:
            print(f"    {line[:80]}")
        if len(missed) > 20:
            print(f"    ... ({len(missed) - 20} more lines)")
    else:
        print("\n✓ Every bullet line classified")


def main():
    parser = argparse.ArgumentParser(description="Replay a PTY capture through the pipeline")
    parser.add_argument("capture", nargs="?", default=None)
    parser.add_argument("--chunk-size", type=int, default=512)
    args = parser.parse_args()

    capture = find_capture(args.capture)
    print(f"Replaying: {capture}")
    print("=" * 70)
    raw = capture.read_text(encoding="utf-8", errors="replace")
    print(f"Total size: {len(raw)} chars, chunk size {args.chunk_size}\n")
    asyncio.run(replay(raw, args.chunk_size))


if __name__ == "__main__":
    main()
