from __future__ import annotations

from typing import Iterable

from cli_monitor.parsing.line_patterns import PLAN_CHECKED, PLAN_STEP_RE
from cli_monitor.parsing.models import Event, EventKind, PlanProgress, PlanStep
from cli_monitor.parsing.normalizer import clean_text, split_lines


def _build_progress(steps: list[PlanStep]) -> PlanProgress | None:
    if not steps:
        return None
    current = sum(1 for s in steps if s.completed)
    for step in steps:
        if not step.completed:
            step.in_progress = True
            break
    return PlanProgress(current=current, total=len(steps), steps=steps)


def parse_plan_progress(text: str) -> PlanProgress | None:
    """Parse plan checkbox lines out of a block of terminal output.

    ``current`` counts completed steps; the first open step is flagged as
    in progress.

    Args:
        text: Raw or cleaned terminal output.

    Returns:
        A PlanProgress, or None if the text holds no plan step lines.
    """
    steps: list[PlanStep] = []
    for line in split_lines(clean_text(text)):
        m = PLAN_STEP_RE.match(line)
        if m:
            steps.append(PlanStep(
                description=m.group("description"),
                completed=m.group("glyph") in PLAN_CHECKED,
            ))
    return _build_progress(steps)


def summarize_plan(events: Iterable[Event]) -> PlanProgress | None:
    """Fold plan-progress events into one PlanProgress.

    Steps are keyed by description in first-seen order; a later event for
    the same description updates its completion state.
    """
    by_description: dict[str, PlanStep] = {}
    for event in events:
        if event.kind is not EventKind.PLAN_PROGRESS:
            continue
        completed = bool(event.details.get("completed"))
        step = by_description.get(event.content)
        if step is None:
            by_description[event.content] = PlanStep(event.content, completed)
        else:
            step.completed = completed
    return _build_progress(list(by_description.values()))
