from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal

from cli_monitor.cli_process import CliProcess
from cli_monitor.config import AppConfig, KnownItemsConfig, load_config
from cli_monitor.log_setup import setup_logging
from cli_monitor.parsing.models import Event, StateChange
from cli_monitor.pipeline import OutputPipeline
from cli_monitor.registry import ItemSource, TypeRegistry
from cli_monitor.status_inbox import StatusInbox

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "config.yaml"

# Agents every Claude Code install ships with
BUILTIN_AGENTS = (
    {"name": "general-purpose", "source": "builtin", "category": "default"},
    {"name": "Explore", "source": "builtin", "category": "specialized"},
    {"name": "Plan", "source": "builtin", "category": "specialized"},
)


def _static_source(items: list) -> ItemSource:
    async def source() -> list:
        return list(items)

    return source


def build_registry(known: KnownItemsConfig, ttl: float) -> TypeRegistry:
    """Build a registry fed from the statically configured item names."""
    configured = set(known.agents)
    agents = [a for a in BUILTIN_AGENTS if a["name"] not in configured] + list(known.agents)
    return TypeRegistry(
        mcps=_static_source(known.mcps),
        plugins=_static_source(known.plugins),
        skills=_static_source(known.skills),
        agents=_static_source(agents),
        ttl=ttl,
    )


def build_pipeline(config: AppConfig) -> OutputPipeline:
    """Build the classification pipeline with logging callbacks attached."""
    monitor = config.monitor
    return OutputPipeline(
        build_registry(config.known_items, monitor.registry_ttl_seconds),
        dedup_window_ms=monitor.dedup_window_ms,
        active_timeout_ms=monitor.active_timeout_ms,
        history_capacity=monitor.history_capacity,
        history_retain=monitor.history_retain,
        on_events=_log_events,
        on_state_change=_log_state_change,
    )


def _log_events(events: list[Event]) -> None:
    for event in events:
        name = event.item_name or event.details.get("tool")
        if name:
            logger.info("[%s] %s: %s", event.kind.value, name, event.content)
        else:
            logger.info("[%s] %s", event.kind.value, event.content)


def _log_state_change(change: StateChange) -> None:
    logger.info(
        "%s %s %s (%s)",
        change.state.upper(), change.kind.value, change.id, change.reason,
    )


async def run_monitor(config: AppConfig) -> int:
    """Spawn the CLI and stream its output through the pipeline until exit.

    Returns:
        The CLI's exit code, or 0 when it was stopped by a signal.
    """
    pipeline = build_pipeline(config)
    await pipeline.refresh_cache()

    inbox = None
    if config.status_inbox.enabled:
        inbox = StatusInbox(
            config.status_inbox.path,
            pipeline.handle_status,
            poll_interval_ms=config.status_inbox.poll_interval_ms,
        )
        inbox.start()

    process = CliProcess(
        command=config.cli.command,
        args=config.cli.default_args,
        cwd=os.path.expanduser(config.cli.cwd),
        env=config.cli.env,
    )
    await process.spawn()
    logger.info("Monitoring %s", process.command_line)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    interval = config.cli.poll_interval_ms / 1000
    try:
        while not stop_event.is_set():
            chunk = process.read_available()
            if chunk:
                pipeline.feed(chunk)
            if not process.is_alive():
                pipeline.feed(process.read_available())
                logger.info("CLI exited with code %s", process.exit_code())
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if inbox is not None:
            await inbox.stop()
        await process.terminate()
        events = pipeline.get_events()
        pipeline.dispose()
        logger.info("Observed %d events", len(events))

    if stop_event.is_set():
        return 0
    return process.exit_code() or 0


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Claude Code activity monitor")
    parser.add_argument("config", nargs="?", default=None,
                        help=f"Path to YAML config file (default: {DEFAULT_CONFIG} if present)")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode (verbose logging)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace mode (writes trace file to debug/)")
    parser.add_argument("--verbose", action="store_true",
                        help="With --trace, also send trace output to terminal")
    return parser.parse_args()


def resolve_config(path: str | None) -> AppConfig:
    """Load ``path``; fall back to defaults when no config file is around."""
    if path is not None:
        return load_config(path)
    if os.path.exists(DEFAULT_CONFIG):
        return load_config(DEFAULT_CONFIG)
    logger.info("No %s found, using defaults", DEFAULT_CONFIG)
    return AppConfig()


async def main() -> int:
    """Entry point for the activity monitor."""
    args = _parse_args()
    root = setup_logging(debug=args.debug, trace=args.trace, verbose=args.verbose)

    config = resolve_config(args.config)
    if config.debug.enabled or config.debug.trace:
        root = setup_logging(
            debug=args.debug or config.debug.enabled,
            trace=args.trace or config.debug.trace,
            verbose=args.verbose or config.debug.verbose,
        )

    root.info("Starting activity monitor...")
    code = await run_monitor(config)
    root.info("Bye.")
    return code


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
