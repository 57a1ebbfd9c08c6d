#!/usr/bin/env python3
"""Launch the Claude Code activity monitor.

Usage:
    python run.py [config.yaml] [--debug] [--trace] [--verbose]
"""
import asyncio

from cli_monitor.main import main

if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
