#!/usr/bin/env python

"""
Timekeeping - Main Entry Point

Runs the project timer core headless: restores the timer session from the
local cache, reconciles stored durations and keeps the stopwatch ticking
until interrupted.

Usage:
    python main.py

Requirements:
    - Python 3.10+
    - See pyproject.toml for dependencies
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from timekeeping.app import TimekeepingApp


def main():
    """Main entry point"""
    app = TimekeepingApp()
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
