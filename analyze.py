#!/usr/bin/env python3
"""Thin runner for the CLI; delegates to `screenshot_analyzer.cli.main()`.

Provides `python analyze.py` for local development.
"""
from screenshot_analyzer.cli import main


if __name__ == "__main__":
    main()
