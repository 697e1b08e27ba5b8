#!/usr/bin/env python3
"""Thin runner for the HTTP API; delegates to `screenshot_analyzer.server.main()`.

Provides `python serve.py` for local development.
"""
from screenshot_analyzer.server import main


if __name__ == "__main__":
    main()
