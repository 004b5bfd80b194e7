#!/usr/bin/env python3
"""
Funnel Finder - Main Entry Point

A tool for discovering advertising landing pages on a website and the
conversion funnels that start from them.
"""

from funnel_finder.cli import main


if __name__ == "__main__":
    main()
