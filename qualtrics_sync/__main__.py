"""
Entry point for running qualtrics_sync as a module.

Usage:
    python -m qualtrics_sync --help
    python -m qualtrics_sync sync --dry-run
    python -m qualtrics_sync daemon --interval 1h
"""

from qualtrics_sync.cli import cli

if __name__ == "__main__":
    cli()
