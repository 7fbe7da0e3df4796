"""
qualtrics_sync - Keep Qualtrics mailing lists in step with CSV extracts.

Reconciles each configured CSV contact extract against its Qualtrics
mailing list and applies the adds, updates, and deletes needed to make
the remote list match.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
