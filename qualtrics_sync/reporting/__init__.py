"""
qualtrics_sync.reporting - Run report module
"""

from qualtrics_sync.reporting.log_report import ReportWriter

__all__ = ["ReportWriter"]
