"""
Orchestration package for coordinating export runs.

This package sequences one user-triggered run: notify start, download or
export, notify the outcome once, and report.
"""

from .export_orchestrator import ExportOrchestrator, Notifier
from .run_report import RunReportFormatter

__all__ = [
    'ExportOrchestrator',
    'Notifier',
    'RunReportFormatter'
]
