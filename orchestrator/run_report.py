"""
Run report formatting for console display and JSON export.
"""

import json
import logging
from typing import Optional

from models import RunMode, RunReport


class RunReportFormatter:
    """Formats a RunReport for the console and writes it as JSON."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('trello_attachments_exporter.orchestrator.run_report')

    def format_console_report(self, report: RunReport) -> str:
        """
        Format report for console display.

        Args:
            report: Outcome of the run

        Returns:
            Formatted console string
        """
        sections = []

        sections.append("=" * 60)
        sections.append("EXPORT REPORT")
        sections.append("=" * 60)
        sections.append("")

        sections.append("Summary:")
        sections.append(f"  Mode:        {report.mode.value}")
        sections.append(f"  Board:       {report.board_url or 'unknown'}")
        sections.append(f"  Status:      {report.state.value}")
        sections.append(f"  Cards:       {report.cards}")
        if report.mode == RunMode.DOWNLOAD:
            sections.append(
                f"  Attachments: {report.attachments_saved} saved, "
                f"{report.attachments_failed} failed, {report.links_skipped} links skipped"
            )
        else:
            sections.append(
                f"  Attachments: {report.attachments_saved} inlined, {report.links_skipped} links kept"
            )
        sections.append(f"  Duration:    {report.duration:.1f}s")
        sections.append("")

        if report.error_message:
            sections.append("Error:")
            sections.append(f"  {report.error_message}")
            sections.append("")

        if report.output_files:
            sections.append(f"Output Files ({len(report.output_files)}):")
            sections.append("-" * 60)
            for path in report.output_files[:20]:
                sections.append(f"  {path}")
            if len(report.output_files) > 20:
                sections.append(f"  ... and {len(report.output_files) - 20} more")
            sections.append("")

        sections.append("=" * 60)
        return "\n".join(sections)

    def export_json_report(self, report: RunReport, filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Outcome of the run
            filepath: Output file path
        """
        try:
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(report.to_dict(), f, indent=2, ensure_ascii=False, default=str)

            self.logger.info(f"JSON report exported to {filepath}")

        except OSError as e:
            self.logger.error(f"Failed to export JSON report: {str(e)}")


__all__ = ['RunReportFormatter']
