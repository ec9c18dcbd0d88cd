"""
Export orchestrator coordinating a single user-triggered run.

A run is either a download of every file attachment on a board, or a JSON
export of the board with attachments inlined. Each run emits exactly one start
notification and exactly one success or error notification.
"""

import logging
import time
from typing import Any, Dict, Optional

from config_loader import get_nested
from errors import FetchError, ResolutionError, TrelloExportError
from exporters.download_exporter import DownloadExporter
from exporters.json_exporter import JsonExporter
from exporters.sink import FileSink
from models import RunMode, RunReport, RunState
from trello_client import TrelloClient

TITLES = {
    RunMode.DOWNLOAD: "Download attachments",
    RunMode.EXPORT: "Export as JSON",
}

START_MESSAGES = {
    RunMode.DOWNLOAD: "Download in progress... This can take a while.",
    RunMode.EXPORT: "Export in progress... This can take a while.",
}

SUCCESS_MESSAGES = {
    RunMode.DOWNLOAD: "Done. Attachments downloaded",
    RunMode.EXPORT: "Done. Downloading JSON file",
}

ERROR_MESSAGE = "Oops an error occurred !"


class Notifier:
    """User notification sink; messages go to the project logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('trello_attachments_exporter.notifications')

    def start(self, title: str, message: str) -> None:
        self.logger.info(f"[{title}] {message}")

    def success(self, title: str, message: str) -> None:
        self.logger.info(f"[{title}] {message}")

    def error(self, title: str, message: str) -> None:
        self.logger.error(f"[{title}] {message}")


class ExportOrchestrator:
    """Runs one download or export and turns its outcome into a RunReport."""

    def __init__(
        self,
        config: Dict[str, Any],
        client: Optional[TrelloClient] = None,
        sink: Optional[FileSink] = None,
        notifier: Optional[Notifier] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration dictionary
            client: TrelloClient (built from config when omitted)
            sink: FileSink (built from export.output_directory when omitted)
            notifier: Notification sink
            logger: Logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger('trello_attachments_exporter.orchestrator')
        self._owns_client = client is None
        self.client = client or TrelloClient.from_config(config)
        self.sink = sink or FileSink(
            get_nested(config, 'export.output_directory', './trello-export'),
            logger=self.logger
        )
        self.notifier = notifier or Notifier()

    def run(self, mode: RunMode) -> RunReport:
        """
        Execute one run and report its outcome.

        Errors are reported once through the notifier and recorded in the
        returned report; they are not raised.

        Args:
            mode: RunMode.DOWNLOAD or RunMode.EXPORT

        Returns:
            RunReport with final state DONE or FAILED
        """
        board_url = get_nested(self.config, 'trello.board_url')
        report = RunReport(mode=mode, board_url=board_url)
        title = TITLES[mode]
        self.sink.reset()

        self.notifier.start(title, START_MESSAGES[mode])
        start_time = time.time()

        try:
            if mode == RunMode.DOWNLOAD:
                self._run_download(board_url, report)
            else:
                self._run_export(board_url, report)
        except ResolutionError as e:
            self._fail(report, title, f"{ERROR_MESSAGE} Can't retrieve current board id", e)
        except FetchError as e:
            detail = " Fail to retrieve json export." if report.state == RunState.FETCHING_EXPORT else ""
            self._fail(report, title, f"{ERROR_MESSAGE}{detail}", e)
        except (TrelloExportError, OSError) as e:
            self._fail(report, title, ERROR_MESSAGE, e)
        else:
            report.state = RunState.DONE
            self.notifier.success(title, SUCCESS_MESSAGES[mode])
        finally:
            report.duration = time.time() - start_time
            if self._owns_client:
                self.client.close()

        return report

    def _run_download(self, board_url: str, report: RunReport) -> None:
        exporter = DownloadExporter(self.client, self.sink, self.config, logger=self.logger)
        try:
            result = exporter.run(board_url)
        finally:
            report.state = exporter.failed_state if exporter.state == RunState.FAILED else exporter.state

        report.cards = len(result.manifest)
        report.attachments_found = result.attachments_found
        report.attachments_saved = len(result.saved_files)
        report.attachments_failed = result.attachments_failed
        report.links_skipped = result.links_skipped
        if result.manifest_path:
            report.output_files.append(str(result.manifest_path))
        report.output_files.extend(str(path) for path in result.saved_files)

    def _run_export(self, board_url: str, report: RunReport) -> None:
        exporter = JsonExporter(self.client, self.sink, self.config, logger=self.logger)
        candidate = get_nested(self.config, 'trello.export_url')
        try:
            result = exporter.run(board_url, candidate)
        finally:
            report.state = exporter.failed_state if exporter.state == RunState.FAILED else exporter.state

        report.cards = result.cards
        report.attachments_found = result.attachments_inlined
        report.attachments_saved = result.attachments_inlined
        report.links_skipped = result.links_skipped
        report.output_files.append(str(result.output_path))

    def _fail(self, report: RunReport, title: str, message: str, error: Exception) -> None:
        # report.state still holds the stage that failed until here
        self.logger.error(f"Run failed during {report.state.value}: {error}")
        report.state = RunState.FAILED
        report.error_message = str(error)
        self.notifier.error(title, message)


__all__ = ['ExportOrchestrator', 'Notifier', 'TITLES', 'ERROR_MESSAGE']
