"""Tests for run orchestration, notifications and run reports."""

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from errors import FetchError
from exporters.sink import FileSink
from fake_trello import BOARD_URL, PNG_URL, SHORT_LINK, FakeTrelloClient
from models import RunMode, RunReport, RunState
from orchestrator import ExportOrchestrator, RunReportFormatter
from orchestrator.export_orchestrator import ERROR_MESSAGE


class TestExportOrchestrator(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name)
        self.notifier = mock.Mock()
        self.config = {
            'trello': {'board_url': BOARD_URL, 'export_url': None},
            'export': {'output_directory': str(self.output_dir), 'progress_bars': False},
            'advanced': {'max_workers': 4},
        }

    def tearDown(self):
        self._tmp.cleanup()

    def _orchestrator(self, client, board_url=BOARD_URL):
        self.config['trello']['board_url'] = board_url
        return ExportOrchestrator(
            self.config,
            client=client,
            sink=FileSink(self.output_dir),
            notifier=self.notifier
        )

    def test_download_success_notifies_once(self):
        report = self._orchestrator(FakeTrelloClient()).run(RunMode.DOWNLOAD)

        self.assertEqual(report.state, RunState.DONE)
        self.assertTrue(report.succeeded)
        self.notifier.start.assert_called_once_with(
            "Download attachments", "Download in progress... This can take a while."
        )
        self.notifier.success.assert_called_once_with("Download attachments", "Done. Attachments downloaded")
        self.notifier.error.assert_not_called()

        self.assertEqual(report.cards, 2)
        self.assertEqual(report.attachments_saved, 1)
        self.assertEqual(report.links_skipped, 1)
        self.assertEqual(report.output_files[0], str(self.output_dir / '00-cards.json'))

    def test_download_with_failed_attachment_still_succeeds(self):
        report = self._orchestrator(FakeTrelloClient(failing_urls=[PNG_URL])).run(RunMode.DOWNLOAD)

        self.assertEqual(report.state, RunState.DONE)
        self.assertEqual(report.attachments_failed, 1)
        self.notifier.success.assert_called_once()
        self.notifier.error.assert_not_called()

    def test_export_success_notifies_once(self):
        report = self._orchestrator(FakeTrelloClient()).run(RunMode.EXPORT)

        self.assertEqual(report.state, RunState.DONE)
        self.notifier.start.assert_called_once_with(
            "Export as JSON", "Export in progress... This can take a while."
        )
        self.notifier.success.assert_called_once_with("Export as JSON", "Done. Downloading JSON file")
        self.notifier.error.assert_not_called()
        self.assertEqual(report.output_files, [str(self.output_dir / f'{SHORT_LINK}-inclAtt.json')])

    def test_unknown_board_reports_resolution_error(self):
        report = self._orchestrator(
            FakeTrelloClient(), board_url='https://trello.com/b/Unknown1/x'
        ).run(RunMode.DOWNLOAD)

        self.assertEqual(report.state, RunState.FAILED)
        self.assertIsNotNone(report.error_message)
        self.notifier.error.assert_called_once_with(
            "Download attachments", f"{ERROR_MESSAGE} Can't retrieve current board id"
        )
        self.notifier.success.assert_not_called()

    def test_export_fetch_failure_is_reported_once(self):
        client = FakeTrelloClient(export=FetchError("HTTP Error 404", status_code=404))

        report = self._orchestrator(client).run(RunMode.EXPORT)

        self.assertEqual(report.state, RunState.FAILED)
        self.notifier.error.assert_called_once_with(
            "Export as JSON", f"{ERROR_MESSAGE} Fail to retrieve json export."
        )
        self.notifier.success.assert_not_called()

    def test_inline_failure_writes_nothing(self):
        report = self._orchestrator(FakeTrelloClient(failing_urls=[PNG_URL])).run(RunMode.EXPORT)

        self.assertEqual(report.state, RunState.FAILED)
        self.assertEqual(report.output_files, [])
        self.assertEqual(list(self.output_dir.iterdir()), [])
        self.notifier.error.assert_called_once_with("Export as JSON", ERROR_MESSAGE)

    def test_repeated_runs_reuse_output_names(self):
        """Each run starts with a clean slate of reserved file names."""
        orchestrator = self._orchestrator(FakeTrelloClient())

        first = orchestrator.run(RunMode.EXPORT)
        second = orchestrator.run(RunMode.EXPORT)

        expected = str(self.output_dir / f'{SHORT_LINK}-inclAtt.json')
        self.assertEqual(first.output_files, [expected])
        self.assertEqual(second.output_files, [expected])
        self.assertEqual([p.name for p in self.output_dir.iterdir()], [f'{SHORT_LINK}-inclAtt.json'])

    def test_malformed_card_list_is_reported_once(self):
        cards = [{'id': 'card-x', 'name': 'Broken', 'idShort': 'x1', 'url': 'https://trello.com/c/x'}]
        report = self._orchestrator(FakeTrelloClient(cards=cards)).run(RunMode.DOWNLOAD)

        self.assertEqual(report.state, RunState.FAILED)
        self.assertIn('x1', report.error_message)
        self.notifier.error.assert_called_once_with("Download attachments", ERROR_MESSAGE)
        self.notifier.success.assert_not_called()

    @mock.patch('orchestrator.export_orchestrator.TrelloClient')
    def test_client_built_from_config_is_closed(self, client_cls):
        client = FakeTrelloClient()
        client.close = mock.Mock()
        client_cls.from_config.return_value = client

        orchestrator = ExportOrchestrator(self.config, notifier=self.notifier)
        report = orchestrator.run(RunMode.DOWNLOAD)

        self.assertTrue(report.succeeded)
        client_cls.from_config.assert_called_once_with(self.config)
        client.close.assert_called_once_with()


class TestRunReportFormatter(unittest.TestCase):
    def setUp(self):
        self.formatter = RunReportFormatter()
        self.report = RunReport(
            mode=RunMode.DOWNLOAD,
            state=RunState.DONE,
            board_url=BOARD_URL,
            output_files=['out/00-cards.json', 'out/2-photo.png'],
            cards=2,
            attachments_found=2,
            attachments_saved=1,
            attachments_failed=1,
            links_skipped=1,
            duration=1.25
        )

    def test_console_report_lists_summary_and_files(self):
        text = self.formatter.format_console_report(self.report)

        self.assertIn("EXPORT REPORT", text)
        self.assertIn("Status:      done", text)
        self.assertIn("1 saved, 1 failed, 1 links skipped", text)
        self.assertIn("out/2-photo.png", text)

    def test_console_report_truncates_long_file_lists(self):
        self.report.output_files = [f'out/{n}-file.bin' for n in range(25)]
        text = self.formatter.format_console_report(self.report)

        self.assertIn("... and 5 more", text)
        self.assertNotIn("out/24-file.bin", text)

    def test_json_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / 'report.json'
            self.formatter.export_json_report(self.report, str(path))
            data = json.loads(path.read_text(encoding='utf-8'))

        self.assertEqual(data['mode'], 'download')
        self.assertEqual(data['state'], 'done')
        self.assertEqual(data['attachments_failed'], 1)


if __name__ == '__main__':
    unittest.main()
