"""Tests for logging setup and progress tracking."""

import logging
import threading
import unittest

from logger import LOGGER_NAME, ProgressTracker, _sanitize_config, setup_logging


class TestSetupLogging(unittest.TestCase):

    def test_explicit_level_wins_over_verbosity(self):
        logger = setup_logging(verbosity=0, level='debug')
        self.assertEqual(logger.name, LOGGER_NAME)
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertFalse(logger.propagate)

    def test_verbosity_levels(self):
        self.assertEqual(setup_logging(verbosity=0).level, logging.WARNING)
        self.assertEqual(setup_logging(verbosity=1).level, logging.INFO)
        self.assertEqual(setup_logging(verbosity=3).level, logging.DEBUG)

    def test_invalid_level_raises(self):
        with self.assertRaises(ValueError):
            setup_logging(level='LOUD')


class TestProgressTracker(unittest.TestCase):

    def test_counts_concurrent_increments(self):
        with ProgressTracker(40, "attachments") as progress:
            workers = [
                threading.Thread(target=progress.increment, kwargs={'success': n % 4 != 0})
                for n in range(40)
            ]
            for worker in workers:
                worker.start()
            for worker in workers:
                worker.join()

        self.assertEqual(progress.processed_items, 40)
        self.assertEqual(progress.successful_items, 30)
        self.assertEqual(progress.failed_items, 10)

    def test_summary_level_follows_failures(self):
        """A partial failure warns; a batch where everything failed is an error."""
        logger = setup_logging(verbosity=1)
        with self.assertLogs(logger, level='INFO') as logs:
            with ProgressTracker(2) as progress:
                progress.increment(success=True)
                progress.increment(success=False)
            with ProgressTracker(1) as progress:
                progress.increment(success=False)

        self.assertIn('WARNING:trello_attachments_exporter:Attachments settled: 1 saved, 1 failed', logs.output[1])
        self.assertTrue(logs.output[3].startswith('ERROR:trello_attachments_exporter:Attachments settled: 0 saved'))

    def test_elapsed_formatting(self):
        self.assertEqual(ProgressTracker._format_elapsed(5.0), "5.0s")
        self.assertEqual(ProgressTracker._format_elapsed(125), "2m 5s")
        self.assertEqual(ProgressTracker._format_elapsed(3725), "1h 2m 5s")


class TestSanitizeConfig(unittest.TestCase):

    def test_credentials_are_redacted(self):
        config = {'trello': {'api_key': 'abc', 'token': 'def', 'board_url': 'https://trello.com/b/x'}}
        sanitized = _sanitize_config(config)

        self.assertEqual(sanitized['trello']['api_key'], '***REDACTED***')
        self.assertEqual(sanitized['trello']['token'], '***REDACTED***')
        self.assertEqual(sanitized['trello']['board_url'], 'https://trello.com/b/x')
        self.assertEqual(config['trello']['token'], 'def')


if __name__ == '__main__':
    unittest.main()
