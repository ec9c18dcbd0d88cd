"""Tests for the local file sink."""

import json
import os
import tempfile
import unittest
from pathlib import Path

from exporters.sink import FileSink, sanitize_file_name
from models import Blob


class TestFileSink(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name) / 'out'
        self.sink = FileSink(self.output_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def test_file_save_writes_raw_bytes(self):
        """Output directory is created on first write."""
        path = self.sink.trigger_file_save(Blob(b'\x89PNG data', 'image/png'), '3-photo.png')

        self.assertEqual(path, self.output_dir / '3-photo.png')
        self.assertEqual(path.read_bytes(), b'\x89PNG data')
        self.assertEqual(self.sink.stats['files_written'], 1)
        self.assertEqual(self.sink.stats['bytes_written'], len(b'\x89PNG data'))

    def test_json_save_is_pretty_printed_utf8(self):
        document = [{'id': 'c1', 'name': 'Café', 'idShort': 1, 'url': 'https://trello.com/c/x'}]
        path = self.sink.trigger_json_save(document, '00-cards.json')

        text = path.read_text(encoding='utf-8')
        self.assertIn('Café', text)
        self.assertIn('\n  {', text)
        self.assertEqual(json.loads(text), document)

    def test_repeated_name_gets_suffix(self):
        """Two attachments with the same name on one card both survive."""
        first = self.sink.trigger_file_save(Blob(b'one'), '1-notes.txt')
        second = self.sink.trigger_file_save(Blob(b'two'), '1-notes.txt')

        self.assertEqual(first.name, '1-notes.txt')
        self.assertEqual(second.name, '1-notes (1).txt')
        self.assertEqual(first.read_bytes(), b'one')
        self.assertEqual(second.read_bytes(), b'two')

    def test_reset_forgets_reserved_names(self):
        self.sink.trigger_file_save(Blob(b'one'), '1-notes.txt')
        self.sink.reset()
        path = self.sink.trigger_file_save(Blob(b'two'), '1-notes.txt')

        self.assertEqual(path.name, '1-notes.txt')
        self.assertEqual(path.read_bytes(), b'two')
        self.assertEqual(self.sink.stats['files_written'], 1)

    def test_existing_file_from_previous_run_is_replaced(self):
        self.output_dir.mkdir(parents=True)
        (self.output_dir / 'ABCDEFGH-inclAtt.json').write_text('stale', encoding='utf-8')

        path = self.sink.trigger_json_save({'shortLink': 'ABCDEFGH'}, 'ABCDEFGH-inclAtt.json')

        self.assertEqual(json.loads(path.read_text(encoding='utf-8')), {'shortLink': 'ABCDEFGH'})

    def test_no_temporary_files_left_behind(self):
        self.sink.trigger_file_save(Blob(b'data'), 'a.bin')
        self.assertEqual(os.listdir(self.output_dir), ['a.bin'])

    def test_name_cannot_escape_output_directory(self):
        path = self.sink.trigger_file_save(Blob(b'x'), '../../etc/passwd')
        self.assertEqual(path.parent, self.output_dir)


class TestSanitizeFileName(unittest.TestCase):

    def test_plain_names_are_kept(self):
        self.assertEqual(sanitize_file_name('12-Quarterly report (v2).pdf'), '12-Quarterly report (v2).pdf')

    def test_separators_and_control_characters_are_replaced(self):
        self.assertEqual(sanitize_file_name('a/b\\c\x00d'), 'a_b_c_d')

    def test_leading_dots_are_stripped(self):
        self.assertEqual(sanitize_file_name('..hidden'), 'hidden')

    def test_empty_name_falls_back(self):
        self.assertEqual(sanitize_file_name(''), 'untitled')
        self.assertEqual(sanitize_file_name('...'), 'untitled')

    def test_long_names_keep_extension(self):
        name = sanitize_file_name('x' * 300 + '.png')
        self.assertEqual(len(name), 200)
        self.assertTrue(name.endswith('.png'))


if __name__ == '__main__':
    unittest.main()
