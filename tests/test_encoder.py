"""Tests for base64 data URL encoding of attachment payloads."""

import base64
import unittest

from errors import EncodingError
from exporters.encoder import encode_payload, split_data_encoding, to_data_encoding
from models import Blob


class TestDataEncoding(unittest.TestCase):

    def test_data_url_carries_content_type_and_payload(self):
        blob = Blob(b'hello world', 'text/plain')
        self.assertEqual(to_data_encoding(blob), 'data:text/plain;base64,aGVsbG8gd29ybGQ=')

    def test_missing_content_type_defaults_to_octet_stream(self):
        self.assertTrue(to_data_encoding(Blob(b'\x00\x01', '')).startswith('data:application/octet-stream;base64,'))

    def test_binary_content_round_trips(self):
        """The payload decodes back to the exact downloaded bytes."""
        content = bytes(range(256)) * 4
        payload = encode_payload(Blob(content, 'application/pdf'))
        self.assertEqual(base64.b64decode(payload), content)
        self.assertNotIn(',', payload)

    def test_empty_blob_encodes_to_empty_payload(self):
        self.assertEqual(encode_payload(Blob(b'', 'image/png')), '')

    def test_bytearray_content_is_accepted(self):
        self.assertEqual(encode_payload(Blob(bytearray(b'abc'), 'text/plain')), 'YWJj')

    def test_non_binary_content_raises(self):
        with self.assertRaises(EncodingError):
            to_data_encoding(Blob('not bytes', 'text/plain'))


class TestSplitDataEncoding(unittest.TestCase):

    def test_keeps_text_after_first_comma(self):
        self.assertEqual(split_data_encoding('data:image/png;base64,iVBORw0KGgo='), 'iVBORw0KGgo=')

    def test_without_comma_raises(self):
        with self.assertRaises(EncodingError):
            split_data_encoding('data:image/png;base64')


if __name__ == '__main__':
    unittest.main()
