"""Convert downloaded attachment payloads into text-safe encodings."""

import base64
import binascii

from errors import EncodingError
from models import Blob


def to_data_encoding(blob: Blob) -> str:
    """
    Encode a blob as a ``data:<mime>;base64,<payload>`` string.

    Args:
        blob: Downloaded payload

    Returns:
        Data URL string

    Raises:
        EncodingError: If the blob content can't be read as bytes
    """
    content = blob.content
    if isinstance(content, (bytearray, memoryview)):
        content = bytes(content)
    if not isinstance(content, bytes):
        raise EncodingError(f"Can't encode payload of type {type(content).__name__}")

    try:
        payload = base64.b64encode(content).decode('ascii')
    except (binascii.Error, UnicodeDecodeError) as e:
        raise EncodingError(f"Failed to encode payload: {e}") from e

    content_type = blob.content_type or 'application/octet-stream'
    return f"data:{content_type};base64,{payload}"


def split_data_encoding(data_url: str) -> str:
    """
    Keep only the payload of a data URL.

    ``data:image/png;base64,iVBORw0...`` becomes ``iVBORw0...``.

    Raises:
        EncodingError: If the string has no ``<prefix>,<payload>`` form
    """
    prefix, sep, payload = data_url.partition(',')
    if not sep:
        raise EncodingError("Encoded data has no '<prefix>,<payload>' form")
    return payload


def encode_payload(blob: Blob) -> str:
    """Encode a blob and return only its base64 payload."""
    return split_data_encoding(to_data_encoding(blob))


__all__ = ['to_data_encoding', 'split_data_encoding', 'encode_payload']
