"""Fetchers package: board resolution and attachment classification."""

from .attachment_classifier import classify, is_file
from .board_resolver import BoardResolver, resolve_export_url

__all__ = [
    'BoardResolver',
    'classify',
    'is_file',
    'resolve_export_url'
]
