"""Local file sink for downloaded attachments and JSON documents."""

import json
import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional, Set, Union

from models import Blob


class FileSink:
    """
    Persists run artifacts into a single output directory.

    Every write goes to a temporary file first and is moved into place with
    ``os.replace``, so a failed write never leaves a partial artifact behind.
    Names that collide within one run get a ``(n)`` suffix, the way a browser
    names repeated downloads.
    """

    def __init__(self, output_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.logger = logger or logging.getLogger('trello_attachments_exporter.exporters.sink')
        self._lock = threading.Lock()
        self._reserved: Set[str] = set()
        self.stats = {
            'files_written': 0,
            'bytes_written': 0
        }

    def reset(self) -> None:
        """Forget names reserved by the previous run."""
        with self._lock:
            self._reserved.clear()
            self.stats = {
                'files_written': 0,
                'bytes_written': 0
            }

    def trigger_file_save(self, blob: Blob, file_name: str) -> Path:
        """
        Save raw binary content as ``<output_dir>/<file_name>``.

        Args:
            blob: Downloaded payload
            file_name: Target file name

        Returns:
            Path of the written file
        """
        path = self._reserve_path(file_name)
        self._atomic_write(path, blob.content)
        self.logger.debug(f"Saved {blob.size} bytes to {path}")
        return path

    def trigger_json_save(self, document: Any, file_name: str) -> Path:
        """
        Serialize a document as pretty-printed JSON and save it.

        Args:
            document: JSON-serializable document
            file_name: Target file name

        Returns:
            Path of the written file
        """
        data = json.dumps(document, indent=2, ensure_ascii=False).encode('utf-8')
        path = self._reserve_path(file_name)
        self._atomic_write(path, data)
        self.logger.info(f"Saved JSON document to {path}")
        return path

    def _reserve_path(self, file_name: str) -> Path:
        """Pick a unique path for this run and remember it."""
        safe_name = sanitize_file_name(file_name)
        stem, ext = os.path.splitext(safe_name)

        with self._lock:
            candidate = safe_name
            counter = 1
            while candidate in self._reserved:
                candidate = f"{stem} ({counter}){ext}"
                counter += 1
            self._reserved.add(candidate)

        if candidate != safe_name:
            self.logger.debug(f"File name '{safe_name}' already used in this run, saving as '{candidate}'")
        return self.output_dir / candidate

    def _atomic_write(self, path: Path, data: bytes) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.output_dir), prefix='.', suffix='.part')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        with self._lock:
            self.stats['files_written'] += 1
            self.stats['bytes_written'] += len(data)


def sanitize_file_name(file_name: str) -> str:
    """
    Reduce a remote file name to one safe path component.

    Path separators and control characters are replaced with ``_`` and
    leading dots are stripped, so names can't escape the output directory.
    """
    if not file_name:
        return "untitled"

    sanitized = re.sub(r'[\\/\x00-\x1f]', '_', file_name).strip()
    sanitized = sanitized.lstrip('.')

    max_len = 200
    if len(sanitized) > max_len:
        stem, ext = os.path.splitext(sanitized)
        sanitized = stem[:max_len - len(ext)] + ext

    if not sanitized:
        sanitized = "untitled"

    return sanitized


__all__ = ['FileSink', 'sanitize_file_name']
