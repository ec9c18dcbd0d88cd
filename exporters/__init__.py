"""Export package for the board attachments pipeline.

Package Structure:
- encoder: base64 data-URL encoding of downloaded payloads
- sink: atomic writes of attachments and JSON documents to the output directory
- download_exporter: download mode (one file per attachment plus the cards manifest)
- json_exporter: export mode (bulk board JSON with attachments inlined)

Configuration Referenced:
- export.output_directory: Base output path for written files
- export.manifest_filename: Name of the sorted cards manifest
- export.manifest_after_settle: Write the manifest only after all downloads settle
- export.progress_bars: tqdm progress bars for attachment jobs
"""

from .download_exporter import DownloadExporter, DownloadResult
from .encoder import encode_payload, split_data_encoding, to_data_encoding
from .json_exporter import ExportResult, JsonExporter
from .sink import FileSink, sanitize_file_name

__all__ = [
    'DownloadExporter',
    'DownloadResult',
    'ExportResult',
    'FileSink',
    'JsonExporter',
    'encode_payload',
    'sanitize_file_name',
    'split_data_encoding',
    'to_data_encoding'
]
