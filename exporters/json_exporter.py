"""Board JSON export with attachment content inlined as base64."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tqdm import tqdm

from errors import FetchError, TrelloExportError
from exporters.encoder import encode_payload
from exporters.sink import FileSink
from fetchers.attachment_classifier import classify
from fetchers.board_resolver import resolve_export_url
from models import AttachmentKind, RunState

EXPORT_FILENAME_SUFFIX = '-inclAtt.json'


@dataclass
class ExportResult:
    """Outcome of a successful export run."""

    export_url: str
    short_link: str
    output_path: Path
    cards: int
    attachments_inlined: int
    links_skipped: int
    encoded_bytes: int


@dataclass(frozen=True)
class InlineJob:
    """One attachment to inline, addressed by its position in the document."""

    card_index: int
    attachment_index: int
    url: Optional[str]
    name: str


class JsonExporter:
    """
    Export a board as JSON with every stored file inlined.

    The bulk export document is fetched once and then mutated in place: each
    FILE attachment gets a ``file`` field with its base64 content and loses its
    ``url`` field. Link attachments and every other field are left untouched.

    The run is all or nothing. If any inline job fails, the remaining jobs are
    cancelled and nothing is written.
    """

    def __init__(
        self,
        client,
        sink: FileSink,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the JSON exporter.

        Args:
            client: TrelloClient instance
            sink: FileSink receiving the augmented document
            config: Configuration dictionary
            logger: Logger instance
        """
        self.client = client
        self.sink = sink
        self.config = config
        self.logger = logger or logging.getLogger('trello_attachments_exporter.exporters.json_exporter')

        self.show_progress = config.get('export', {}).get('progress_bars', True)
        self.max_workers = config.get('advanced', {}).get('max_workers', 8)

        self.state = RunState.IDLE
        self.failed_state: Optional[RunState] = None

    def _transition(self, state: RunState) -> None:
        self.logger.debug(f"Export run: {self.state.value} -> {state.value}")
        if state == RunState.FAILED:
            self.failed_state = self.state
        self.state = state

    def run(self, page_url: str, candidate_export_url: Optional[str] = None) -> ExportResult:
        """
        Export the board shown at ``page_url`` with attachments inlined.

        Args:
            page_url: URL of the board page
            candidate_export_url: Export link offered alongside the page, if any

        Returns:
            ExportResult describing the written document

        Raises:
            TrelloExportError: If any stage fails; nothing is written then
        """
        try:
            self._transition(RunState.RESOLVING_EXPORT_URL)
            export_url = resolve_export_url(page_url, candidate_export_url)
            self.logger.info(f"Using export URL {export_url}")

            self._transition(RunState.FETCHING_EXPORT)
            document = self._fetch_export(export_url)

            self._transition(RunState.INLINING)
            jobs, links_skipped = self.plan_inline_jobs(document)
            encoded_bytes = self._run_inline_jobs(document, jobs)

            short_link = document['shortLink']
            output_path = self.sink.trigger_json_save(document, f"{short_link}{EXPORT_FILENAME_SUFFIX}")
        except (TrelloExportError, OSError):
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.DONE)
        self.logger.info(
            f"Exported board {short_link}: {len(jobs)} attachments inlined "
            f"({encoded_bytes} encoded bytes), {links_skipped} links kept"
        )
        return ExportResult(
            export_url=export_url,
            short_link=short_link,
            output_path=output_path,
            cards=len(document.get('cards') or []),
            attachments_inlined=len(jobs),
            links_skipped=links_skipped,
            encoded_bytes=encoded_bytes
        )

    def _fetch_export(self, export_url: str) -> Dict[str, Any]:
        """Fetch the bulk export and check its shape."""
        document = self.client.get_board_export(export_url)
        if not isinstance(document, dict):
            raise FetchError(f"Unexpected export payload from {export_url}", url=export_url)
        if not document.get('shortLink'):
            raise FetchError(f"Export payload has no shortLink: {export_url}", url=export_url)
        if not isinstance(document.get('cards', []), list):
            raise FetchError(f"Export payload has no card list: {export_url}", url=export_url)
        return document

    @staticmethod
    def plan_inline_jobs(document: Dict[str, Any]) -> Tuple[List[InlineJob], int]:
        """
        List every FILE attachment of the document by position.

        Returns:
            Tuple of (jobs, number of link attachments left as they are)
        """
        jobs: List[InlineJob] = []
        links_skipped = 0
        for i, card in enumerate(document.get('cards') or []):
            if not isinstance(card, dict):
                continue
            for j, attachment in enumerate(card.get('attachments') or []):
                if not isinstance(attachment, dict):
                    continue
                if classify(attachment) is AttachmentKind.FILE:
                    jobs.append(InlineJob(i, j, attachment.get('url'), attachment.get('name') or ''))
                else:
                    links_skipped += 1
        return jobs, links_skipped

    def _run_inline_jobs(self, document: Dict[str, Any], jobs: List[InlineJob]) -> int:
        """Fan out all inline jobs, then join; the first failure aborts the run."""
        if not jobs:
            return 0

        encoded_bytes = 0
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='inline') as pool:
            futures = [pool.submit(self._inline_attachment, document, job) for job in jobs]

            completed = tqdm(
                as_completed(futures),
                total=len(futures),
                desc="Inlining attachments",
                disable=not self.show_progress
            )
            for future in completed:
                error = future.exception()
                if error is not None:
                    for pending in futures:
                        pending.cancel()
                    self.logger.error(f"Inline job failed, aborting export: {error}")
                    if isinstance(error, TrelloExportError):
                        raise error
                    raise FetchError(f"Inline job failed: {error}") from error
                encoded_bytes += future.result()

        return encoded_bytes

    def _inline_attachment(self, document: Dict[str, Any], job: InlineJob) -> int:
        """Download, encode and write one attachment into its own slot."""
        blob = self.client.fetch_binary(job.url)
        payload = encode_payload(blob)

        attachment = document['cards'][job.card_index]['attachments'][job.attachment_index]
        attachment['file'] = payload
        attachment.pop('url', None)

        self.logger.debug(f"Inlined '{job.name}' ({blob.size} bytes)")
        return len(payload)


__all__ = ['JsonExporter', 'ExportResult', 'InlineJob', 'EXPORT_FILENAME_SUFFIX']
