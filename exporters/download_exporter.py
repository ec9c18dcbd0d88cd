"""Download every file attachment on a board and write the cards manifest."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from tqdm import tqdm

from errors import FetchError, TrelloExportError
from exporters.sink import FileSink
from fetchers.attachment_classifier import classify
from fetchers.board_resolver import BoardResolver
from logger import ProgressTracker
from models import Attachment, AttachmentKind, Card, CardManifestEntry, RunState


@dataclass
class DownloadResult:
    """Outcome of a download run once every tracked job has settled."""

    board_id: str
    manifest: List[CardManifestEntry] = field(default_factory=list)
    manifest_path: Optional[Path] = None
    saved_files: List[Path] = field(default_factory=list)
    attachments_found: int = 0
    links_skipped: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def attachments_failed(self) -> int:
        return len(self.failures)


class JobTracker:
    """Thread-safe record of the download jobs issued by card jobs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._jobs: List[Tuple[Future, str]] = []
        self.links_skipped = 0
        self.card_failures: List[Tuple[str, str]] = []

    def add(self, future: Future, label: str) -> None:
        with self._lock:
            self._jobs.append((future, label))

    def skip_link(self) -> None:
        with self._lock:
            self.links_skipped += 1

    def card_failed(self, label: str, error: Exception) -> None:
        with self._lock:
            self.card_failures.append((label, str(error)))

    def jobs(self) -> List[Tuple[Future, str]]:
        with self._lock:
            return list(self._jobs)


class DownloadExporter:
    """
    Walks board -> cards -> attachments and saves each stored file locally.

    This exporter:
    1. Resolves the board id from the board page URL
    2. Fetches every card on the board (fatal on failure)
    3. Appends each card to the manifest and fans out one attachment
       metadata fetch per card; each FILE attachment becomes a download job
    4. Writes the manifest sorted by ``idShort`` once all card jobs are issued
    5. Waits for every tracked job to settle

    Attachment-level failures are logged and counted but never abort the run.
    """

    def __init__(
        self,
        client,
        sink: FileSink,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the download exporter.

        Args:
            client: TrelloClient instance
            sink: FileSink receiving attachments and the manifest
            config: Configuration dictionary
            logger: Logger instance
        """
        self.client = client
        self.sink = sink
        self.config = config
        self.logger = logger or logging.getLogger('trello_attachments_exporter.exporters.download_exporter')

        export_config = config.get('export', {})
        self.manifest_filename = export_config.get('manifest_filename') or '00-cards.json'
        self.manifest_after_settle = export_config.get('manifest_after_settle', False)
        self.show_progress = export_config.get('progress_bars', True)
        self.max_workers = config.get('advanced', {}).get('max_workers', 8)

        self.state = RunState.IDLE
        self.failed_state: Optional[RunState] = None

    def _transition(self, state: RunState) -> None:
        self.logger.debug(f"Download run: {self.state.value} -> {state.value}")
        if state == RunState.FAILED:
            self.failed_state = self.state
        self.state = state

    def run(self, board_url: str) -> DownloadResult:
        """
        Download all file attachments of the board shown at ``board_url``.

        Args:
            board_url: URL of the board page

        Returns:
            DownloadResult after every download job has settled

        Raises:
            ResolutionError: If the board can't be resolved
            FetchError: If the card list can't be fetched
        """
        try:
            self._transition(RunState.RESOLVING_BOARD)
            board_id = BoardResolver(self.client, self.logger).resolve_board_id(board_url)

            self._transition(RunState.FETCHING_CARDS)
            cards = self._fetch_cards(board_id)
        except TrelloExportError:
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.FETCHING_ATTACHMENTS)
        try:
            result = self._download_all(board_id, cards)
        except OSError:
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.DONE)
        self.logger.info(
            f"Board {board_id}: {len(result.manifest)} cards, "
            f"{len(result.saved_files)}/{result.attachments_found} attachments saved, "
            f"{result.links_skipped} links skipped"
        )
        return result

    def _download_all(self, board_id: str, cards: List[Card]) -> DownloadResult:
        """Fan out card jobs, write the manifest and wait for every download."""
        result = DownloadResult(board_id=board_id)
        tracker = JobTracker()

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='card') as card_pool, \
                ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix='download') as download_pool:
            card_futures = []
            for card in cards:
                result.manifest.append(card.manifest_entry())
                card_futures.append(
                    card_pool.submit(self._process_card, board_id, card, download_pool, tracker)
                )

            # Every card job is issued; the manifest doesn't depend on their outcome
            try:
                if not self.manifest_after_settle:
                    result.manifest_path = self._save_manifest(result.manifest)
            finally:
                # Card jobs must finish submitting before the download pool shuts down
                wait(card_futures)
            for card, future in zip(cards, card_futures):
                error = future.exception()
                if error is not None:
                    self.logger.warning(f"Attachment lookup crashed for card {card.id_short}: {error}")
                    tracker.card_failed(f"card {card.id_short}", error)
            self._settle_downloads(tracker, result)

        if self.manifest_after_settle:
            result.manifest_path = self._save_manifest(result.manifest)

        result.links_skipped = tracker.links_skipped
        result.failures = tracker.card_failures + result.failures
        return result

    def _fetch_cards(self, board_id: str) -> List[Card]:
        """Fetch every card on the board."""
        data = self.client.get_board_cards(board_id)
        if not isinstance(data, list):
            raise FetchError(f"Unexpected response while listing cards of board {board_id}")

        try:
            cards = [Card.from_dict(item) for item in data if isinstance(item, dict) and 'id' in item]
        except (TypeError, ValueError) as e:
            raise FetchError(f"Unexpected card payload on board {board_id}: {e}") from e
        self.logger.info(f"Found {len(cards)} cards on board {board_id}")
        return cards

    def _process_card(
        self,
        board_id: str,
        card: Card,
        download_pool: ThreadPoolExecutor,
        tracker: JobTracker
    ) -> None:
        """Fetch one card's attachments and issue a download job per stored file."""
        label = f"card {card.id_short}"
        try:
            data = self.client.get_card_attachments(board_id, card.id)
        except TrelloExportError as e:
            self.logger.warning(f"Failed to fetch attachments for {label}: {e}")
            tracker.card_failed(label, e)
            return

        if not isinstance(data, dict):
            self.logger.warning(f"Unexpected attachment payload for {label} - skipping")
            tracker.card_failed(label, FetchError(f"Unexpected attachment payload for {label}"))
            return

        for raw in data.get('attachments') or []:
            if not isinstance(raw, dict):
                continue
            attachment = Attachment.from_dict(raw)
            if classify(attachment) is AttachmentKind.LINK:
                self.logger.debug(f"Skipping link attachment '{attachment.name}' on {label}")
                tracker.skip_link()
                continue

            card.add_attachment(attachment)
            file_name = f"{card.id_short}-{attachment.save_name}"
            future = download_pool.submit(self._download_attachment, attachment, file_name)
            tracker.add(future, file_name)

    def _download_attachment(self, attachment: Attachment, file_name: str) -> Path:
        blob = self.client.fetch_binary(attachment.url)
        return self.sink.trigger_file_save(blob, file_name)

    def _settle_downloads(self, tracker: JobTracker, result: DownloadResult) -> None:
        """Wait for every download job and account for its outcome."""
        jobs = tracker.jobs()
        labels = {future: label for future, label in jobs}
        result.attachments_found = len(jobs)
        if not jobs:
            return

        with ProgressTracker(len(jobs), "attachments") as progress:
            completed = tqdm(
                as_completed(labels),
                total=len(jobs),
                desc="Downloading attachments",
                disable=not self.show_progress
            )
            for future in completed:
                label = labels[future]
                error = future.exception()
                if error is None:
                    result.saved_files.append(future.result())
                    progress.increment(success=True)
                else:
                    self.logger.warning(f"Failed to download '{label}': {error}")
                    result.failures.append((label, str(error)))
                    progress.increment(success=False)

    def _save_manifest(self, manifest: List[CardManifestEntry]) -> Path:
        """Sort the manifest by card short id and save it."""
        manifest.sort(key=lambda entry: entry.id_short)
        return self.sink.trigger_json_save([entry.to_dict() for entry in manifest], self.manifest_filename)


__all__ = ['DownloadExporter', 'DownloadResult', 'JobTracker']
