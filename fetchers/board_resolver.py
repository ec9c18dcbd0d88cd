"""Map the current board page onto backend identifiers and export URLs."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from errors import FetchError, ResolutionError
from models import Board

logger = logging.getLogger('trello_attachments_exporter.fetchers.board_resolver')

EXPORT_URL_PATTERN = re.compile(r'/b/([0-9a-zA-Z]{8})\.json')


class BoardResolver:
    """Resolve the displayed board URL to the board's backend id."""

    def __init__(self, client, logger: Optional[logging.Logger] = None):
        """
        Args:
            client: TrelloClient (or any object exposing ``get_boards()``)
            logger: Logger instance
        """
        self.client = client
        self.logger = logger or logging.getLogger('trello_attachments_exporter.fetchers.board_resolver')

    def resolve_board(self, page_url: str) -> Board:
        """
        Find the accessible board whose URL equals the page URL.

        Exact ``url`` matches win; a board whose ``shortUrl`` equals the page
        URL is accepted when no ``url`` matches.

        Args:
            page_url: URL of the displayed board page

        Returns:
            Matching Board

        Raises:
            FetchError: If the board list can't be fetched or isn't a list
            ResolutionError: If no board matches
        """
        boards = self.client.get_boards()
        if not isinstance(boards, list):
            raise FetchError("Unexpected response while listing boards")

        self.logger.debug(f"Looking up {page_url} among {len(boards)} boards")

        candidates = [Board.from_dict(b) for b in boards if isinstance(b, dict) and 'id' in b]
        for board in candidates:
            if board.url == page_url:
                return board
        for board in candidates:
            if board.short_url and board.short_url == page_url:
                return board

        raise ResolutionError(page_url)

    def resolve_board_id(self, page_url: str) -> str:
        """Return the backend id of the board displayed at ``page_url``."""
        board = self.resolve_board(page_url)
        self.logger.info(f"Resolved board {board.short_link} -> {board.id}")
        return board.id


def resolve_export_url(page_url: str, candidate: Optional[str] = None) -> str:
    """
    Work out the bulk JSON export URL for a board.

    The candidate export link is used when it has the ``/b/<shortLink>.json``
    shape (relative links are resolved against the page URL). Otherwise the
    URL is derived from the page URL by replacing its last path segment with
    ``.json``: ``https://trello.com/b/AbCdEfGh/board-name`` becomes
    ``https://trello.com/b/AbCdEfGh.json``.

    Args:
        page_url: URL of the displayed board page
        candidate: Export link found alongside the page, if any

    Returns:
        Export URL
    """
    if candidate and EXPORT_URL_PATTERN.search(candidate):
        return urljoin(page_url, candidate)

    scheme, netloc, path, _query, _fragment = urlsplit(page_url)
    path = path.rstrip('/')
    if '/' not in path:
        raise ResolutionError(page_url, f"Can't derive export URL from {page_url}")
    path = path[:path.rfind('/')] + '.json'
    return urlunsplit((scheme, netloc, path, '', ''))


__all__ = ['BoardResolver', 'resolve_export_url', 'EXPORT_URL_PATTERN']
