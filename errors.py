"""Exception hierarchy shared by the client, resolvers and exporters."""

from typing import Optional


class TrelloExportError(Exception):
    """Base exception for all board export errors."""
    pass


class ResolutionError(TrelloExportError):
    """The current board URL does not match any board accessible to the session."""

    def __init__(self, board_url: str, message: Optional[str] = None):
        self.board_url = board_url
        super().__init__(message or f"Can't retrieve board id for {board_url}")


class FetchError(TrelloExportError):
    """A network call failed or returned an unexpected payload."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class EncodingError(TrelloExportError):
    """Binary content could not be converted to its text encoding."""
    pass


__all__ = ['TrelloExportError', 'ResolutionError', 'FetchError', 'EncodingError']
