"""Data models for the Trello board attachments export pipeline."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger('trello_attachments_exporter')


class AttachmentKind(Enum):
    """Whether an attachment is a stored file or an external link."""
    FILE = "file"
    LINK = "link"


class RunMode(Enum):
    """The two user-triggered entry points."""
    DOWNLOAD = "download"
    EXPORT = "export"


class RunState(Enum):
    """Lifecycle states of a single export run."""
    IDLE = "idle"
    RESOLVING_BOARD = "resolving_board"
    FETCHING_CARDS = "fetching_cards"
    FETCHING_ATTACHMENTS = "fetching_attachments"
    RESOLVING_EXPORT_URL = "resolving_export_url"
    FETCHING_EXPORT = "fetching_export"
    INLINING = "inlining"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Board:
    """A board visible to the current session."""

    id: str
    url: str
    short_link: str
    short_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Board':
        """Build a board from a `members/me/boards` entry."""
        return cls(
            id=data['id'],
            url=data.get('url', ''),
            short_link=data.get('shortLink', ''),
            short_url=data.get('shortUrl')
        )


@dataclass
class Attachment:
    """Represents a card attachment as returned by the API."""

    id: str
    name: str
    url: Optional[str]
    file_name: Optional[str]
    mime_type: str
    bytes: Optional[int]
    is_upload: bool
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Attachment':
        """Build an attachment from its API representation.

        Links come back with ``bytes: null``, ``isUpload: false``,
        ``mimeType: ""`` and ``fileName: null``.
        """
        return cls(
            id=data.get('id', ''),
            name=data.get('name') or '',
            url=data.get('url'),
            file_name=data.get('fileName'),
            mime_type=data.get('mimeType') or '',
            bytes=data.get('bytes'),
            is_upload=data.get('isUpload') is True,
            file=data.get('file')
        )

    @property
    def save_name(self) -> str:
        """Name used for the local file; falls back to the display name."""
        return self.file_name or self.name or self.id

    def to_dict(self) -> Dict[str, Any]:
        """Serialize attachment using API field names."""
        data = {
            'id': self.id,
            'name': self.name,
            'fileName': self.file_name,
            'mimeType': self.mime_type,
            'bytes': self.bytes,
            'isUpload': self.is_upload,
        }
        if self.file is not None:
            data['file'] = self.file
        else:
            data['url'] = self.url
        return data


@dataclass
class CardManifestEntry:
    """Flat summary of a card, written to the cards manifest."""

    id: str
    name: str
    id_short: int
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'idShort': self.id_short,
            'url': self.url
        }


@dataclass
class Card:
    """A card on a board with its attachments."""

    id: str
    name: str
    id_short: int
    url: str
    attachments: List[Attachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Card':
        """Build a card from a `cards/all` entry."""
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            id_short=int(data.get('idShort') or 0),
            url=data.get('url', ''),
            attachments=[Attachment.from_dict(a) for a in data.get('attachments') or []]
        )

    def add_attachment(self, attachment: Attachment) -> None:
        """Add an attachment."""
        self.attachments.append(attachment)

    def manifest_entry(self) -> CardManifestEntry:
        """Project the card onto its manifest entry."""
        return CardManifestEntry(id=self.id, name=self.name, id_short=self.id_short, url=self.url)


@dataclass
class Blob:
    """Raw binary payload fetched from a download URL."""

    content: bytes
    content_type: str = 'application/octet-stream'

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class RunReport:
    """Outcome of one export run, used for the console and JSON reports."""

    mode: RunMode
    state: RunState = RunState.IDLE
    board_url: Optional[str] = None
    output_files: List[str] = field(default_factory=list)
    cards: int = 0
    attachments_found: int = 0
    attachments_saved: int = 0
    attachments_failed: int = 0
    links_skipped: int = 0
    duration: float = 0.0
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.DONE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize report to dictionary."""
        return {
            'mode': self.mode.value,
            'state': self.state.value,
            'board_url': self.board_url,
            'output_files': list(self.output_files),
            'cards': self.cards,
            'attachments_found': self.attachments_found,
            'attachments_saved': self.attachments_saved,
            'attachments_failed': self.attachments_failed,
            'links_skipped': self.links_skipped,
            'duration': self.duration,
            'error_message': self.error_message
        }


__all__ = [
    'AttachmentKind',
    'Attachment',
    'Blob',
    'Board',
    'Card',
    'CardManifestEntry',
    'RunMode',
    'RunReport',
    'RunState'
]
