"""Classify card attachments as stored files or external links."""

from typing import Any, Dict, Union

from models import Attachment, AttachmentKind


def classify(attachment: Union[Attachment, Dict[str, Any]]) -> AttachmentKind:
    """
    Decide from metadata alone whether an attachment is a stored file.

    An attachment is a FILE iff it was uploaded and carries a MIME type.
    Links come back with ``isUpload: false`` and an empty ``mimeType``.

    Args:
        attachment: Attachment model or raw API dictionary

    Returns:
        AttachmentKind.FILE or AttachmentKind.LINK
    """
    if isinstance(attachment, Attachment):
        is_upload = attachment.is_upload
        mime_type = attachment.mime_type
    else:
        is_upload = attachment.get('isUpload')
        mime_type = attachment.get('mimeType')

    if is_upload is True and isinstance(mime_type, str) and mime_type != '':
        return AttachmentKind.FILE
    return AttachmentKind.LINK


def is_file(attachment: Union[Attachment, Dict[str, Any]]) -> bool:
    """Shorthand for ``classify(attachment) is AttachmentKind.FILE``."""
    return classify(attachment) is AttachmentKind.FILE


__all__ = ['classify', 'is_file']
