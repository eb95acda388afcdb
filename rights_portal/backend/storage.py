"""
Local file storage for receipts, signatures and generated forms.

Files are written under ``UPLOAD_DIR`` with a random identifier and
the extension implied by their content type.  The identifier is what
the database stores and what the admin pages use to view or download
a file.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import re
import uuid
from typing import Optional

from ..config import ALLOWED_UPLOAD_TYPES, MAX_UPLOAD_BYTES, get_upload_dir

logger = logging.getLogger(__name__)

_FILE_ID = re.compile(r'^[0-9a-f]{32}\.[a-z0-9]{2,4}$')


def validate_upload(filename: str, content_type: Optional[str], size: int) -> Optional[str]:
    """Check an upload against the portal limits.

    Returns:
        An error message suitable for display, or ``None`` when the
        file is acceptable.
    """
    content_type = (content_type or '').lower()
    if content_type not in ALLOWED_UPLOAD_TYPES:
        guessed, _ = mimetypes.guess_type(filename or '')
        if (guessed or '').lower() not in ALLOWED_UPLOAD_TYPES or content_type not in ('', 'application/octet-stream'):
            return 'Invalid file type. JPG, PNG or PDF only.'
    if size > MAX_UPLOAD_BYTES:
        return 'File size exceeds 5MB'
    if size == 0:
        return 'File is empty'
    return None


def _extension_for(filename: str, content_type: Optional[str]) -> str:
    ext = ALLOWED_UPLOAD_TYPES.get((content_type or '').lower())
    if ext:
        return ext
    guessed, _ = mimetypes.guess_type(filename or '')
    return ALLOWED_UPLOAD_TYPES.get((guessed or '').lower(), '.bin')


def _write(content: bytes, ext: str) -> str:
    directory = get_upload_dir()
    os.makedirs(directory, exist_ok=True)
    file_id = f"{uuid.uuid4().hex}{ext}"
    with open(os.path.join(directory, file_id), 'wb') as fh:
        fh.write(content)
    return file_id


def save_upload(content: bytes, filename: str, content_type: Optional[str]) -> str:
    """Validate and store an uploaded file, returning its identifier.

    Raises:
        ValueError: If the upload fails :func:`validate_upload`.
    """
    error = validate_upload(filename, content_type, len(content))
    if error:
        raise ValueError(f"{filename}: {error}")
    file_id = _write(content, _extension_for(filename, content_type))
    logger.info(f"Stored upload {filename!r} as {file_id}")
    return file_id


def save_generated(content: bytes, suffix: str = '.pdf') -> str:
    """Store a file produced by the portal itself (e.g. a filled form)."""
    return _write(content, suffix)


def resolve(file_id: str) -> str:
    """Return the on-disk path for ``file_id``.

    Raises:
        FileNotFoundError: If the identifier is malformed or unknown.
    """
    if not file_id or not _FILE_ID.match(file_id):
        raise FileNotFoundError(file_id)
    path = os.path.join(get_upload_dir(), file_id)
    if not os.path.isfile(path):
        raise FileNotFoundError(file_id)
    return path


def guess_media_type(file_id: str) -> str:
    media_type, _ = mimetypes.guess_type(file_id)
    return media_type or 'application/octet-stream'


def delete(file_id: str) -> None:
    """Remove a stored file; unknown identifiers are ignored."""
    try:
        path = resolve(file_id)
    except FileNotFoundError:
        return
    os.remove(path)
    logger.info(f"Removed stored file {file_id}")
