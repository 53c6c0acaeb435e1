"""Per-part checks applied before and after a file part is written."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from PIL import Image, UnidentifiedImageError

from .errors import ErrorKind
from .models import Accepted, Rejected, Verdict

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type it is allowed to be declared as
FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "MPO": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


def file_extension(filename: str) -> str:
    """Lower-cased extension of *filename*, including the dot, or ``""``."""
    return Path(filename).suffix.lower()


def _human_list(values: Iterable[str]) -> str:
    return ", ".join(values)


def validate_part(
    filename: str,
    content_type: str,
    allowed_mime_types: Iterable[str],
    allowed_extensions: Iterable[str],
) -> Verdict:
    """Check the declared MIME type, then the extension, of one file part.

    The extension is only looked at when the MIME type is acceptable, so the
    returned rejection always names the first check that failed.
    """
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    allowed_mime_types = list(allowed_mime_types)
    if mime not in allowed_mime_types:
        return Rejected(
            kind=ErrorKind.UNSUPPORTED_MIME_TYPE,
            detail=(
                f"File type {content_type or 'unknown'} is not allowed. "
                f"Only images are accepted ({_human_list(allowed_mime_types)})."
            ),
        )

    extension = file_extension(filename)
    allowed_extensions = list(allowed_extensions)
    if extension not in allowed_extensions:
        return Rejected(
            kind=ErrorKind.UNSUPPORTED_EXTENSION,
            detail=(
                f"Extension {extension or '(none)'} is not allowed. "
                f"Use {_human_list(e.lstrip('.') for e in allowed_extensions)}."
            ),
        )
    return Accepted()


def verify_image_content(path: Path, content_type: str) -> Verdict:
    """Sniff the stored bytes with Pillow and compare against the declared type."""
    try:
        with Image.open(path) as img:
            detected = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        logger.debug("Pillow could not decode %s: %s", path, exc)
        return Rejected(
            kind=ErrorKind.UNRECOGNIZED_IMAGE_CONTENT,
            detail="The file content is not a recognized image.",
        )

    declared = (content_type or "").split(";", 1)[0].strip().lower()
    actual = FORMAT_MIME_TYPES.get(detected or "")
    if actual != declared:
        return Rejected(
            kind=ErrorKind.CONTENT_TYPE_MISMATCH,
            detail=(
                f"The file content ({detected or 'unknown'}) does not match "
                f"the declared type {content_type}."
            ),
        )
    return Accepted()


__all__ = ["validate_part", "verify_image_content", "file_extension", "FORMAT_MIME_TYPES"]
