from __future__ import annotations

import logging
import random
import threading
import time
from pathlib import Path
from typing import BinaryIO, Tuple

from .errors import ErrorKind, StorageIOError, UploadError
from .models import ReceivedFiles, StoredFile, flatten
from .multipart import FilePart

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 5

_clock_lock = threading.Lock()
_last_timestamp = 0


def _timestamp_ms() -> int:
    """Wall-clock milliseconds that never go backwards within the process."""
    global _last_timestamp
    with _clock_lock:
        now = int(time.time() * 1000)
        if now < _last_timestamp:
            now = _last_timestamp
        _last_timestamp = now
        return now


def generate_filename(original: str) -> str:
    """Build ``<timestamp>-<random>.<ext>`` keeping the original extension."""
    suffix = Path(original).suffix
    return f"{_timestamp_ms()}-{random.randint(0, 10**9)}{suffix}"


class UploadStore:
    """The upload directory: writes accepted parts and removes rejected ones."""

    def __init__(self, directory: Path | str) -> None:
        self.directory = Path(directory)

    def ensure_directory(self) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        return self.directory

    def path_for(self, name: str) -> Path:
        """Resolve *name* inside the upload directory."""
        root = self.directory.resolve()
        candidate = (root / name).resolve()
        if candidate.parent != root:
            raise ValueError(f"{name!r} is not a plain file name")
        return candidate

    def _create(self, original: str) -> Tuple[Path, BinaryIO]:
        """Open a new, not yet existing file named after *original*.

        A name that already exists belongs to another upload and is never
        touched; a fresh name is generated instead.
        """
        for _ in range(CREATE_ATTEMPTS):
            path = self.path_for(generate_filename(original))
            try:
                return path, open(path, "xb")
            except FileExistsError:
                logger.warning("Generated name %s is already taken, retrying", path.name)
            except OSError as exc:
                logger.exception("Failed to create %s for %s", path.name, original)
                raise StorageIOError(f"Could not store {original}.") from exc
        raise StorageIOError(f"Could not store {original}.")

    async def write(
        self,
        part: FilePart,
        max_size: int,
        too_large_message: str = "The file is too large.",
    ) -> StoredFile:
        """Stream *part* to a freshly named file, stopping at *max_size* bytes.

        Whatever happens before the part is complete (size cutoff, disk
        error, cancelled request) the partial file is removed. Only the file
        created by this call is ever removed.
        """
        path, dest = self._create(part.filename)
        written = 0
        try:
            with dest:
                async for chunk in part.chunks():
                    written += len(chunk)
                    if written > max_size:
                        raise UploadError(ErrorKind.FILE_TOO_LARGE, too_large_message)
                    dest.write(chunk)
        except UploadError:
            self.remove(path, missing_ok=True)
            raise
        except OSError as exc:
            logger.exception("Failed to store %s as %s", part.filename, path.name)
            self.remove(path, missing_ok=True)
            raise StorageIOError(f"Could not store {part.filename}.") from exc
        except BaseException:
            # cancelled or disconnected mid-write
            self.remove(path, missing_ok=True)
            raise

        logger.info(
            "Stored %s (%s, %d bytes) as %s", part.filename, part.content_type, written, path.name
        )
        return StoredFile(
            field=part.field,
            original_name=part.filename,
            filename=path.name,
            content_type=part.content_type,
            size=written,
            path=str(path),
        )

    def remove(self, path: Path | str, *, missing_ok: bool = False) -> bool:
        """Delete *path*, logging instead of raising. Returns ``True`` on success."""
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            if not missing_ok:
                logger.warning("%s: %s was already gone", ErrorKind.STORAGE_IO_ERROR.value, path)
            return False
        except OSError as exc:
            logger.warning(
                "%s: failed to delete %s: %s", ErrorKind.STORAGE_IO_ERROR.value, path, exc
            )
            return False
        logger.debug("Deleted %s", path)
        return True

    def cleanup(self, received: ReceivedFiles | None) -> int:
        """Delete every file in *received*, whatever its shape.

        Returns the number of files actually deleted.
        """
        removed = 0
        for stored in flatten(received):
            if self.remove(stored.path):
                removed += 1
        return removed


__all__ = ["UploadStore", "generate_filename"]
