"""Upload handling: per-part validation, streaming to disk and cleanup.

Every public coroutine either returns the files it stored or raises
:class:`~photodrop.errors.UploadError` after deleting everything written for
the request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import (
    AsyncIterable,
    AsyncIterator,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from .config import Settings
from .errors import ErrorKind, UploadError
from .models import ByField, Many, One, Rejected, StoredFile, UploadResult
from .multipart import FilePart
from .storage import UploadStore
from .validation import validate_part, verify_image_content

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"
DEFAULT_DESCRIPTION = "No description"

PartSource = Union[Iterable[FilePart], AsyncIterable[FilePart]]


async def _as_async(parts: PartSource) -> AsyncIterator[FilePart]:
    if isinstance(parts, AsyncIterable):
        async for part in parts:
            yield part
    else:
        for part in parts:
            yield part


@dataclass(frozen=True)
class FieldRule:
    name: str
    max_count: int


@dataclass(frozen=True)
class RouteMessages:
    """User-facing wording for size and count failures of one route.

    ``wrong_field`` may contain a ``{field}`` placeholder for the name of the
    unexpected field.
    """

    too_large: str
    too_many: str
    wrong_field: str
    missing: str

    def unexpected(self, field: str) -> str:
        return self.wrong_field.format(field=field)


class UploadHandler:
    def __init__(
        self,
        store: UploadStore,
        max_file_size: int,
        allowed_mime_types: Sequence[str],
        allowed_extensions: Sequence[str],
        verify_content: bool = False,
        size_label: str = "5 MB",
    ) -> None:
        self.store = store
        self.max_file_size = max_file_size
        self.allowed_mime_types = list(allowed_mime_types)
        self.allowed_extensions = list(allowed_extensions)
        self.verify_content = verify_content
        self.size_label = size_label

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[UploadStore] = None) -> "UploadHandler":
        return cls(
            store or UploadStore(settings.upload_dir),
            max_file_size=settings.max_file_size,
            allowed_mime_types=settings.allowed_mime_types,
            allowed_extensions=settings.allowed_extensions,
            verify_content=settings.verify_content,
            size_label=settings.max_file_size_label,
        )

    # ---------- Route-level operations ----------

    async def single(self, parts: PartSource, field: str = "file") -> One:
        """Accept exactly one file under *field*."""
        messages = RouteMessages(
            too_large=f"The file is too large. The maximum allowed size is {self.size_label}.",
            too_many="Too many files uploaded or incorrect field name.",
            wrong_field="Too many files uploaded or incorrect field name.",
            missing="No file uploaded.",
        )
        received = await self.receive(parts, [FieldRule(field, 1)], messages, required=field)
        return One(file=received.fields[field][0])

    async def multiple(
        self, parts: PartSource, field: str = "files", max_count: int = 3
    ) -> Many:
        """Accept between one and *max_count* files under *field*."""
        messages = RouteMessages(
            too_large=f"One of the files is too large. The maximum allowed size is {self.size_label}.",
            too_many=f"Too many files uploaded. Maximum {max_count} files allowed.",
            wrong_field="Unexpected file field: {field}.",
            missing="No file uploaded.",
        )
        received = await self.receive(
            parts, [FieldRule(field, max_count)], messages, required=field
        )
        return Many(files=received.fields[field])

    async def with_data(
        self,
        parts: PartSource,
        text_fields: Mapping[str, str],
        image_field: str = "image",
        gallery_field: str = "gallery",
        gallery_max: int = 2,
    ) -> UploadResult:
        """Accept a required main image, an optional gallery and two text fields.

        *text_fields* is read only after every part has been consumed, so it
        may be filled in while *parts* is being iterated.
        """
        messages = RouteMessages(
            too_large=f"One of the files is too large. The maximum allowed size is {self.size_label}.",
            too_many="Too many files uploaded for one of the fields.",
            wrong_field="Unexpected file field: {field}.",
            missing="Main image is required.",
        )
        rules = [FieldRule(image_field, 1), FieldRule(gallery_field, gallery_max)]
        received = await self.receive(parts, rules, messages, required=image_field)
        return UploadResult(
            received=received,
            title=text_fields.get("title") or DEFAULT_TITLE,
            description=text_fields.get("description") or DEFAULT_DESCRIPTION,
        )

    # ---------- Core ----------

    def check(self, part: FilePart) -> None:
        verdict = validate_part(
            part.filename, part.content_type, self.allowed_mime_types, self.allowed_extensions
        )
        if isinstance(verdict, Rejected):
            raise UploadError(verdict.kind, verdict.detail)

    async def receive(
        self,
        parts: PartSource,
        rules: Sequence[FieldRule],
        messages: RouteMessages,
        required: Optional[str] = None,
    ) -> ByField:
        """Validate and store *parts* field by field.

        On any failure, including cancellation, every file stored so far is
        removed before the exception propagates.
        """
        limits: Dict[str, int] = {rule.name: rule.max_count for rule in rules}
        received = ByField(fields={rule.name: [] for rule in rules})
        try:
            async for part in _as_async(parts):
                if part.field not in limits:
                    raise UploadError(
                        ErrorKind.WRONG_FIELD, messages.unexpected(part.field)
                    )
                bucket: List[StoredFile] = received.fields[part.field]
                if len(bucket) >= limits[part.field]:
                    raise UploadError(ErrorKind.TOO_MANY_FILES, messages.too_many)
                self.check(part)
                stored = await self.store.write(part, self.max_file_size, messages.too_large)
                bucket.append(stored)
                if self.verify_content:
                    verdict = verify_image_content(Path(stored.path), stored.content_type)
                    if isinstance(verdict, Rejected):
                        raise UploadError(verdict.kind, verdict.detail)
            if required is not None and not received.fields.get(required):
                raise UploadError(ErrorKind.NO_FILE_PROVIDED, messages.missing)
        except UploadError as exc:
            removed = self.store.cleanup(received)
            logger.warning(
                "Upload rejected (%s): %s; removed %d file(s)", exc.kind.value, exc.message, removed
            )
            raise
        except BaseException:
            self.store.cleanup(received)
            raise
        return received


__all__ = ["UploadHandler", "FieldRule", "RouteMessages", "DEFAULT_TITLE", "DEFAULT_DESCRIPTION"]
