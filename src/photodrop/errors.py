from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable reason a request was refused."""

    NO_FILE_PROVIDED = "NoFileProvided"
    UNSUPPORTED_MIME_TYPE = "UnsupportedMimeType"
    UNSUPPORTED_EXTENSION = "UnsupportedExtension"
    FILE_TOO_LARGE = "FileTooLarge"
    TOO_MANY_FILES = "TooManyFiles"
    WRONG_FIELD = "WrongFieldOrUnexpectedFile"
    UNRECOGNIZED_IMAGE_CONTENT = "UnrecognizedImageContent"
    CONTENT_TYPE_MISMATCH = "ContentTypeMismatch"
    MALFORMED_REQUEST = "MalformedRequest"
    STORAGE_IO_ERROR = "StorageIOError"
    TEMPLATE_LOAD_ERROR = "TemplateLoadError"


class UploadError(Exception):
    """Raised when an upload request has to be rejected.

    ``message`` is shown to the user as is, ``kind`` is used for logging and
    for the ``X-Upload-Error`` response header.
    """

    status_code = 400

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r})"


class StorageIOError(UploadError):
    """Reading, writing or deleting a file in the upload directory failed."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.STORAGE_IO_ERROR, message)


class TemplateLoadError(RuntimeError):
    """A page template could not be found or loaded."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Template {name} could not be loaded")
        self.name = name
        self.kind = ErrorKind.TEMPLATE_LOAD_ERROR


__all__ = ["ErrorKind", "UploadError", "StorageIOError", "TemplateLoadError"]
