from __future__ import annotations

from typing import Dict, List, Union

from pydantic import BaseModel, Field

from .errors import ErrorKind


class StoredFile(BaseModel):
    """A file part that passed validation and was fully written to disk."""

    field: str
    original_name: str
    filename: str
    content_type: str
    size: int
    path: str

    @property
    def url(self) -> str:
        return f"/uploads/{self.filename}"


# ---------- What has been received so far ----------


class One(BaseModel):
    file: StoredFile


class Many(BaseModel):
    files: List[StoredFile] = Field(default_factory=list)


class ByField(BaseModel):
    fields: Dict[str, List[StoredFile]] = Field(default_factory=dict)


ReceivedFiles = Union[One, Many, ByField]


def flatten(received: ReceivedFiles | None) -> List[StoredFile]:
    """Return every stored file held by *received*, in order."""
    if received is None:
        return []
    if isinstance(received, One):
        return [received.file]
    if isinstance(received, Many):
        return list(received.files)
    if isinstance(received, ByField):
        return [f for files in received.fields.values() for f in files]
    raise TypeError(f"Unsupported received files shape: {type(received).__name__}")


# ---------- Per-part validation verdict ----------


class Accepted(BaseModel):
    pass


class Rejected(BaseModel):
    kind: ErrorKind
    detail: str


Verdict = Union[Accepted, Rejected]


class UploadResult(BaseModel):
    """Successful outcome of an upload request."""

    received: Union[One, Many, ByField]
    title: str | None = None
    description: str | None = None

    @property
    def files(self) -> List[StoredFile]:
        return flatten(self.received)


__all__ = [
    "StoredFile",
    "One",
    "Many",
    "ByField",
    "ReceivedFiles",
    "flatten",
    "Accepted",
    "Rejected",
    "Verdict",
    "UploadResult",
]
