"""Streaming multipart source built on python-multipart.

The request body is pulled from the client only as fast as the upload
handler consumes parts, so a part can be rejected from its headers alone and
an oversized part stops the read as soon as the limit is crossed. The
handler only ever sees :class:`FilePart` objects, which keeps validation and
cleanup testable without an HTTP stack.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Callable, Deque, Dict, Optional, Tuple

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import Request

from .errors import ErrorKind, UploadError


@dataclass
class FilePart:
    """One file part of a multipart body, readable exactly once."""

    field: str
    filename: str
    content_type: str
    open_stream: Callable[[], AsyncIterator[bytes]]

    def chunks(self) -> AsyncIterator[bytes]:
        return self.open_stream()


async def _no_body() -> AsyncIterator[bytes]:
    for chunk in ():
        yield chunk


def _malformed(message: str) -> UploadError:
    return UploadError(ErrorKind.MALFORMED_REQUEST, message)


class MultipartStream:
    """Pull-driven wrapper around :class:`MultipartParser`.

    ``parts()`` yields file parts in wire order; plain text fields are
    collected into ``text_fields`` as they go by (first value wins). A part
    has to be consumed, or abandoned, before the next one is produced.
    """

    def __init__(
        self,
        body: AsyncIterable[bytes],
        boundary: Optional[bytes],
        charset: str = "utf-8",
        max_field_size: int = 1024 * 1024,
        max_fields: int = 1000,
    ) -> None:
        self._body = body.__aiter__()
        self._events: Deque[Tuple[str, bytes]] = deque()
        self._finished = boundary is None
        self._part_open = False
        self.charset = charset
        self.max_field_size = max_field_size
        self.max_fields = max_fields
        self.text_fields: Dict[str, str] = {}
        self.bytes_received = 0
        self._parser: Optional[MultipartParser] = None
        if boundary is not None:
            self._parser = MultipartParser(boundary, self._callbacks())

    @classmethod
    def from_request(
        cls, request: Request, max_field_size: int = 1024 * 1024, max_fields: int = 1000
    ) -> "MultipartStream":
        """Wrap *request*; anything but ``multipart/form-data`` carries no parts."""
        content_type, params = parse_options_header(request.headers.get("content-type", ""))
        if content_type != b"multipart/form-data" or not params.get(b"boundary"):
            return cls(_no_body(), None)
        charset = params.get(b"charset", b"utf-8").decode("latin-1")
        return cls(
            request.stream(),
            params[b"boundary"],
            charset=charset,
            max_field_size=max_field_size,
            max_fields=max_fields,
        )

    def _callbacks(self) -> Dict[str, Callable]:
        def data_event(name: str) -> Callable[[bytes, int, int], None]:
            def callback(data: bytes, start: int, end: int) -> None:
                self._events.append((name, data[start:end]))

            return callback

        def notify_event(name: str) -> Callable[[], None]:
            def callback() -> None:
                self._events.append((name, b""))

            return callback

        return {
            "on_part_begin": notify_event("part_begin"),
            "on_part_data": data_event("part_data"),
            "on_part_end": notify_event("part_end"),
            "on_header_field": data_event("header_field"),
            "on_header_value": data_event("header_value"),
            "on_header_end": notify_event("header_end"),
            "on_headers_finished": notify_event("headers_finished"),
        }

    async def _next_event(self) -> Optional[Tuple[str, bytes]]:
        """Return the next parser event, reading more of the body only when needed."""
        while not self._events:
            if self._finished or self._parser is None:
                return None
            try:
                chunk = await self._body.__anext__()
            except StopAsyncIteration:
                self._finished = True
                self._parser.finalize()
                continue
            self.bytes_received += len(chunk)
            try:
                self._parser.write(chunk)
            except MultipartParseError as exc:
                self._finished = True
                raise _malformed("The multipart body could not be parsed.") from exc
        return self._events.popleft()

    async def _part_data(self) -> AsyncIterator[bytes]:
        while self._part_open:
            event = await self._next_event()
            if event is None:
                raise _malformed("The upload ended before the file was complete.")
            kind, data = event
            if kind == "part_data":
                yield data
            elif kind == "part_end":
                self._part_open = False

    async def _drain_part(self) -> None:
        async for _ in self._part_data():
            pass

    async def _read_text_field(self, name: str) -> None:
        value = bytearray()
        async for data in self._part_data():
            value += data
            if len(value) > self.max_field_size:
                raise _malformed(f"Form field {name} is too large.")
        if len(self.text_fields) >= self.max_fields and name not in self.text_fields:
            raise _malformed(f"Too many form fields. Maximum {self.max_fields} allowed.")
        self.text_fields.setdefault(name, value.decode(self.charset, errors="replace"))

    def _decode(self, value: bytes) -> str:
        return value.decode(self.charset, errors="replace")

    async def parts(self) -> AsyncIterator[FilePart]:
        """Yield the file parts of the body, skipping blank file inputs."""
        headers: Dict[bytes, bytes] = {}
        header_field = b""
        header_value = b""
        while True:
            event = await self._next_event()
            if event is None:
                return
            kind, data = event
            if kind == "part_begin":
                headers = {}
                header_field = header_value = b""
            elif kind == "header_field":
                header_field += data
            elif kind == "header_value":
                header_value += data
            elif kind == "header_end":
                headers[header_field.lower()] = header_value
                header_field = header_value = b""
            elif kind == "headers_finished":
                self._part_open = True
                disposition = headers.get(b"content-disposition")
                if disposition is None:
                    raise _malformed("A form part is missing its Content-Disposition header.")
                _, options = parse_options_header(disposition)
                name = self._decode(options.get(b"name", b""))
                if b"filename" not in options:
                    await self._read_text_field(name)
                    continue
                filename = self._decode(options[b"filename"])
                if filename:
                    content_type = headers.get(b"content-type", b"").decode("latin-1").strip()
                    yield FilePart(
                        field=name,
                        filename=filename,
                        content_type=content_type or "application/octet-stream",
                        open_stream=self._part_data,
                    )
                # whatever the consumer left unread of this part
                await self._drain_part()


__all__ = ["FilePart", "MultipartStream"]
