r"""Request bodies with an explicit replay capability.

A retried attempt must send exactly the bytes of the first attempt. A
``RequestBody`` therefore declares up front whether it can be opened
more than once:

- buffer-backed bodies (``bytes`` or ``str``) are always replayable;
- regenerator-backed bodies call a factory that returns a fresh stream;
- seekable binary files are rewound to their initial position;
- one-shot streams (non-seekable files, iterators) can be opened once.
"""

from __future__ import annotations

__all__ = ["DEFAULT_CHUNK_SIZE", "RequestBody", "as_body"]

from collections.abc import Callable, Iterable, Iterator
from typing import IO, Any, Union

from langdock.exceptions import BodyNotReplayableError

DEFAULT_CHUNK_SIZE = 64 * 1024

Content = Union[bytes, Iterator[bytes]]
BodySource = Union[
    "RequestBody", bytes, bytearray, memoryview, str, IO[bytes], Iterable[bytes], Callable[[], Any]
]


def _iter_file(fileobj: IO[bytes], chunk_size: int) -> Iterator[bytes]:
    while chunk := fileobj.read(chunk_size):
        yield chunk


def _to_content(source: Any, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Content:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, str):
        return source.encode("utf-8")
    if hasattr(source, "read"):
        return _iter_file(source, chunk_size)
    if isinstance(source, Iterable):
        return iter(source)
    msg = f"Unsupported body stream type: {type(source).__name__}"
    raise TypeError(msg)


class RequestBody:
    r"""A request payload that knows whether it can be replayed.

    Use the ``from_*`` constructors instead of calling ``__init__``
    directly.

    Args:
        opener: Function returning the content to send for one attempt.
        replayable: Whether ``opener`` may be called more than once.
        kind: Short label used in ``repr`` and log messages.

    Example:
        ```pycon
        >>> from langdock.body import RequestBody
        >>> body = RequestBody.from_bytes(b'{"query": "invoices"}')
        >>> body.replayable
        True
        >>> body.open()
        b'{"query": "invoices"}'
        >>> body.open()
        b'{"query": "invoices"}'

        ```
    """

    def __init__(self, opener: Callable[[], Content], *, replayable: bool, kind: str) -> None:
        self._opener = opener
        self._replayable = replayable
        self._kind = kind
        self._opened = False

    def __repr__(self) -> str:
        return f"{self.__class__.__qualname__}(kind={self._kind!r}, replayable={self._replayable})"

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | memoryview | str) -> RequestBody:
        """Create a buffer-backed body.

        Args:
            data: The payload. ``str`` is encoded as UTF-8.

        Returns:
            A replayable body.
        """
        payload = _to_content(data)
        return cls(lambda: payload, replayable=True, kind="buffer")

    @classmethod
    def from_factory(
        cls, factory: Callable[[], Any], chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> RequestBody:
        """Create a regenerator-backed body.

        Args:
            factory: Function called once per attempt. It returns bytes, a
                binary file object or an iterable of bytes, and each call
                must produce the same bytes.
            chunk_size: Read size used when ``factory`` returns a file.

        Returns:
            A replayable body.
        """
        return cls(lambda: _to_content(factory(), chunk_size), replayable=True, kind="factory")

    @classmethod
    def from_file(cls, fileobj: IO[bytes], chunk_size: int = DEFAULT_CHUNK_SIZE) -> RequestBody:
        """Create a body streamed from a binary file object.

        A seekable file is rewound to its current position before every
        attempt, so it is replayable without being buffered. A
        non-seekable file is a one-shot stream.

        Args:
            fileobj: The binary file object.
            chunk_size: The read size.

        Returns:
            A streaming body.
        """
        seekable = getattr(fileobj, "seekable", None)
        if seekable is not None and seekable():
            start = fileobj.tell()

            def _rewind() -> Content:
                fileobj.seek(start)
                return _iter_file(fileobj, chunk_size)

            return cls(_rewind, replayable=True, kind="file")
        return cls(
            lambda: _iter_file(fileobj, chunk_size), replayable=False, kind="stream"
        )

    @classmethod
    def from_stream(cls, chunks: Iterable[bytes]) -> RequestBody:
        """Create a one-shot body from an iterable of byte chunks.

        Args:
            chunks: The chunks to send.

        Returns:
            A body that can be opened only once.
        """
        return cls(lambda: iter(chunks), replayable=False, kind="stream")

    @property
    def replayable(self) -> bool:
        """Whether the body can be opened again after being sent."""
        return self._replayable

    @property
    def kind(self) -> str:
        return self._kind

    def open(self) -> Content:
        """Return the content to send for one attempt.

        Returns:
            The payload as ``bytes`` or as an iterator of byte chunks.

        Raises:
            BodyNotReplayableError: If the body is a one-shot stream that
                was already opened.
        """
        if self._opened and not self._replayable:
            msg = f"request body ({self._kind}) was already sent and cannot be replayed"
            raise BodyNotReplayableError(msg)
        self._opened = True
        return self._opener()


def as_body(source: BodySource | None) -> RequestBody | None:
    r"""Coerce a body source into a ``RequestBody``.

    Args:
        source: ``None``, an existing ``RequestBody``, bytes or ``str``, a
            binary file object, a zero-argument regenerator, or an
            iterable of byte chunks.

    Returns:
        The body, or ``None`` when ``source`` is ``None``.

    Raises:
        TypeError: If ``source`` has an unsupported type.

    Example:
        ```pycon
        >>> import io
        >>> from langdock.body import as_body
        >>> as_body(None) is None
        True
        >>> as_body(b"abc")
        RequestBody(kind='buffer', replayable=True)
        >>> as_body(io.BytesIO(b"abc"))
        RequestBody(kind='file', replayable=True)
        >>> as_body(lambda: b"abc")
        RequestBody(kind='factory', replayable=True)
        >>> as_body(iter([b"a", b"bc"]))
        RequestBody(kind='stream', replayable=False)

        ```
    """
    if source is None or isinstance(source, RequestBody):
        return source
    if isinstance(source, (bytes, bytearray, memoryview, str)):
        return RequestBody.from_bytes(source)
    if hasattr(source, "read"):
        return RequestBody.from_file(source)
    if callable(source):
        return RequestBody.from_factory(source)
    if isinstance(source, Iterable):
        return RequestBody.from_stream(source)
    msg = f"Unsupported body type: {type(source).__name__}"
    raise TypeError(msg)
