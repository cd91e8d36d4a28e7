"""clamd wire codec: ``zPING`` and ``zINSTREAM`` exchanges over a connected stream.

The codec never opens or closes connections. It takes any object with
``sendall`` and ``recv`` (a connected :class:`socket.socket` in practice),
writes one command and reads the reply until the daemon closes its side.
"""

from __future__ import annotations

import logging
import struct
from typing import BinaryIO, Iterator, Protocol

from clamd_stream.exceptions import ClamdDecodeError, ClamdIOError, ClamdTimeoutError
from clamd_stream.models import resolve_chunk_size

logger = logging.getLogger(__name__)

PING_COMMAND = b"zPING\0"
INSTREAM_COMMAND = b"zINSTREAM\0"
TERMINATOR = b"\0\0\0\0"

_LENGTH = struct.Struct(">I")
_RECV_SIZE = 4096


class DuplexStream(Protocol):
    def sendall(self, data: bytes, /) -> None: ...

    def recv(self, bufsize: int, /) -> bytes: ...


class ChunkSource(Protocol):
    """Produces the payload one chunk at a time.

    ``next_chunk`` returns an empty bytes-like object once the source is
    exhausted.
    """

    def next_chunk(self) -> bytes | memoryview: ...


class FileChunkSource:
    """Reads chunks from a binary file object into one reused buffer."""

    def __init__(self, fileobj: BinaryIO, chunk_size: int | None = None) -> None:
        self._file = fileobj
        self._buffer = bytearray(resolve_chunk_size(chunk_size))
        self._view = memoryview(self._buffer)

    def next_chunk(self) -> memoryview:
        count = self._file.readinto(self._view)  # type: ignore[attr-defined]
        return self._view[: count or 0]


class BufferChunkSource:
    """Slices an in-memory payload into consecutive chunks."""

    def __init__(self, data: bytes | bytearray | memoryview, chunk_size: int | None = None) -> None:
        self._data = memoryview(data).cast("B")
        self._chunk_size = resolve_chunk_size(chunk_size)
        self._offset = 0

    def next_chunk(self) -> memoryview:
        start = self._offset
        self._offset = min(start + self._chunk_size, len(self._data))
        return self._data[start : self._offset]


def encode_chunk(data: bytes | memoryview) -> bytes:
    """Frame *data* as a big-endian 32-bit length followed by the payload."""
    return _LENGTH.pack(len(data)) + bytes(data)


def iter_frames(source: ChunkSource) -> Iterator[bytes]:
    """Yield every framed chunk of *source*, then the terminator."""
    count = 0
    while True:
        chunk = source.next_chunk()
        if not len(chunk):
            break
        count += 1
        yield encode_chunk(chunk)
    logger.debug("Streamed %d chunk(s), sending terminator", count)
    yield TERMINATOR


def ping(stream: DuplexStream) -> bytes:
    """Send ``zPING`` and return the daemon's full reply.

    Raises:
        ClamdIOError: If writing or reading fails.
    """
    _send(stream, PING_COMMAND)
    return read_to_end(stream)


def instream(stream: DuplexStream, source: ChunkSource) -> bytes:
    """Stream *source* with ``zINSTREAM`` and return the daemon's full reply.

    Raises:
        ClamdIOError: If writing or reading fails.
    """
    _send(stream, INSTREAM_COMMAND)
    for frame in iter_frames(source):
        _send(stream, frame)
    return read_to_end(stream)


def read_to_end(stream: DuplexStream) -> bytes:
    """Read from *stream* until the peer signals end of input."""
    parts: list[bytes] = []
    try:
        while True:
            data = stream.recv(_RECV_SIZE)
            if not data:
                break
            parts.append(data)
    except OSError as exc:
        raise _wrap(exc) from exc
    response = b"".join(parts)
    logger.debug("Received %d byte response", len(response))
    return response


def is_clean(response: bytes) -> bool:
    """Classify a daemon response.

    Returns ``True`` only when the decoded text contains ``"OK"`` and does
    not contain ``"FOUND"``.

    Raises:
        ClamdDecodeError: If *response* is not valid UTF-8.
    """
    try:
        text = bytes(response).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ClamdDecodeError(f"Response is not valid UTF-8: {exc}") from exc
    return "OK" in text and "FOUND" not in text


def _send(stream: DuplexStream, data: bytes) -> None:
    try:
        stream.sendall(data)
    except OSError as exc:
        raise _wrap(exc) from exc


def _wrap(exc: OSError) -> ClamdIOError:
    if isinstance(exc, TimeoutError):
        return ClamdTimeoutError.from_os_error(exc)
    return ClamdIOError.from_os_error(exc)
