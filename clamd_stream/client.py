"""Synchronous clamd client: blocking ``PING`` and ``INSTREAM`` calls."""

from __future__ import annotations

import os
from contextlib import closing
from pathlib import Path
from typing import BinaryIO, Union

from clamd_stream import protocol
from clamd_stream.connector import HAS_UNIX_SOCKETS, connect
from clamd_stream.models import (
    DEFAULT_TARGET,
    Target,
    TCPTarget,
    UnixSocketTarget,
    parse_target,
    resolve_chunk_size,
)

PathArg = Union[str, os.PathLike]
Buffer = Union[bytes, bytearray, memoryview]


class ClamdClient:
    """Synchronous client for a clamd daemon.

    Every call opens a fresh connection, performs one exchange and closes
    the connection again. Responses are returned as raw bytes; pass them to
    :meth:`is_clean` to classify them.

    Args:
        target: A :data:`~clamd_stream.models.Target` or a string accepted by
            :func:`~clamd_stream.models.parse_target`.
        chunk_size: Default ``INSTREAM`` chunk size in bytes.
        timeout: Optional socket timeout in seconds. ``None`` keeps the
            platform's blocking behaviour.

    Example::

        client = ClamdClient("unix:///run/clamav/clamd.ctl")
        response = client.scan_file("/tmp/sample.txt")
        print(client.is_clean(response))
    """

    def __init__(
        self,
        target: Union[str, Target] = DEFAULT_TARGET,
        chunk_size: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._target = parse_target(target)
        self._chunk_size = resolve_chunk_size(chunk_size)
        self._timeout = timeout

    @property
    def target(self) -> Target:
        return self._target

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def ping(self) -> bytes:
        """Send ``zPING`` and return the reply (normally ``b"PONG\\0"``).

        Raises:
            ClamdConnectionError: If the daemon is unreachable.
            ClamdIOError: If the exchange fails.
        """
        with closing(connect(self._target, self._timeout)) as sock:
            return protocol.ping(sock)

    def scan_file(self, file_path: PathArg, chunk_size: int | None = None) -> bytes:
        """Stream a file on disk to the daemon with ``zINSTREAM``.

        The file is opened before connecting, so a missing file never
        touches the daemon.

        Raises:
            FileNotFoundError: If *file_path* does not exist.
            ClamdConnectionError: If the daemon is unreachable.
            ClamdIOError: If the exchange fails.
        """
        size = self._resolve(chunk_size)
        with open(Path(file_path), "rb") as fh:
            return self.scan_stream(fh, size)

    def scan_stream(self, fileobj: BinaryIO, chunk_size: int | None = None) -> bytes:
        """Stream an open binary file object from its current position."""
        source = protocol.FileChunkSource(fileobj, self._resolve(chunk_size))
        with closing(connect(self._target, self._timeout)) as sock:
            return protocol.instream(sock, source)

    def scan_bytes(self, data: Buffer, chunk_size: int | None = None) -> bytes:
        """Stream an in-memory payload to the daemon with ``zINSTREAM``."""
        source = protocol.BufferChunkSource(data, self._resolve(chunk_size))
        with closing(connect(self._target, self._timeout)) as sock:
            return protocol.instream(sock, source)

    @staticmethod
    def is_clean(response: bytes) -> bool:
        """Return ``True`` if *response* reports ``OK`` and no ``FOUND``."""
        return protocol.is_clean(response)

    def _resolve(self, chunk_size: int | None) -> int:
        return self._chunk_size if chunk_size is None else resolve_chunk_size(chunk_size)


# ------------------------------------------------------------------
# Module-level entry points
# ------------------------------------------------------------------


def ping_tcp(host: str, port: int) -> bytes:
    """Send ``zPING`` to the daemon at *host*:*port*."""
    return ClamdClient(TCPTarget(host, port)).ping()


def scan_file_tcp(
    file_path: PathArg, host: str, port: int, chunk_size: int | None = None
) -> bytes:
    """Stream *file_path* to the daemon at *host*:*port*."""
    return ClamdClient(TCPTarget(host, port), chunk_size).scan_file(file_path)


def scan_buffer_tcp(
    buffer: Buffer, host: str, port: int, chunk_size: int | None = None
) -> bytes:
    """Stream *buffer* to the daemon at *host*:*port*."""
    return ClamdClient(TCPTarget(host, port), chunk_size).scan_bytes(buffer)


if HAS_UNIX_SOCKETS:

    def ping_socket(socket_path: PathArg) -> bytes:
        """Send ``zPING`` to the daemon listening on *socket_path*."""
        return ClamdClient(UnixSocketTarget(os.fspath(socket_path))).ping()

    def scan_file_socket(
        file_path: PathArg, socket_path: PathArg, chunk_size: int | None = None
    ) -> bytes:
        """Stream *file_path* to the daemon listening on *socket_path*."""
        target = UnixSocketTarget(os.fspath(socket_path))
        return ClamdClient(target, chunk_size).scan_file(file_path)

    def scan_buffer_socket(
        buffer: Buffer, socket_path: PathArg, chunk_size: int | None = None
    ) -> bytes:
        """Stream *buffer* to the daemon listening on *socket_path*."""
        target = UnixSocketTarget(os.fspath(socket_path))
        return ClamdClient(target, chunk_size).scan_bytes(buffer)
