"""Asynchronous clamd client built on :mod:`asyncio` streams."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import BinaryIO, Iterable, Union

from clamd_stream import protocol
from clamd_stream.client import Buffer, PathArg
from clamd_stream.connector import HAS_UNIX_SOCKETS
from clamd_stream.exceptions import (
    ClamdConfigurationError,
    ClamdConnectionError,
    ClamdIOError,
    ClamdTimeoutError,
)
from clamd_stream.models import (
    DEFAULT_TARGET,
    Target,
    TCPTarget,
    parse_target,
    resolve_chunk_size,
)

logger = logging.getLogger(__name__)


class AsyncClamdClient:
    """Asynchronous client for a clamd daemon.

    Mirrors :class:`~clamd_stream.client.ClamdClient`; every method is a
    coroutine and every call uses its own connection.

    Args:
        target: A :data:`~clamd_stream.models.Target` or a target string.
        chunk_size: Default ``INSTREAM`` chunk size in bytes.
        timeout: Optional limit in seconds for a whole exchange, connect
            included.

    Example::

        async with AsyncClamdClient("localhost:3310") as client:
            response = await client.scan_bytes(b"payload")
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

    async def ping(self) -> bytes:
        """Send ``zPING`` and return the reply."""
        return await self._exchange([protocol.PING_COMMAND])

    async def scan_file(self, file_path: PathArg, chunk_size: int | None = None) -> bytes:
        """Stream a file on disk to the daemon with ``zINSTREAM``.

        Raises:
            FileNotFoundError: If *file_path* does not exist.
        """
        size = self._resolve(chunk_size)
        with open(Path(file_path), "rb") as fh:
            return await self.scan_stream(fh, size)

    async def scan_stream(self, fileobj: BinaryIO, chunk_size: int | None = None) -> bytes:
        """Stream an open binary file object from its current position."""
        source = protocol.FileChunkSource(fileobj, self._resolve(chunk_size))
        return await self._exchange(self._instream_frames(source))

    async def scan_bytes(self, data: Buffer, chunk_size: int | None = None) -> bytes:
        """Stream an in-memory payload to the daemon with ``zINSTREAM``."""
        source = protocol.BufferChunkSource(data, self._resolve(chunk_size))
        return await self._exchange(self._instream_frames(source))

    @staticmethod
    def is_clean(response: bytes) -> bool:
        """Return ``True`` if *response* reports ``OK`` and no ``FOUND``."""
        return protocol.is_clean(response)

    async def close(self) -> None:
        """No-op; connections never outlive a call."""

    async def __aenter__(self) -> AsyncClamdClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _instream_frames(source: protocol.ChunkSource) -> Iterable[bytes]:
        yield protocol.INSTREAM_COMMAND
        yield from protocol.iter_frames(source)

    async def _exchange(self, frames: Iterable[bytes]) -> bytes:
        if self._timeout is None:
            return await self._run(frames)
        try:
            return await asyncio.wait_for(self._run(frames), self._timeout)
        except asyncio.TimeoutError as exc:
            raise ClamdTimeoutError(
                f"clamd exchange with {self._target} timed out after {self._timeout}s"
            ) from exc

    async def _run(self, frames: Iterable[bytes]) -> bytes:
        reader, writer = await self._open()
        try:
            for frame in frames:
                writer.write(frame)
                await writer.drain()
            response = await reader.read()
        except OSError as exc:
            raise ClamdIOError.from_os_error(exc) from exc
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Error while closing clamd connection: %s", exc)

        logger.debug("Received %d byte response from %s", len(response), self._target)
        return response

    async def _open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        target = self._target
        try:
            if isinstance(target, TCPTarget):
                return await asyncio.open_connection(target.host, target.port)
            if not HAS_UNIX_SOCKETS:
                raise ClamdConfigurationError(
                    "Local domain sockets are not supported on this platform"
                )
            return await asyncio.open_unix_connection(target.path)
        except OSError as exc:
            raise ClamdConnectionError.from_os_error(exc) from exc

    def _resolve(self, chunk_size: int | None) -> int:
        return self._chunk_size if chunk_size is None else resolve_chunk_size(chunk_size)
