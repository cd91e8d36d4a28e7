"""clamd-stream — Python client for the ClamAV ``clamd`` PING/INSTREAM protocol."""

from clamd_stream.client import (
    ClamdClient,
    ping_tcp,
    scan_buffer_tcp,
    scan_file_tcp,
)
from clamd_stream.connector import HAS_UNIX_SOCKETS, connect
from clamd_stream.exceptions import (
    ClamdConfigurationError,
    ClamdConnectionError,
    ClamdDecodeError,
    ClamdError,
    ClamdIOError,
    ClamdTimeoutError,
)
from clamd_stream.models import (
    DEFAULT_CHUNK_SIZE,
    TCPTarget,
    UnixSocketTarget,
    parse_target,
)
from clamd_stream.protocol import is_clean

__all__ = [
    "ClamdClient",
    "AsyncClamdClient",
    "TCPTarget",
    "UnixSocketTarget",
    "parse_target",
    "connect",
    "is_clean",
    "ping_tcp",
    "scan_file_tcp",
    "scan_buffer_tcp",
    "DEFAULT_CHUNK_SIZE",
    "HAS_UNIX_SOCKETS",
    "ClamdError",
    "ClamdIOError",
    "ClamdConnectionError",
    "ClamdTimeoutError",
    "ClamdDecodeError",
    "ClamdConfigurationError",
]

if HAS_UNIX_SOCKETS:
    from clamd_stream.client import ping_socket, scan_buffer_socket, scan_file_socket

    __all__ += ["ping_socket", "scan_file_socket", "scan_buffer_socket"]


def __getattr__(name: str) -> object:
    """Lazy-import the async client so ``asyncio`` is only loaded when used."""
    if name == "AsyncClamdClient":
        from clamd_stream.async_client import AsyncClamdClient

        return AsyncClamdClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
