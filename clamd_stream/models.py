"""Connection targets and client settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Union

from clamd_stream.exceptions import ClamdConfigurationError

DEFAULT_CHUNK_SIZE = 4096
DEFAULT_TARGET = "localhost:3310"
MAX_CHUNK_SIZE = 0xFFFFFFFF  # length prefix is an unsigned 32-bit integer


@dataclass(frozen=True, slots=True)
class TCPTarget:
    """A clamd daemon listening on a network address.

    Attributes:
        host: Hostname or IP address (IPv6 without brackets).
        port: TCP port, usually ``3310``.
    """

    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class UnixSocketTarget:
    """A clamd daemon listening on a local domain socket.

    Attributes:
        path: Filesystem path of the socket (e.g. ``/run/clamav/clamd.ctl``).
    """

    path: str

    def __str__(self) -> str:
        return f"unix://{self.path}"


Target = Union[TCPTarget, UnixSocketTarget]


def parse_target(value: Union[str, os.PathLike[str], Target]) -> Target:
    """Build a :data:`Target` from a string.

    Accepted forms: ``host:port``, ``tcp://host:port``, ``[::1]:port``,
    ``unix:///path/to.sock`` and a bare path containing ``/``.

    Raises:
        ClamdConfigurationError: If *value* matches none of those forms.
    """
    if isinstance(value, (TCPTarget, UnixSocketTarget)):
        return value
    if isinstance(value, os.PathLike):
        return UnixSocketTarget(os.fspath(value))

    text = value.strip()
    if text.startswith("unix://"):
        path = text[len("unix://"):]
        if not path:
            raise ClamdConfigurationError(f"Missing socket path in target: {value!r}")
        return UnixSocketTarget(path)
    if text.startswith("tcp://"):
        text = text[len("tcp://"):]
    elif "/" in text:
        return UnixSocketTarget(text)

    host, sep, port = text.rpartition(":")
    if not sep or not host:
        raise ClamdConfigurationError(f"Expected host:port, got {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_num = int(port)
    except ValueError:
        raise ClamdConfigurationError(f"Invalid port in target: {value!r}") from None
    if not 0 < port_num < 65536:
        raise ClamdConfigurationError(f"Port out of range in target: {value!r}")
    return TCPTarget(host, port_num)


def resolve_chunk_size(chunk_size: int | None) -> int:
    """Return *chunk_size*, or the default when it is ``None``.

    Raises:
        ClamdConfigurationError: If the value is not an integer in
            ``1..MAX_CHUNK_SIZE``.
    """
    if chunk_size is None:
        return DEFAULT_CHUNK_SIZE
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise ClamdConfigurationError(f"chunk_size must be an integer, got {chunk_size!r}")
    if not 1 <= chunk_size <= MAX_CHUNK_SIZE:
        raise ClamdConfigurationError(
            f"chunk_size must be between 1 and {MAX_CHUNK_SIZE}, got {chunk_size}"
        )
    return chunk_size
