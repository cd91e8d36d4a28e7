"""Open connected sockets to a clamd daemon."""

from __future__ import annotations

import logging
import socket

from clamd_stream.exceptions import (
    ClamdConfigurationError,
    ClamdConnectionError,
    ClamdTimeoutError,
)
from clamd_stream.models import Target, TCPTarget, UnixSocketTarget

logger = logging.getLogger(__name__)

HAS_UNIX_SOCKETS = hasattr(socket, "AF_UNIX")


def connect(target: Target, timeout: float | None = None) -> socket.socket:
    """Connect to *target* and return the socket.

    No handshake is performed. With ``timeout=None`` the socket is left in
    the platform's default blocking mode; otherwise the timeout also applies
    to every later send and receive.

    Raises:
        ClamdConnectionError: If the target cannot be resolved or reached.
        ClamdTimeoutError: If *timeout* elapses while connecting.
        ClamdConfigurationError: If *target* is a local socket and the
            platform has no ``AF_UNIX``.
    """
    try:
        if isinstance(target, TCPTarget):
            sock = _connect_tcp(target, timeout)
        elif isinstance(target, UnixSocketTarget):
            sock = _connect_unix(target, timeout)
        else:
            raise ClamdConfigurationError(f"Unsupported target: {target!r}")
    except TimeoutError as exc:
        raise ClamdTimeoutError.from_os_error(exc) from exc
    except OSError as exc:
        raise ClamdConnectionError.from_os_error(exc) from exc

    logger.debug("Connected to clamd at %s", target)
    return sock


def _connect_tcp(target: TCPTarget, timeout: float | None) -> socket.socket:
    address = (target.host, target.port)
    if timeout is None:
        return socket.create_connection(address)
    return socket.create_connection(address, timeout=timeout)


def _connect_unix(target: UnixSocketTarget, timeout: float | None) -> socket.socket:
    if not HAS_UNIX_SOCKETS:
        raise ClamdConfigurationError("Local domain sockets are not supported on this platform")
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        if timeout is not None:
            sock.settimeout(timeout)
        sock.connect(target.path)
    except BaseException:
        sock.close()
        raise
    return sock
