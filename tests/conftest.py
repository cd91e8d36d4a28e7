"""Shared test fixtures, including an in-process fake clamd daemon."""

from __future__ import annotations

import shutil
import socket
import socketserver
import struct
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

import pytest

from clamd_stream.connector import HAS_UNIX_SOCKETS

EICAR = b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"


@pytest.fixture()
def sample_bytes() -> bytes:
    return b"Hello, ClamAV!"


@pytest.fixture()
def eicar_bytes() -> bytes:
    """EICAR anti-malware test string (safe; every AV recognises it)."""
    return EICAR


# ------------------------------------------------------------------ #
# Wire helpers
# ------------------------------------------------------------------ #


@dataclass
class Exchange:
    """What a client sent in one connection, split into its parts."""

    command: bytes
    chunks: list[bytes] = field(default_factory=list)
    prefixes: list[bytes] = field(default_factory=list)
    terminator: bytes = b""
    raw: bytes = b""

    @property
    def payload(self) -> bytes:
        return b"".join(self.chunks)


def split_exchange(raw: bytes) -> Exchange:
    """Parse the raw bytes of a PING or INSTREAM request."""
    end = raw.index(b"\0") + 1
    exchange = Exchange(command=raw[:end], raw=raw)
    if exchange.command != b"zINSTREAM\0":
        return exchange
    pos = end
    while True:
        prefix = raw[pos : pos + 4]
        pos += 4
        (length,) = struct.unpack(">I", prefix)
        if length == 0:
            exchange.terminator = prefix
            break
        exchange.prefixes.append(prefix)
        exchange.chunks.append(raw[pos : pos + length])
        pos += length
    assert pos == len(raw), "trailing bytes after terminator"
    return exchange


# ------------------------------------------------------------------ #
# Fake daemon
# ------------------------------------------------------------------ #


class FakeClamdHandler(socketserver.BaseRequestHandler):
    """Reads one PING or INSTREAM request and answers like clamd."""

    def handle(self) -> None:
        rfile = self.request.makefile("rb")
        received = bytearray()
        while not received.endswith(b"\0"):
            byte = rfile.read(1)
            if not byte:
                break
            received += byte

        payload = bytearray()
        if bytes(received) == b"zINSTREAM\0":
            while True:
                prefix = rfile.read(4)
                received += prefix
                (length,) = struct.unpack(">I", prefix)
                if length == 0:
                    break
                chunk = rfile.read(length)
                received += chunk
                payload += chunk
        rfile.close()

        self.server.exchanges.append(split_exchange(bytes(received)))  # type: ignore[attr-defined]
        self.request.sendall(self.server.reply(bytes(received), bytes(payload)))  # type: ignore[attr-defined]


class _FakeClamdMixin:
    daemon_threads = True

    def init_fake(self) -> None:
        self.exchanges: list[Exchange] = []
        self.override: bytes | None = None

    def reply(self, command: bytes, payload: bytes) -> bytes:
        if self.override is not None:
            return self.override
        if command == b"zPING\0":
            return b"PONG\0"
        if b"EICAR" in payload:
            return b"stream: Eicar-Test-Signature FOUND\0"
        return b"stream: OK\0"


class FakeClamdTCPServer(_FakeClamdMixin, socketserver.ThreadingTCPServer):
    allow_reuse_address = True


if HAS_UNIX_SOCKETS:

    class FakeClamdUnixServer(_FakeClamdMixin, socketserver.ThreadingUnixStreamServer):
        pass


def _serve(server: socketserver.BaseServer) -> Iterator[socketserver.BaseServer]:
    server.init_fake()  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture()
def clamd_tcp() -> Iterator[FakeClamdTCPServer]:
    """Fake clamd on an ephemeral localhost port."""
    server = FakeClamdTCPServer(("127.0.0.1", 0), FakeClamdHandler)
    yield from _serve(server)  # type: ignore[misc]


@pytest.fixture()
def clamd_socket() -> Iterator["FakeClamdUnixServer"]:
    """Fake clamd on a local domain socket in a short temporary directory."""
    if not HAS_UNIX_SOCKETS:
        pytest.skip("local domain sockets unavailable")
    directory = tempfile.mkdtemp(prefix="clamd")
    path = str(Path(directory) / "clamd.sock")
    server = FakeClamdUnixServer(path, FakeClamdHandler)
    try:
        yield from _serve(server)  # type: ignore[misc]
    finally:
        shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture()
def refused_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
