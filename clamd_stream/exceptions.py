"""Exception hierarchy for the clamd client."""

from __future__ import annotations


class ClamdError(Exception):
    """Base exception for all clamd client errors."""


class ClamdIOError(ClamdError, OSError):
    """Raised when writing to or reading from the daemon fails.

    Subclasses :class:`OSError`, so ``errno`` and ``strerror`` of the
    underlying socket error are kept and the original is chained as
    ``__cause__``.
    """

    @classmethod
    def from_os_error(cls, exc: OSError) -> ClamdIOError:
        if exc.errno is not None:
            return cls(exc.errno, exc.strerror or str(exc))
        return cls(str(exc))


class ClamdConnectionError(ClamdIOError):
    """Raised when the client cannot reach the clamd daemon.

    Covers DNS resolution failure, refused or unreachable connections and
    missing or unreadable local socket paths.
    """


class ClamdTimeoutError(ClamdIOError):
    """Raised when a caller-supplied timeout elapses."""


class ClamdDecodeError(ClamdError, ValueError):
    """Raised when a daemon response is not valid UTF-8."""


class ClamdConfigurationError(ClamdError, ValueError):
    """Raised for invalid client settings.

    An out-of-range chunk size, an unparseable target, or a local socket
    target on a platform without ``AF_UNIX``.
    """
