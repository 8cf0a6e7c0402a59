"""Exceptions for etcd membership reconciliation."""

import enum


class ErrorKind(enum.Enum):
    """How a control loop should react to an error."""

    FATAL = "fatal"
    TRANSIENT = "transient"
    TRANSPORT = "transport"


class MembershipError(Exception):
    """Base exception for membership errors.

    Subclasses carry their classification in ``kind``. Anything that is
    not ``FATAL`` is retryable by the caller.
    """

    kind: ErrorKind = ErrorKind.TRANSIENT


class FatalError(MembershipError):
    """Irrecoverable cluster error; the cluster should be torn down."""

    kind = ErrorKind.FATAL


class TransientError(MembershipError):
    """Expected condition that resolves itself (retry later)."""

    kind = ErrorKind.TRANSIENT


class TransportError(MembershipError):
    """Store or platform query failed."""

    kind = ErrorKind.TRANSPORT


class NameFormatError(MembershipError, ValueError):
    """Member name does not carry a parseable counter suffix."""

    name: str

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"cannot parse member name from {name!r}: {reason}")


def classify(exc: BaseException) -> ErrorKind:
    """Return the kind of an error raised out of reconciliation.

    Errors that did not originate in this library came from a store or
    platform capability and count as transport failures.
    """
    if isinstance(exc, MembershipError):
        return exc.kind
    return ErrorKind.TRANSPORT


def is_fatal(exc: BaseException) -> bool:
    """Check if the cluster should stop reconciling after ``exc``."""
    return classify(exc) is ErrorKind.FATAL
