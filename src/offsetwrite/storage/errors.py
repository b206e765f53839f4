"""
Object store error classes.

Provides a clear taxonomy of errors that can occur while writing to or
managing objects. HTTP status codes and I/O exceptions are mapped to these
at the client boundary so callers see one consistent error interface.
"""
from __future__ import annotations

from typing import Iterable, Optional


class StoreError(Exception):
    """
    Base class for all object store errors.

    None of these are retried by the write path; they are returned to the
    immediate caller of the operation.
    """
    pass


class NotFound(StoreError):
    """
    Key does not exist.

    Raised when:
    - stat/delete/move target is absent (HTTP 404, backend code 612)

    Not a failure of the write path: a probe that raises this selects the
    whole-object PUT branch.
    """

    def __init__(self, key: str):
        super().__init__(f"Key not found: {key}")
        self.key = key


class AlreadyExists(StoreError):
    """
    Destination key already exists (backend code 614).
    """

    def __init__(self, key: str):
        super().__init__(f"Key already exists: {key}")
        self.key = key


class InvalidManifest(StoreError, ValueError):
    """
    A copy part's range is malformed.

    Raised before any network call when a copy part's end is neither the
    open-ended sentinel nor strictly greater than its start.
    """
    pass


class SourceNotSeekable(StoreError):
    """
    Checksum requested over a byte source that cannot be rewound.

    Detected before the checksum pass begins, so nothing is uploaded.
    """
    pass


class ReadFailure(StoreError):
    """
    Local I/O error reading the caller's stream or re-reading a staged copy.
    """
    pass


class TransportFailure(StoreError):
    """
    Network-level failure while sending a request.

    part_index identifies the direct part whose bytes were being streamed
    when the failure happened (None when it happened outside a part).
    """

    def __init__(self, message: str, part_index: Optional[int] = None):
        super().__init__(message)
        self.part_index = part_index


class BackendError(StoreError):
    """
    Backend returned a non-success response.

    Carries the HTTP status and the backend's error message.
    """

    def __init__(self, status: int, message: str):
        super().__init__(f"Backend error {status}: {message}")
        self.status = status
        self.message = message


class ComposeRejected(BackendError):
    """
    Backend refused a well-formed compose request.

    Raised when:
    - quota exceeded, permission denied (HTTP 401/403)
    - conflicting concurrent compose or invalid part references (HTTP 4xx/5xx)
    """
    pass


class DeleteIncomplete(StoreError):
    """
    A prefix delete finished with some keys left behind.
    """

    def __init__(self, failed: Iterable[str]):
        self.failed = sorted(failed)
        super().__init__(f"Failed to delete {len(self.failed)} key(s): {', '.join(self.failed)}")


__all__ = [
    "StoreError",
    "NotFound",
    "AlreadyExists",
    "InvalidManifest",
    "SourceNotSeekable",
    "ReadFailure",
    "TransportFailure",
    "BackendError",
    "ComposeRejected",
    "DeleteIncomplete",
]
