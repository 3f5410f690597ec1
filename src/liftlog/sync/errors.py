"""Error taxonomy for the sync subsystem."""

from dataclasses import dataclass


class SyncError(Exception):
    """Base class for sync failures."""


class AuthError(SyncError):
    """The access token is missing, invalid or expired.

    Fatal to the current drain; no automatic retry until a new token is set.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientError(SyncError):
    """Network failure, timeout or non-auth HTTP error; retried later."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(SyncError):
    """The remembered remote document does not exist (handled by the client)."""


class ValidationError(SyncError):
    """A payload or record could not be interpreted."""


@dataclass
class ValidationIssue:
    """A record skipped while importing a snapshot.

    Issues never abort a sync; they are logged and reported.
    """

    entity_type: str
    record_id: int | None
    reason: str

    def __str__(self) -> str:
        return f"{self.entity_type} {self.record_id}: {self.reason}"
