"""Exception hierarchy for the commit sync engine."""


class CommitSyncError(Exception):
    """Base class for all commit sync errors."""


class FetchError(CommitSyncError):
    """Raised when the remote source cannot be read.

    Covers transport failures, timeouts, non-2xx responses and payloads that
    are not a JSON array. A fetch error aborts the whole sync cycle.
    """


class DecodeError(CommitSyncError):
    """Describes a malformed field in a single remote record.

    Decode errors are collected, never raised out of a sync cycle.
    """

    def __init__(self, message: str, sha: str = "", field: str = ""):
        super().__init__(message)
        self.sha = sha
        self.field = field


class StoreError(CommitSyncError):
    """Raised when the record store cannot persist or remove data."""


class ConflictError(CommitSyncError):
    """Raised when a merge policy declines to resolve a conflicting write."""

    def __init__(self, message: str, sha: str, fields: list[str] | None = None):
        super().__init__(message)
        self.sha = sha
        self.fields = fields or []


class SyncInProgressError(CommitSyncError):
    """Raised when a sync cycle is requested while another one is active."""
