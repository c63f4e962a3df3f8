"""
Error types raised by the freshness tool collaborators.

Per-entry failures (commit lookups) are recoverable and only cause the
affected remote file to be skipped. Listing and local index failures make
the whole input unavailable and abort the run.
"""


class FreshnessToolError(Exception):
    """Base class for all freshness tool errors"""


class CommitLookupError(FreshnessToolError):
    """A commit timestamp could not be obtained for one remote path"""

    def __init__(self, path, message=""):
        self.path = path
        super().__init__(message or f"Commit lookup failed for {path}")


class NoCommitsFound(CommitLookupError):
    """The commits API returned an empty history for the path"""

    def __init__(self, path):
        super().__init__(path, f"No commits found for {path}")


class LookupFailed(CommitLookupError):
    """Network, HTTP or payload failure while querying commits for the path"""


class ListingUnavailable(FreshnessToolError):
    """The remote directory listing could not be read at all"""

    def __init__(self, catalog_id, path, message=""):
        self.catalog_id = catalog_id
        self.path = path
        super().__init__(message or f"Remote listing unavailable: {catalog_id}{path}")


class IndexUnreadable(FreshnessToolError):
    """The local test index could not be loaded"""

    def __init__(self, root_dir, message=""):
        self.root_dir = root_dir
        super().__init__(message or f"Local index unreadable under {root_dir}")
