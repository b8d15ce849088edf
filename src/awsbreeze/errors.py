"""Error types for awsbreeze."""


class FetchError(Exception):
    """The feed could not be retrieved or decoded.

    Shown to the user in the error screen; recoverable by refreshing.
    """

    def __init__(self, url: str, message: str):
        """Create a fetch error.

        Args:
            url: Feed URL that failed
            message: Human readable reason
        """
        super().__init__(message)
        self.url = url
        self.message = message


class PersistenceError(Exception):
    """The seen-state file could not be read or written.

    Never leaves the storage layer: callers substitute an empty state or
    skip the write.
    """
