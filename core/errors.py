# core/errors.py


class ObserverError(Exception):
    """Base class for market observer errors."""


class FetchError(ObserverError):
    """A page could not be fetched; aborts the current cycle."""

    def __init__(self, message: str, page_index: int | None = None, status: int | None = None):
        super().__init__(message)
        self.page_index = page_index
        self.status = status


class PersistenceError(ObserverError):
    """A batch write to the item store failed."""


class StartupError(ObserverError):
    """Configuration or storage could not be initialized."""
