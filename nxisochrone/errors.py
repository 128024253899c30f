"""Exceptions and warnings raised by the package."""


class NxIsochroneError(Exception):
    """Base class for all package errors."""


class FeedError(NxIsochroneError):
    """A GTFS feed could not be ingested. Always aborts the build."""


class FeedReadError(FeedError):
    """A required feed file is missing or cannot be read."""

    def __init__(self, path, reason="file not found"):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class FeedFormatError(FeedError):
    """A feed table lacks required columns or the feed failed validation."""

    def __init__(self, filename, missing_columns=(), message=None):
        self.filename = filename
        self.missing_columns = list(missing_columns)
        if message is None:
            message = (
                f"{filename} is missing required columns: "
                f"{', '.join(self.missing_columns)}"
            )
        super().__init__(message)


class NetworkLoadError(NxIsochroneError):
    """A persisted network document is missing or malformed."""


class DataQualityWarning(UserWarning):
    """Stop time observations were discarded as implausible during the build."""
