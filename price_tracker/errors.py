# price_tracker/errors.py

"""Exception taxonomy for fetching, extraction, storage and intake."""


class TrackerError(Exception):
    """Base class for every error raised by the price tracker."""


class FetchFailure(TrackerError):
    """The product page could not be retrieved (network or HTTP level)."""

    def __init__(self, url: str, reason: str = "all fetch strategies failed") -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class ExtractionFailure(TrackerError):
    """No usable price data could be recovered from the page."""


class PersistenceFailure(TrackerError):
    """The storage layer rejected a read or write."""


class DeliveryFailure(TrackerError):
    """A notification could not be handed to the mail provider."""


class InvalidProductURL(TrackerError):
    """The submitted URL is not a supported product page."""


class DuplicateItem(TrackerError):
    """The owner is already tracking this URL."""


class ItemNotFound(TrackerError):
    """No tracked item with that id exists for the owner."""


class InvalidAlert(TrackerError):
    """The alert request is malformed (e.g. non-positive target)."""
