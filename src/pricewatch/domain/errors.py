# src/pricewatch/domain/errors.py
"""
Error taxonomy for the price tracking core.

Every error here is local and recoverable: the sweep and dispatch loops catch
them per item / per alert and move on. A window with no price history is not
an error at all; the trend analyzer returns a zero sentinel instead.
"""


class PriceWatchError(Exception):
    """Base class for all application errors."""


class ValidationError(PriceWatchError):
    """A subscription or item configuration was rejected at configuration time."""


class ItemNotFoundError(PriceWatchError):
    """The tracked item does not exist or has been deactivated."""


class SubscriptionNotFoundError(PriceWatchError):
    """No subscription with the given id."""


class TransientFetchError(PriceWatchError):
    """The external price fetch failed (network, HTTP status or unparsable body)."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class StalePriceError(PriceWatchError):
    """An observation arrived older than the latest stored point for the item."""


class DeliveryError(PriceWatchError):
    """The notification channel failed to deliver an alert."""
