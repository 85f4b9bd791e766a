"""Error taxonomy for itinerary planning.

A partial route is not an error: it is reported through ``is_partial`` on the
corridor resolution.
"""


class ItineraryError(Exception):
    """Base class for planning errors."""


class GeocodeFailed(ItineraryError):
    """An address could not be resolved to a coordinate."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Could not geocode '{address}'")


class TransientProviderError(ItineraryError):
    """The provider answered but reported a temporary failure (busy, timeout)."""


class ProviderUnavailable(ItineraryError):
    """A provider call kept failing after the retry budget was spent."""

    def __init__(self, provider: str, attempts: int):
        self.provider = provider
        self.attempts = attempts
        super().__init__(f"{provider} unavailable after {attempts} attempts")


class NoRouteFound(ItineraryError):
    """Neither the primary route nor a corridor fallback produced usable data."""
