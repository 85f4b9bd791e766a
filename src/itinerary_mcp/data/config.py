from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseSettings):
    """Configuration for the routing, geocoding and map-feature providers.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Google Maps (directions + geocoding)
    api_key: str | None = Field(default=None, alias="GOOGLE_MAPS_API_KEY")
    directions_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    geocode_url: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Overpass (OpenStreetMap feature queries)
    overpass_url: str = Field(
        default="https://overpass-api.de/api/interpreter", alias="ITINERARY_OVERPASS_URL"
    )
    overpass_query_timeout_seconds: int = 30

    http_timeout_seconds: float = Field(default=30.0, alias="ITINERARY_HTTP_TIMEOUT")
    request_timeout_seconds: float = Field(default=90.0, alias="ITINERARY_REQUEST_TIMEOUT")

    # Retry budget for map-feature queries
    max_retries: int = Field(default=3, alias="ITINERARY_MAX_RETRIES")
    retry_backoff_seconds: float = 1.0

    # Stop search
    search_radii_meters: list[int] = Field(default_factory=lambda: [500, 1000, 2000, 3000, 5000])
    corridor_width_meters: float = Field(default=5000.0, alias="ITINERARY_CORRIDOR_WIDTH")
    min_corridor_width_meters: float = 2000.0
    max_corridor_width_meters: float = 15000.0

    # Stop selection and composition thresholds
    origin_progress_max: float = 0.3
    destination_progress_min: float = 0.7
    partial_distance_meters: float = 500.0
    cab_threshold_meters: float = 3000.0

    # Ask for bus-only transit before generic transit
    prefer_bus: bool = True


@lru_cache
def get_provider_config() -> ProviderConfig:
    """Get provider configuration (cached singleton).

    Returns:
        ProviderConfig with values from .env file or environment variables.
    """
    return ProviderConfig()
