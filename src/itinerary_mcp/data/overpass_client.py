import json
import logging

import httpx

from itinerary_mcp.data.config import ProviderConfig
from itinerary_mcp.data.providers import TagFilter
from itinerary_mcp.errors import TransientProviderError
from itinerary_mcp.models.geo import BoundingBox, Coordinate
from itinerary_mcp.models.stops import MapFeature

logger = logging.getLogger(__name__)

# Markers Overpass uses when it is overloaded or the query timed out server side
BUSY_MARKERS = ("runtime error", "too many requests", "server is busy", "timeout")


def build_query(box: BoundingBox, tag_filters: list[TagFilter], timeout_seconds: int = 30) -> str:
    """Build an Overpass QL union of node selectors over a bounding box."""
    bbox = f"({box.south},{box.west},{box.north},{box.east})"
    selectors = []
    for tag_filter in tag_filters:
        tags = "".join(f'["{key}"="{value}"]' for key, value in tag_filter)
        selectors.append(f"  node{tags}{bbox};")
    body = "\n".join(selectors)
    return f"[out:json][timeout:{timeout_seconds}];\n(\n{body}\n);\nout body;"


def _parse_element(element: dict) -> MapFeature | None:
    lat, lon = element.get("lat"), element.get("lon")
    if lat is None or lon is None:
        center = element.get("center") or {}
        lat, lon = center.get("lat"), center.get("lon")
    if not isinstance(lat, int | float) or not isinstance(lon, int | float):
        return None
    if element.get("id") is None:
        return None
    return MapFeature(
        id=element["id"],
        coordinate=Coordinate(lat=lat, lng=lon),
        tags={k: str(v) for k, v in (element.get("tags") or {}).items()},
    )


def parse_elements(payload: dict) -> list[MapFeature]:
    """Parse Overpass elements, skipping anything without usable coordinates."""
    elements = payload.get("elements")
    if not isinstance(elements, list):
        return []
    features = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        feature = _parse_element(element)
        if feature is not None:
            features.append(feature)
    return features


class OverpassClient:
    """Async HTTP client for the Overpass API.

    One call is one HTTP request; retries belong to the caller's RetryPolicy.

    Usage:
        async with OverpassClient(config) as client:
            features = await client.query(box, [(("highway", "bus_stop"),)])
    """

    def __init__(self, config: ProviderConfig):
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "OverpassClient":
        """Enter async context - create HTTP client."""
        self._client = httpx.AsyncClient(timeout=self._config.http_timeout_seconds)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def query(self, box: BoundingBox, tag_filters: list[TagFilter]) -> list[MapFeature]:
        """Fetch point features matching any of the tag filters inside box.

        A malformed payload yields an empty list.

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails or returns non-2xx.
            TransientProviderError: If Overpass reports it is busy.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        query = build_query(box, tag_filters, self._config.overpass_query_timeout_seconds)
        response = await self._client.post(self._config.overpass_url, data={"data": query})
        response.raise_for_status()

        text = response.text
        try:
            payload = json.loads(text)
        except ValueError:
            if _looks_busy(text):
                raise TransientProviderError("Overpass server busy") from None
            logger.warning("Overpass returned a malformed payload, treating as empty")
            return []

        if not isinstance(payload, dict):
            logger.warning("Overpass returned a malformed payload, treating as empty")
            return []

        remark = payload.get("remark")
        if isinstance(remark, str) and _looks_busy(remark):
            raise TransientProviderError(f"Overpass error: {remark}")

        return parse_elements(payload)


def _looks_busy(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in BUSY_MARKERS)
