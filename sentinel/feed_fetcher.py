"""
SentinelAI Feed Fetcher
Adapters that turn NWS and USGS GeoJSON feeds into Threat records
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

import aiohttp

from .formatters import state_name
from .models import Severity, Threat, ThreatSource, magnitude_to_severity

logger = logging.getLogger(__name__)

FEED_CONFIG = {
    "timeout_seconds": 30,
    "max_items": 10,  # Bounds downstream AI cost
    "user_agent": "SentinelAI/1.0 (emergency-monitor@sentinelai.dev)",
    "nws_url": "https://api.weather.gov/alerts/active",
    "usgs_url": "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_day.geojson",
}


def coordinates_from_geometry(geometry: Any) -> tuple[float, float] | None:
    """Extract (lat, lon) from a GeoJSON Point, Polygon or MultiPolygon.

    GeoJSON positions are [lon, lat]; polygons use the first vertex of the
    exterior ring.
    """
    if not isinstance(geometry, dict):
        return None

    coords = geometry.get("coordinates")
    geom_type = geometry.get("type")

    try:
        if geom_type == "Point":
            point = coords
        elif geom_type == "Polygon":
            point = coords[0][0]
        elif geom_type == "MultiPolygon":
            point = coords[0][0][0]
        else:
            return None
        if not isinstance(point, list | tuple) or len(point) < 2:
            return None
        return (float(point[1]), float(point[0]))
    except (IndexError, KeyError, TypeError, ValueError):
        return None


def _properties(feature: dict[str, Any]) -> dict[str, Any]:
    props = feature.get("properties")
    return props if isinstance(props, dict) else {}


def _place(feature: dict[str, Any]) -> str:
    place = _properties(feature).get("place")
    return place if isinstance(place, str) else ""


class FeedAdapter:
    """Base adapter: fetch one GeoJSON document and map its features"""

    source: ThreatSource

    def __init__(self, timeout: int | None = None, max_items: int | None = None):
        self.timeout = timeout or FEED_CONFIG["timeout_seconds"]
        self.max_items = max_items or FEED_CONFIG["max_items"]

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": FEED_CONFIG["user_agent"],
            "Accept": "application/geo+json",
        }

    def _build_url(self, region_code: str) -> tuple[str, dict[str, str]]:
        raise NotImplementedError

    def _parse_feature(self, feature: dict[str, Any]) -> Threat:
        raise NotImplementedError

    def _parse(self, data: dict[str, Any], region_code: str) -> list[Threat]:
        return self._map_features(data.get("features"))

    def _map_features(self, features: Any) -> list[Threat]:
        """Map features one by one, skipping any that can't be read"""
        if not isinstance(features, list):
            return []

        threats: list[Threat] = []
        for feature in features:
            if len(threats) >= self.max_items:
                break
            if not isinstance(feature, dict):
                logger.warning(f"Skipping non-object {self.source.value} feature")
                continue
            try:
                threats.append(self._parse_feature(feature))
            except Exception as e:
                logger.warning(
                    f"Skipping malformed {self.source.value} feature {feature.get('id')!r}: {e}"
                )
        return threats

    async def _fetch_json(
        self, session: aiohttp.ClientSession, url: str, params: dict[str, str]
    ) -> dict[str, Any] | None:
        """GET a JSON document; returns None on any non-200 response"""
        async with session.get(
            url,
            params=params,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            if response.status != 200:
                logger.warning(f"HTTP {response.status} from {self.source.value} feed")
                return None
            return await response.json(content_type=None)

    async def fetch(self, session: aiohttp.ClientSession, region_code: str) -> list[Threat]:
        """Fetch threats for a region. Never raises; failures yield []"""
        try:
            url, params = self._build_url(region_code)
            data = await self._fetch_json(session, url, params)
            if not isinstance(data, dict):
                return []
            threats = self._parse(data, region_code)
            logger.info(f"{self.source.value}: {len(threats)} threats for {region_code}")
            return threats
        except TimeoutError:
            logger.warning(f"Timeout fetching {self.source.value} feed for {region_code}")
            return []
        except Exception as e:
            logger.error(f"{self.source.value} fetch error for {region_code}: {e}")
            return []


class NWSAdapter(FeedAdapter):
    """National Weather Service active alerts"""

    source = ThreatSource.NWS

    def _build_url(self, region_code: str) -> tuple[str, dict[str, str]]:
        return FEED_CONFIG["nws_url"], {"area": region_code}

    def _parse_feature(self, feature: dict[str, Any]) -> Threat:
        props = _properties(feature)

        return Threat(
            id=str(feature.get("id") or uuid.uuid4()),
            source=self.source,
            type=props.get("event") or "Weather Alert",
            severity=Severity.parse(props.get("severity")),
            headline=props.get("headline") or props.get("event") or "Weather Alert",
            description=props.get("description") or "No description available.",
            area_desc=props.get("areaDesc") or "Unknown area",
            effective=props.get("effective") or datetime.now(UTC).isoformat(),
            expires=props.get("expires"),
            coordinates=coordinates_from_geometry(feature.get("geometry")),
        )


class USGSAdapter(FeedAdapter):
    """USGS earthquakes from the last day, filtered to a US state"""

    source = ThreatSource.USGS

    def _build_url(self, region_code: str) -> tuple[str, dict[str, str]]:
        return FEED_CONFIG["usgs_url"], {}

    def _in_region(self, place: str, region_code: str) -> bool:
        # USGS labels places "12 km NE of Town, CA" or "..., Texas"
        code = region_code.upper()
        place = place.strip()
        return place.endswith(f", {code}") or place.lower().endswith(f", {state_name(code).lower()}")

    def _parse_feature(self, feature: dict[str, Any]) -> Threat:
        props = _properties(feature)
        geometry = feature.get("geometry")
        if not isinstance(geometry, dict):
            geometry = {}

        magnitude = props.get("mag")
        if magnitude is not None:
            try:
                magnitude = float(magnitude)
            except (TypeError, ValueError):
                magnitude = None

        place = props.get("place") or "Unknown location"
        event_type = (props.get("type") or "earthquake").title()
        mag_label = f"M{magnitude:.1f}" if magnitude is not None else "Unknown magnitude"

        description = f"A {mag_label} {event_type.lower()} was recorded {place}."
        coords = geometry.get("coordinates") or []
        if len(coords) >= 3 and coords[2] is not None:
            description += f" Depth: {coords[2]} km."

        return Threat(
            id=str(feature.get("id") or uuid.uuid4()),
            source=self.source,
            type=event_type,
            severity=magnitude_to_severity(magnitude),
            headline=props.get("title") or f"{mag_label} - {place}",
            description=description,
            area_desc=place,
            effective=props.get("time") or datetime.now(UTC).isoformat(),
            expires=None,
            coordinates=coordinates_from_geometry(geometry),
            magnitude=magnitude,
        )

    def _parse(self, data: dict[str, Any], region_code: str) -> list[Threat]:
        features = data.get("features")
        if not isinstance(features, list):
            return []
        in_region = [
            f
            for f in features
            if isinstance(f, dict) and self._in_region(_place(f), region_code)
        ]
        return self._map_features(in_region)


def default_adapters() -> list[FeedAdapter]:
    return [NWSAdapter(), USGSAdapter()]
