# osrm_client.py
# The routing-service adapter.
# Sole responsibility: talk to OSRM over HTTP and return normalized outputs.
# It holds no composition rules or scoring.

import logging
from typing import List, Optional, Sequence

import requests

from .errors import NoRouteFound, RoutingUnavailable
from .models import GeoPoint, RouteStep, RoutingResult
from .nav_config import NavConfig

logger = logging.getLogger(__name__)

# OSRM codes meaning "the service worked, there is just no path"
_NO_ROUTE_CODES = frozenset({"NoRoute", "NoSegment"})


def format_coordinates(waypoints: Sequence[GeoPoint]) -> str:
    """Convert points to the OSRM 'lng,lat;lng,lat;...' form."""
    return ";".join(f"{p.lng},{p.lat}" for p in waypoints)


def _point(lnglat) -> GeoPoint:
    return GeoPoint(float(lnglat[1]), float(lnglat[0]))


def parse_route(data: dict) -> RoutingResult:
    """
    Normalize an OSRM /route JSON body into a RoutingResult.

    Raises:
        NoRouteFound: the body carries no route.
        RoutingUnavailable: the body reports a service error.
    """
    code = data.get("code")
    if code in _NO_ROUTE_CODES:
        raise NoRouteFound(data.get("message") or code)
    if code != "Ok":
        raise RoutingUnavailable(f"OSRM error: {data.get('message', code or 'Unknown error')}")

    routes = data.get("routes") or []
    if not routes:
        raise NoRouteFound("Routing service returned no routes.")

    route = routes[0]
    path = tuple(_point(c) for c in route.get("geometry", {}).get("coordinates", []))

    steps: List[RouteStep] = []
    for leg in route.get("legs", []):
        for step in leg.get("steps", []):
            maneuver = step.get("maneuver", {})
            location = maneuver.get("location")
            if location is None:
                coords = step.get("geometry", {}).get("coordinates") or [[0.0, 0.0]]
                location = coords[0]
            steps.append(RouteStep(
                maneuver_type=maneuver.get("type", ""),
                modifier=maneuver.get("modifier"),
                distance_m=float(step.get("distance", 0.0)),
                duration_s=float(step.get("duration", 0.0)),
                name=step.get("name") or "",
                location=_point(location),
            ))

    return RoutingResult(
        path=path,
        steps=tuple(steps),
        distance_m=float(route.get("distance", 0.0)),
        duration_s=float(route.get("duration", 0.0)),
    )


class OSRMClient:
    """
    OSRM adapter implementing the routing function
    route(waypoints, profile) -> RoutingResult.

    Every call has a bounded timeout. A timed-out call is retried
    config.request_retries times before RoutingUnavailable is raised;
    other transport errors are not retried.

    Args:
        config:  NavConfig with the base URL and timeouts.
        session: Optional requests.Session (injected in tests).
    """

    def __init__(self, config: Optional[NavConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or NavConfig()
        self.base_url = self.config.osrm_base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def route(self, waypoints: Sequence[GeoPoint], profile: str = "foot") -> RoutingResult:
        """
        Call the OSRM /route endpoint through the given waypoints, in order.

        Raises:
            ValueError: fewer than two waypoints.
            NoRouteFound, RoutingUnavailable
        """
        if len(waypoints) < 2:
            raise ValueError("At least two waypoints are required to compute a route.")

        url = f"{self.base_url}/route/v1/{profile}/{format_coordinates(waypoints)}"
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true",
            "alternatives": "false",
            "continue_straight": "true",
        }
        data = self._get_json(url, params)
        result = parse_route(data)
        logger.debug(
            f"Route {profile} through {len(waypoints)} points: "
            f"{result.distance_m:.0f} m, {len(result.steps)} steps"
        )
        return result

    def _get_json(self, url: str, params: dict) -> dict:
        attempts = 1 + max(0, self.config.request_retries)
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(url, params=params, timeout=self.config.request_timeout_s)
            except requests.Timeout as e:
                logger.warning(f"Routing request timed out (attempt {attempt}/{attempts}): {e}")
                if attempt == attempts:
                    raise RoutingUnavailable(f"Routing service timed out after {attempts} attempts.") from e
                continue
            except requests.RequestException as e:
                logger.error(f"Routing request failed: {e}")
                raise RoutingUnavailable(f"Routing service unreachable: {e}") from e

            try:
                data = response.json()
            except ValueError as e:
                raise RoutingUnavailable(f"Routing service returned HTTP {response.status_code} without JSON.") from e

            # OSRM reports NoRoute with a 4xx status; let parse_route classify it
            if not response.ok and data.get("code") not in _NO_ROUTE_CODES:
                raise RoutingUnavailable(
                    f"Routing service returned HTTP {response.status_code}: {data.get('message', '')}"
                )
            return data
        raise RoutingUnavailable("Routing service did not respond.")
