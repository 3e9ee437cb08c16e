# geocoder.py
# Free-text address → GeoPoint through OSM Nominatim.

import logging
from typing import Optional

import requests

from .errors import AddressNotFound, GeocodingUnavailable
from .models import GeoPoint
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    """
    Geocoding function geocode(address) -> GeoPoint.

    Args:
        config:  NavConfig with the Nominatim URL and timeout.
        session: Optional requests.Session (injected in tests).
    """

    def __init__(self, config: Optional[NavConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or NavConfig()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.config.user_agent})

    def geocode(self, address: str) -> GeoPoint:
        """
        Resolve an address to its first match.

        Raises:
            AddressNotFound: empty query or no match.
            GeocodingUnavailable: transport or HTTP failure.
        """
        query = (address or "").strip()
        if not query:
            raise AddressNotFound("Empty address.")

        logger.info(f"Geocoding address: '{query}'")
        results = self._get_results(query)

        if not results:
            logger.warning(f"No geocoding results for '{query}'")
            raise AddressNotFound(f"No results found for address: {query}")

        first = results[0]
        point = GeoPoint(float(first["lat"]), float(first["lon"]))
        logger.info(f"Geocoded '{query}' to {point}")
        return point

    def _get_results(self, query: str) -> list:
        params = {"q": query, "format": "json", "limit": 1}
        attempts = 1 + max(0, self.config.request_retries)
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(
                    self.config.nominatim_url, params=params, timeout=self.config.request_timeout_s
                )
                response.raise_for_status()
                return response.json()
            except requests.Timeout as e:
                logger.warning(f"Geocoding request timed out (attempt {attempt}/{attempts}): {e}")
                if attempt == attempts:
                    raise GeocodingUnavailable(
                        f"Geocoding service timed out after {attempts} attempts for '{query}'."
                    ) from e
            except requests.RequestException as e:
                logger.error(f"Geocoding request failed for '{query}': {e}")
                raise GeocodingUnavailable(f"Geocoding service failed for '{query}': {e}") from e
            except ValueError as e:
                raise GeocodingUnavailable(f"Geocoding service returned invalid JSON for '{query}'.") from e
        raise GeocodingUnavailable("Geocoding service did not respond.")
