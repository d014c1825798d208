import requests
import time
import logging
from typing import Optional, Dict, Any
from threading import Lock

# Constants
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "CampShareApp/1.0"
REQUEST_TIMEOUT = 10
RETRY_DELAY = 1.1
MAX_RETRIES = 3

# Get logger
logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    pass


class NominatimGeocoder:
    """
    Forward geocoder backed by OpenStreetMap's Nominatim search API.

    Turns a free-text location into a GeoJSON point. Results are cached per query so repeated
    submissions of the same location do not hit the API again.
    """

    def __init__(self, base_url=NOMINATIM_SEARCH_URL, user_agent=USER_AGENT,
                 timeout=REQUEST_TIMEOUT, max_retries=MAX_RETRIES, session=None):
        self.base_url = base_url
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()

        # Format: {normalized query: geometry dict}
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._cache_lock = Lock()

    def forward_geocode(self, query) -> Optional[Dict[str, Any]]:
        """
        Return the best-matching point for query, or None when nothing matches.

        Raises GeocodingError when the service cannot be reached or keeps failing.
        """
        cache_key = query.strip().lower()
        if not cache_key:
            return None

        with self._cache_lock:
            if cache_key in self._cache:
                return self._cache[cache_key]

        params = {
            "q": query,
            "format": "jsonv2",
            "limit": 1
        }
        headers = {
            "User-Agent": self.user_agent
        }

        retries = 0
        while retries < self.max_retries:
            try:
                response = self.session.get(
                    self.base_url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
            except requests.RequestException as e:
                retries += 1
                wait_time = RETRY_DELAY * retries
                logger.warning(f"Network error geocoding '{query}': {e}. Retrying in {wait_time}s... (Attempt {retries}/{self.max_retries})")
                time.sleep(wait_time)
                continue

            if response.status_code == 200:
                try:
                    results = response.json()
                    if not results:
                        logger.warning(f"No coordinates found for '{query}'")
                        return None

                    match = results[0]
                    geometry = {
                        "type": "Point",
                        "coordinates": [float(match["lon"]), float(match["lat"])]
                    }
                except (ValueError, KeyError, TypeError) as e:
                    raise GeocodingError(f"Unexpected geocoding response for '{query}': {e}") from e

                with self._cache_lock:
                    self._cache[cache_key] = geometry
                logger.info(f"Successfully geocoded '{query}'")
                return geometry

            if response.status_code == 429 or response.status_code >= 500:
                retries += 1
                wait_time = RETRY_DELAY * retries
                logger.warning(f"Geocoding HTTP error ({response.status_code}) for '{query}'. Retrying in {wait_time}s... (Attempt {retries}/{self.max_retries})")
                time.sleep(wait_time)
                continue

            raise GeocodingError(f"Geocoding request for '{query}' rejected with HTTP {response.status_code}")

        raise GeocodingError(f"Failed to geocode '{query}' after {self.max_retries} attempts")
