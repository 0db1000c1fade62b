"""
Spark MLS API Client

Fetches listing photos, virtual tours and open houses from the Spark
replication API. Every failure (network error, timeout, non-2xx status,
malformed payload) is logged and resolved to an empty list.
"""
import requests
from typing import Any, Dict, List, Optional

from config.settings import settings
from src.mls_search.utils.logger import get_logger

logger = get_logger(__name__)

# Provider resource per detail field
RESOURCE_PATHS = {
    "photos": "photos",
    "virtual_tours": "virtualtours",
    "open_houses": "openhouses/all",
}


class SparkApiClient:
    """
    Client for per-listing media endpoints of the Spark API.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the Spark API client.

        Args:
            base_url: Override the default API URL (for testing)
            api_token: Bearer token; defaults to settings.spark_api_token
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or settings.spark_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.spark_api_timeout_seconds
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

        token = api_token or settings.spark_api_token
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})
        else:
            logger.warning("spark_api_token_missing")

    def fetch_photos(self, listing_id: str) -> List[Dict[str, Any]]:
        """Fetch photo records for a listing."""
        return self.fetch(listing_id, "photos")

    def fetch_virtual_tours(self, listing_id: str) -> List[Dict[str, Any]]:
        """Fetch virtual tour records for a listing."""
        return self.fetch(listing_id, "virtual_tours")

    def fetch_open_houses(self, listing_id: str) -> List[Dict[str, Any]]:
        """Fetch open house records for a listing."""
        return self.fetch(listing_id, "open_houses")

    def fetch(self, listing_id: str, field: str) -> List[Dict[str, Any]]:
        """
        Fetch one detail resource for a listing.

        Args:
            listing_id: Spark listing key
            field: Detail field (photos, virtual_tours, open_houses)

        Returns:
            Provider records, or an empty list on any failure
        """
        url = f"{self.base_url}/listings/{listing_id}/{RESOURCE_PATHS[field]}"

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            json_data = response.json()
        except requests.HTTPError as e:
            logger.error(
                "provider_request_failed",
                listing_id=listing_id,
                field=field,
                status_code=e.response.status_code if e.response is not None else None,
                error=str(e)
            )
            return []
        except requests.RequestException as e:
            # Covers connection errors and timeouts
            logger.error(
                "provider_request_failed",
                listing_id=listing_id,
                field=field,
                error=str(e),
                error_type=type(e).__name__
            )
            return []
        except ValueError as e:
            logger.error(
                "provider_response_invalid_json",
                listing_id=listing_id,
                field=field,
                error=str(e)
            )
            return []

        return self._parse_response(json_data, listing_id, field)

    def _parse_response(self, json_data: Any, listing_id: str, field: str) -> List[Dict[str, Any]]:
        """
        Extract D.Results from a Spark response envelope.
        """
        results = None
        if isinstance(json_data, dict):
            envelope = json_data.get("D")
            if isinstance(envelope, dict):
                results = envelope.get("Results")

        if results is None:
            logger.warning("provider_response_empty", listing_id=listing_id, field=field)
            return []

        if not isinstance(results, list):
            logger.error(
                "provider_response_malformed",
                listing_id=listing_id,
                field=field,
                results_type=type(results).__name__
            )
            return []

        logger.debug("provider_request_successful", listing_id=listing_id, field=field, items=len(results))
        return results
