"""
Upstream client for the TMDB v3 API.
Holds the provider credentials; nothing outside the gateway ever sees them.
"""
import logging
import os
from typing import Any, Dict, Optional

import requests
from dotenv import load_dotenv

from app.errors import ConfigError, UpstreamError, UpstreamUnavailable
from app.utils.helpers import clean_path
from config.settings import settings

load_dotenv()

logger = logging.getLogger("tmdb_client")


class TmdbClient:
    """
    Thin requests-based client.

    Every call carries an explicit timeout so a stalled upstream cannot hold
    a request (or a bulk worker) forever.
    """

    def __init__(
        self,
        bearer_token: str,
        base_url: str = "https://api.themoviedb.org/3",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._bearer_token = bearer_token
        self._session = session or requests.Session()

    def _get_headers(self) -> dict:
        """Get API authentication headers."""
        return {
            "Authorization": f"Bearer {self._bearer_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET a resource and return its decoded JSON body.

        Args:
            path: Resource path relative to the API root
            params: Query parameters, sent as given

        Raises:
            UpstreamError: provider answered with a non-2xx status
            UpstreamUnavailable: provider could not be reached or sent garbage
        """
        url = f"{self.base_url}/{clean_path(path)}"
        logger.info(f"TMDB request: {clean_path(path)} {sorted((params or {}).keys())}")

        try:
            response = self._session.get(
                url,
                headers=self._get_headers(),
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"TMDB unreachable for {clean_path(path)}: {e.__class__.__name__}")
            raise UpstreamUnavailable(e.__class__.__name__) from e

        if not response.ok:
            logger.error(f"TMDB error [{response.status_code}] for {clean_path(path)}: {response.text[:500]}")
            raise UpstreamError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"TMDB returned invalid JSON for {clean_path(path)}")
            raise UpstreamUnavailable("invalid JSON from upstream") from e


# Global client instance
_tmdb_client: Optional[TmdbClient] = None


def get_tmdb_client() -> TmdbClient:
    """
    Get or create the global client.

    Raises:
        ConfigError: TMDB_BEARER_TOKEN is not configured
    """
    global _tmdb_client
    if _tmdb_client is None:
        bearer_token = settings.tmdb_bearer_token or os.getenv("TMDB_BEARER_TOKEN")
        if not bearer_token:
            logger.error("TMDB_BEARER_TOKEN is not configured")
            raise ConfigError("TMDB_BEARER_TOKEN is not configured")
        _tmdb_client = TmdbClient(
            bearer_token=bearer_token,
            base_url=settings.tmdb_base_url,
            timeout=settings.upstream_timeout_seconds,
        )
    return _tmdb_client
