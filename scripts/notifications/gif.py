"""
Decorative GIF lookup for digest emails.

A missing GIF never fails a run: every failure degrades to an empty URL.
"""

import logging
import random
from typing import Optional

import requests

logger = logging.getLogger(__name__)

GIPHY_SEARCH_URL = "https://api.giphy.com/v1/gifs/search"
PAGE_SIZE = 25


class GiphyClient:
    """Pick a random GIF from a Giphy search."""

    def __init__(
        self,
        api_key: str,
        query: str = "celebration",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
    ):
        self.api_key = api_key
        self.query = query
        self.timeout = timeout
        self.session = session or requests.Session()
        self.rng = rng or random.Random()

    @classmethod
    def from_config(cls, config) -> "GiphyClient":
        return cls(config.giphy_api_key, query=config.giphy_query, timeout=config.giphy_timeout_sec)

    def random_gif_url(self) -> str:
        """
        Return the original-size URL of a random search result.

        Returns:
            GIF URL, or "" when the search fails or finds nothing
        """
        params = {
            "api_key": self.api_key,
            "q": self.query,
            "offset": self.rng.randint(0, PAGE_SIZE),
            "limit": PAGE_SIZE,
            "rating": "g",
            "lang": "en",
            "bundle": "messaging_non_clips",
        }

        try:
            response = self.session.get(GIPHY_SEARCH_URL, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Giphy request failed: %s", e)
            return ""

        if not response.ok:
            logger.warning("Giphy API error: %s %s %s", response.status_code, response.reason, response.text)
            return ""

        try:
            urls = [item["images"]["original"]["url"] for item in response.json().get("data", [])]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Unexpected Giphy response: %s", e)
            return ""

        if not urls:
            return ""
        return self.rng.choice(urls)
