# deploy_tracker/reputation.py
import json
import logging
from typing import Any, Optional

import httpx

from deploy_tracker.cache import ReputationCache
from deploy_tracker.config import GITHUB_STATS_URL, REPUTATION_CACHE_TTL
from deploy_tracker.errors import CacheError, UpstreamError


CACHE_KEY_PREFIX = "repo-"


class ReputationClient:
    """Fetches third-party commit/star statistics for a repository.

    The feature is optional: without an API key every fetch returns ``None``
    and no request is made. Responses are kept in ``cache`` for ``ttl``
    seconds; the cache is best-effort and its failures never fail a fetch.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str = "",
        base_url: str = GITHUB_STATS_URL,
        cache: Optional[ReputationCache] = None,
        ttl: int = REPUTATION_CACHE_TTL,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.base_url = base_url
        self.cache = cache
        self.ttl = ttl

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, repo: str) -> Optional[Any]:
        if not self.configured:
            return None

        key = CACHE_KEY_PREFIX + repo
        cached = self._cache_get(key)
        if cached is not None:
            try:
                return json.loads(cached)
            except ValueError:
                logging.warning(f"Discarding unreadable cache entry {key}")

        logging.info(f"REPUTATION MISS: {repo}")
        try:
            response = await self.http_client.get(
                self.base_url, params={"apiKey": self.api_key, "repo": repo}
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamError(f"reputation fetch for {repo} failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"reputation response for {repo} is not JSON: {e}") from e

        self._cache_set(key, response.text)
        return data

    def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except CacheError as e:
            logging.warning(f"Ignoring reputation cache read failure: {e}")
            return None

    def _cache_set(self, key: str, value: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set_with_ttl(key, value, self.ttl)
        except CacheError as e:
            logging.warning(f"Ignoring reputation cache write failure: {e}")
