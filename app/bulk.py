"""
Batched detail lookups.

Resolves many movie/TV ids in one call, each through the cache or upstream,
with bounded concurrency so the provider's own per-second limits are not hit.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from app.cache import BackgroundWriter, CacheStore, build_cache_key, ttl_for
from app.errors import ValidationError
from app.tmdb_client import TmdbClient
from app.utils.helpers import safe_int
from app.utils.pool import is_failure, run_pool
from config.settings import settings

logger = logging.getLogger("bulk")

CONTENT_TYPES = ("movie", "tv")
BULK_NAMESPACE = "bulk"


def sanitize_ids(raw_ids: Any, max_items: int) -> List[int]:
    """
    Keep integral ids, drop duplicates (first occurrence wins) and cap.

    Args:
        raw_ids: Whatever the caller sent as "ids"
        max_items: Maximum number of ids kept

    Returns:
        Ordered list of at most max_items unique ints
    """
    if not isinstance(raw_ids, (list, tuple)):
        return []

    seen = set()
    ids: List[int] = []
    for raw in raw_ids:
        value = safe_int(raw)
        if value is None or value in seen:
            continue
        seen.add(value)
        ids.append(value)
        if len(ids) >= max_items:
            break
    return ids


def to_bulk_item(data: Dict[str, Any]) -> Dict[str, Any]:
    """Reduce a movie or TV detail payload to the fields lists need."""
    runtime = data.get("runtime")
    if runtime is None:
        episode_run_time = data.get("episode_run_time") or []
        runtime = episode_run_time[0] if episode_run_time else None

    return {
        "id": data.get("id"),
        "title": data.get("title") or data.get("name") or "",
        "poster_path": data.get("poster_path"),
        "backdrop_path": data.get("backdrop_path"),
        "vote_average": data.get("vote_average") or 0,
        "release_date": data.get("release_date") or data.get("first_air_date"),
        "runtime": runtime,
        "genres": [
            {"id": genre.get("id"), "name": genre.get("name")}
            for genre in data.get("genres") or []
        ],
        "overview": data.get("overview"),
    }


class BulkHandler:
    """
    Runs the cache-or-fetch logic for every id through the concurrency pool.

    Items that fail to resolve are omitted; the rest keep input order.
    """

    def __init__(
        self,
        client: TmdbClient,
        store: CacheStore,
        writer: BackgroundWriter,
        concurrency: Optional[int] = None,
        max_items: Optional[int] = None,
    ):
        self.client = client
        self.store = store
        self.writer = writer
        self.concurrency = concurrency or settings.bulk_concurrency
        self.max_items = max_items or settings.bulk_max_items

    def fetch_item(self, item_id: int, content_type: str, language: str) -> Dict[str, Any]:
        """
        Resolve one id. Raises on upstream failure; the pool records it.
        """
        path = f"{content_type}/{item_id}"
        cache_key = build_cache_key(path, None, language, namespace=BULK_NAMESPACE)

        cached = self.store.get(cache_key)
        if cached is not None:
            logger.debug(f"CACHE HIT: {cache_key}")
            return cached.payload

        logger.debug(f"CACHE MISS: {cache_key}, fetching from TMDB")
        data = self.client.get(path, {"language": language})
        item = to_bulk_item(data)

        ttl = ttl_for(path)
        if ttl > 0:
            self.writer.submit(f"put:{cache_key}", self.store.put, cache_key, item, ttl)
        return item

    def handle(
        self,
        ids: Iterable[Any],
        content_type: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Resolve a batch of ids.

        Args:
            ids: Raw ids from the request (deduplicated and capped here)
            content_type: "movie" (default) or "tv"
            language: Request language (default locale when absent)

        Raises:
            ValidationError: unknown content type
        """
        content_type = content_type or "movie"
        if content_type not in CONTENT_TYPES:
            raise ValidationError(f"content_type must be one of {', '.join(CONTENT_TYPES)}")
        language = language or settings.default_language

        item_ids = sanitize_ids(ids, self.max_items)
        if not item_ids:
            return []

        logger.info(f"Bulk fetch: {len(item_ids)} {content_type}(s), concurrency={self.concurrency}")
        results = run_pool(
            item_ids,
            self.concurrency,
            lambda item_id: self.fetch_item(item_id, content_type, language),
        )

        failed = sum(1 for result in results if is_failure(result))
        if failed:
            logger.warning(f"Bulk fetch: {failed}/{len(item_ids)} item(s) failed and were omitted")
        return [result for result in results if not is_failure(result)]
