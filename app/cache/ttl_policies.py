"""
TTL configuration and endpoint-to-lifetime mapping.

Rules are evaluated top to bottom and the first match wins. Specificity is
encoded by list position, not inferred: a detail rule like ``movie/<id>``
must stay above the broader ``movie/<id>/...`` sub-resource rule, and the
search rule must stay first.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Pattern, Tuple

from app.utils.helpers import clean_path
from config.settings import settings


HOUR = 60 * 60
DAY = 24 * HOUR


@dataclass(frozen=True)
class TTLRule:
    """One (pattern, ttl) row of the policy table."""
    pattern: Pattern[str]
    ttl: int
    label: str

    def matches(self, path: str) -> bool:
        return bool(self.pattern.search(path))


def _rule(pattern: str, ttl: int, label: str) -> TTLRule:
    return TTLRule(re.compile(pattern, re.ASCII), ttl, label)


TTL_RULES: Tuple[TTLRule, ...] = (
    # Never cached: relevance depends on ephemeral ranking signals
    _rule(r"^search/", 0, "search"),

    # Static reference data
    _rule(r"^genre/(movie|tv)/list$", 7 * DAY, "genre_list"),
    _rule(r"^configuration$", DAY, "configuration"),

    # Detail records
    _rule(r"^movie/\d+$", DAY, "movie_detail"),
    _rule(r"^tv/\d+$", DAY, "tv_detail"),
    _rule(r"^person/\d+", DAY, "person_detail"),
    _rule(r"^collection/\d+$", DAY, "collection_detail"),

    # Detail sub-resources (credits, images, ...) live shorter than the parent
    _rule(r"^movie/\d+/", 12 * HOUR, "movie_subresource"),
    _rule(r"^tv/\d+/", 12 * HOUR, "tv_subresource"),
    _rule(r"^(movie|tv)/top_rated$", 12 * HOUR, "top_rated"),

    # Popularity and availability
    _rule(r"^(movie|tv)/popular$", 6 * HOUR, "popular"),
    _rule(r"^watch/providers/", 6 * HOUR, "watch_providers"),

    # Discovery and release calendars
    _rule(r"^discover/", 4 * HOUR, "discover"),
    _rule(r"^movie/now_playing$", 4 * HOUR, "now_playing"),
    _rule(r"^movie/upcoming$", 4 * HOUR, "upcoming"),
    _rule(r"^tv/on_the_air$", 4 * HOUR, "on_the_air"),
    _rule(r"^tv/airing_today$", 4 * HOUR, "airing_today"),

    # Trending changes several times a day
    _rule(r"^trending/", 2 * HOUR, "trending"),
)


def match_rule(
    path: str,
    rules: Tuple[TTLRule, ...] = TTL_RULES,
) -> Optional[TTLRule]:
    """Return the first rule matching path, or None."""
    cleaned = clean_path(path)
    for rule in rules:
        if rule.matches(cleaned):
            return rule
    return None


def ttl_for(
    path: str,
    rules: Tuple[TTLRule, ...] = TTL_RULES,
    default_ttl: Optional[int] = None,
) -> int:
    """
    Get the cache lifetime for a path.

    Args:
        path: Upstream resource path
        rules: Ordered rule table (first match wins)
        default_ttl: Lifetime when no rule matches (defaults to settings)

    Returns:
        Seconds to keep the response; 0 means never cache
    """
    rule = match_rule(path, rules)
    if rule is not None:
        return rule.ttl
    if default_ttl is None:
        default_ttl = settings.default_cache_ttl_seconds
    return default_ttl


def is_cacheable(
    path: str,
    query: Optional[Dict[str, Any]] = None,
    rules: Tuple[TTLRule, ...] = TTL_RULES,
) -> bool:
    """Check whether a (path, query) request should go through the cache."""
    if not settings.cache_enabled:
        return False
    return ttl_for(path, rules) > 0
