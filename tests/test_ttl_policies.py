"""
TTL policy tests: one representative path per rule, plus ordering guarantees
"""
import re

import pytest

from app.cache.ttl_policies import (
    DAY,
    HOUR,
    TTL_RULES,
    TTLRule,
    is_cacheable,
    match_rule,
    ttl_for,
)


# (path, expected rule label, expected ttl)
RESOLUTION_TABLE = [
    ("search/movie", "search", 0),
    ("search/multi", "search", 0),
    ("genre/movie/list", "genre_list", 7 * DAY),
    ("genre/tv/list", "genre_list", 7 * DAY),
    ("configuration", "configuration", DAY),
    ("movie/603", "movie_detail", DAY),
    ("tv/1399", "tv_detail", DAY),
    ("person/6384", "person_detail", DAY),
    ("person/6384/combined_credits", "person_detail", DAY),
    ("collection/2344", "collection_detail", DAY),
    ("movie/603/credits", "movie_subresource", 12 * HOUR),
    ("movie/603/images", "movie_subresource", 12 * HOUR),
    ("tv/1399/season/1", "tv_subresource", 12 * HOUR),
    ("movie/top_rated", "top_rated", 12 * HOUR),
    ("tv/top_rated", "top_rated", 12 * HOUR),
    ("movie/popular", "popular", 6 * HOUR),
    ("watch/providers/movie", "watch_providers", 6 * HOUR),
    ("discover/movie", "discover", 4 * HOUR),
    ("movie/now_playing", "now_playing", 4 * HOUR),
    ("movie/upcoming", "upcoming", 4 * HOUR),
    ("tv/on_the_air", "on_the_air", 4 * HOUR),
    ("tv/airing_today", "airing_today", 4 * HOUR),
    ("trending/movie/day", "trending", 2 * HOUR),
]


@pytest.mark.parametrize("path,label,ttl", RESOLUTION_TABLE)
def test_every_representative_path_resolves(path, label, ttl):
    rule = match_rule(path)
    assert rule is not None
    assert rule.label == label
    assert ttl_for(path) == ttl


def test_search_is_never_cacheable():
    assert ttl_for("search/movie") == 0
    assert not is_cacheable("search/movie", {"query": "dune"})


def test_static_reference_data_lives_for_days():
    assert ttl_for("genre/movie/list") >= DAY
    assert ttl_for("genre/movie/list") % DAY == 0


def test_subresources_live_shorter_than_detail():
    assert ttl_for("movie/603/credits") < ttl_for("movie/603")
    assert ttl_for("tv/1399/images") < ttl_for("tv/1399")


def test_trending_is_shortest_cached_class():
    cached = [ttl for _, _, ttl in RESOLUTION_TABLE if ttl > 0]
    assert ttl_for("trending/tv/week") == min(cached)


def test_unmatched_path_uses_default():
    assert match_rule("some/unknown/path") is None
    assert ttl_for("some/unknown/path", default_ttl=123) == 123


def test_slashes_are_ignored():
    assert ttl_for("/movie/603/") == DAY


def test_first_match_wins_over_later_broader_rule():
    rules = (
        TTLRule(re.compile(r"^movie/\d+$"), 100, "specific"),
        TTLRule(re.compile(r"^movie/"), 5, "broad"),
    )
    assert ttl_for("movie/603", rules) == 100
    assert ttl_for("movie/popular", rules) == 5

    # Same rules, reversed: the broad rule now shadows the specific one
    assert ttl_for("movie/603", tuple(reversed(rules))) == 5


def test_reordering_unrelated_rules_keeps_resolution():
    search_rule = TTL_RULES[0]
    trending_rule = TTL_RULES[-1]
    reordered = (trending_rule,) + TTL_RULES[1:-1] + (search_rule,)
    for path, _, ttl in RESOLUTION_TABLE:
        assert ttl_for(path, reordered) == ttl


def test_non_ascii_digits_do_not_match_detail_rules():
    assert match_rule("movie/６０３") is None
