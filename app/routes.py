"""
Allow-list of upstream paths the proxy may forward.

Anything not listed here is rejected. This is a security boundary: the
gateway holds the provider credentials, so an unlisted path must never reach
the provider.
"""
import re
from typing import Pattern, Tuple

from app.utils.helpers import clean_path


ALLOWED_ROUTES: Tuple[Pattern[str], ...] = (
    # Browse lists
    re.compile(r"^trending/(movie|tv|all)/(day|week)$", re.ASCII),
    re.compile(r"^(movie|tv)/popular$", re.ASCII),
    re.compile(r"^(movie|tv)/top_rated$", re.ASCII),
    re.compile(r"^movie/upcoming$", re.ASCII),
    re.compile(r"^movie/now_playing$", re.ASCII),
    re.compile(r"^tv/on_the_air$", re.ASCII),
    re.compile(r"^tv/airing_today$", re.ASCII),
    # Details
    re.compile(r"^movie/\d+$", re.ASCII),
    re.compile(r"^tv/\d+$", re.ASCII),
    re.compile(r"^person/\d+$", re.ASCII),
    # Detail sub-resources
    re.compile(r"^movie/\d+/(credits|videos|images|recommendations|similar|reviews|watch/providers)$", re.ASCII),
    re.compile(r"^tv/\d+/(credits|videos|images|recommendations|similar|reviews|watch/providers|season/\d+)$", re.ASCII),
    re.compile(r"^person/\d+/(movie_credits|tv_credits|combined_credits|images)$", re.ASCII),
    # Search and discovery
    re.compile(r"^search/(movie|tv|multi|person|keyword|collection)$", re.ASCII),
    re.compile(r"^discover/(movie|tv)$", re.ASCII),
    # Metadata lists
    re.compile(r"^genre/(movie|tv)/list$", re.ASCII),
    re.compile(r"^configuration$", re.ASCII),
    re.compile(r"^watch/providers/(movie|tv)$", re.ASCII),
    re.compile(r"^collection/\d+$", re.ASCII),
)


def is_allowed(path: str) -> bool:
    """Check a path against the allow-list. Fails closed."""
    cleaned = clean_path(path)
    if not cleaned:
        return False
    return any(pattern.match(cleaned) for pattern in ALLOWED_ROUTES)
