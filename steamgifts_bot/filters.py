"""Named giveaway listing filters and the search paths they map to."""

from __future__ import annotations

FILTER_WISHLIST = "wishlist"
FILTER_GROUP = "group"
FILTER_RECOMMENDED = "recommended"
FILTER_NEW = "new"
FILTER_DLC = "dlc"
FILTER_MULTICOPY = "multicopy"
FILTER_ALL = "all"

SEARCH_BASE = "/giveaways/search"

_FILTER_PATHS = {
    FILTER_WISHLIST: SEARCH_BASE + "?type=wishlist",
    FILTER_GROUP: SEARCH_BASE + "?type=group",
    FILTER_RECOMMENDED: SEARCH_BASE + "?type=recommended",
    FILTER_NEW: SEARCH_BASE + "?type=new",
    FILTER_DLC: SEARCH_BASE + "?dlc=true",
    FILTER_MULTICOPY: SEARCH_BASE + "?copy_min=2",
    FILTER_ALL: SEARCH_BASE,
    "": SEARCH_BASE,
}


def with_page(path: str, page: int) -> str:
    """Append a page number to a listing path; page 1 leaves it unchanged."""
    if page <= 1:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}page={page}"


def valid_filter_names() -> list[str]:
    """Return the named filters in a stable order."""
    return [
        FILTER_WISHLIST,
        FILTER_GROUP,
        FILTER_RECOMMENDED,
        FILTER_NEW,
        FILTER_DLC,
        FILTER_MULTICOPY,
        FILTER_ALL,
    ]


def filter_url(name: str) -> str:
    """Map a filter name (or a raw path starting with '/') to a listing path.

    Raises ValueError for an unknown name.
    """
    if name.startswith("/"):
        return name
    try:
        return _FILTER_PATHS[name.strip().lower()]
    except KeyError:
        raise ValueError(
            f"unknown filter {name!r} (use a named filter or a raw path starting with /)"
        ) from None


def is_valid_filter(name: str) -> bool:
    """Report whether name is a known filter or a raw path."""
    try:
        filter_url(name)
    except ValueError:
        return False
    return True