# listing_query.py
"""Search, filter and sort a listing collection already held by the client.

Works on API payloads (dicts) as well as ORM/attribute objects. The input
sequence is never modified; a new list is returned.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel

WILDCARDS = ("", "all")


class SortOption(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRICE_LOW = "price_low"
    PRICE_HIGH = "price_high"
    TITLE = "title"


class ListingFilter(BaseModel):
    search_term: Optional[str] = None
    category: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: SortOption = SortOption.NEWEST


def _field(listing: Any, name: str) -> Any:
    if isinstance(listing, dict):
        return listing.get(name)
    return getattr(listing, name, None)


def _text(listing: Any, name: str) -> str:
    value = _field(listing, name)
    return str(value).lower() if value is not None else ""


def _price(listing: Any) -> float:
    value = _field(listing, "price")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _created(listing: Any) -> datetime:
    value = _field(listing, "created_at")
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.min
    if not isinstance(value, datetime):
        return datetime.min
    # Compare naive UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _is_wildcard(value: Optional[str]) -> bool:
    return value is None or value.strip().lower() in WILDCARDS


def matches(listing: Any, filters: ListingFilter) -> bool:
    """True when ``listing`` passes every active filter (logical AND)."""
    if filters.search_term:
        term = filters.search_term.lower()
        haystacks = (_text(listing, "title"), _text(listing, "description"), _text(listing, "category"))
        if not any(term in text for text in haystacks):
            return False

    if not _is_wildcard(filters.category) and _text(listing, "category") != filters.category.lower():
        return False
    if not _is_wildcard(filters.condition) and _text(listing, "condition") != filters.condition.lower():
        return False

    price = _price(listing)
    if filters.min_price is not None and price < filters.min_price:
        return False
    if filters.max_price is not None and price > filters.max_price:
        return False
    return True


def sort_listings(listings: Iterable[Any], sort_by: SortOption = SortOption.NEWEST) -> List[Any]:
    # sorted() is stable, including with reverse=True
    sort_by = SortOption(sort_by)
    if sort_by is SortOption.NEWEST:
        return sorted(listings, key=_created, reverse=True)
    if sort_by is SortOption.OLDEST:
        return sorted(listings, key=_created)
    if sort_by is SortOption.PRICE_LOW:
        return sorted(listings, key=_price)
    if sort_by is SortOption.PRICE_HIGH:
        return sorted(listings, key=_price, reverse=True)
    return sorted(listings, key=lambda listing: _text(listing, "title"))


def filter_listings(listings: Iterable[Any], filters: Optional[ListingFilter] = None) -> List[Any]:
    filters = filters or ListingFilter()
    return sort_listings([listing for listing in listings if matches(listing, filters)], filters.sort_by)
