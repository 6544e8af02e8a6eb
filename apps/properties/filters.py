"""Listing query/filter engine and the persisted search state.

Filtering runs locally over already-fetched rows (dicts from the gateway
or ``Property`` instances). ``"all"`` or an empty value imposes no
constraint; every predicate is ANDed and input order is preserved.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from django.conf import settings  # type: ignore

from apps.accounts.preferences import PreferencesStore
from shared.domain.value_objects import PriceRange
from shared.infrastructure.kv_store import (
    RECENT_SEARCHES_KEY,
    SEARCH_FILTERS_KEY,
    PersistedKeyValueStore,
)

logger = logging.getLogger(__name__)

ALL = "all"

SEARCH_FIELDS = ("title", "description", "location", "neighborhood", "brand", "model")
LOCATION_FIELDS = ("location", "city", "neighborhood")

# Section names used in links from the home page
CATEGORY_ALIASES = {
    "شقق للبيع": "real-estate",
    "شقق للإيجار": "real-estate",
    "أراضي": "real-estate",
    "سيارات": "cars",
    "أثاث": "furniture",
}

CATEGORY_LABELS = {
    "real-estate": "عقارات",
    "cars": "سيارات",
    "furniture": "أثاث",
    "electronics": "إلكترونيات",
    "clothes": "ملابس",
    "books": "كتب",
    "sports": "رياضة",
    "other": "أخرى",
}

# FilterState attribute -> key in the persisted ``searchFilters`` value
_PERSISTED_FIELDS = {
    "category": "category",
    "city": "city",
    "listing_type": "listingType",
    "min_price": "minPrice",
    "max_price": "maxPrice",
}


def resolve_category(value: Optional[str]) -> str:
    if not value:
        return ALL
    return CATEGORY_ALIASES.get(value, value)


def category_label(slug: str) -> str:
    return CATEGORY_LABELS.get(slug, slug)


def _field(listing: Any, name: str) -> Any:
    if isinstance(listing, Mapping):
        return listing.get(name)
    return getattr(listing, name, None)


def _contains(listing: Any, names: Iterable[str], needle: str) -> bool:
    needle = needle.lower()
    for name in names:
        value = _field(listing, name)
        if value and needle in str(value).lower():
            return True
    return False


def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


@dataclass
class FilterState:
    search: str = ""
    category: str = ALL
    city: str = ALL
    property_type: str = ALL
    listing_type: str = ALL
    min_price: str = ""
    max_price: str = ""
    # Only ever set from the URL
    location: str = ""

    @property
    def price_range(self) -> PriceRange:
        return PriceRange.from_raw(self.min_price, self.max_price)

    @property
    def is_empty(self) -> bool:
        return self == FilterState()

    def matches(self, listing: Any) -> bool:
        if self.search and not _contains(listing, SEARCH_FIELDS, self.search):
            return False
        if self.location and not _contains(listing, LOCATION_FIELDS, self.location):
            return False
        for name in ("category", "city", "property_type", "listing_type"):
            expected = getattr(self, name)
            if _is_set(expected) and _field(listing, name) != expected:
                return False
        return self.price_range.contains(_field(listing, "price"))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "FilterState":
        data = data or {}
        known = cls.__dataclass_fields__
        return cls(**{k: "" if v is None else str(v) for k, v in data.items() if k in known})


def filter_listings(listings: Iterable[Any], state: FilterState) -> List[Any]:
    return [listing for listing in listings if state.matches(listing)]


def available_values(listings: Iterable[Any], field_name: str) -> List[Any]:
    """Distinct non-empty values of ``field_name`` in first-seen order, for dropdowns."""
    values = {}
    for listing in listings:
        value = _field(listing, field_name)
        if value not in (None, ""):
            values.setdefault(value, None)
    return list(values)


class SearchFilterStore:
    """
    Durable search state: the last filter selection and recent searches.

    Only category, city, listing type and the price bounds survive a
    restart; the free-text search and the URL-only location do not.
    """

    def __init__(
        self,
        store: PersistedKeyValueStore,
        preferences: Optional[PreferencesStore] = None,
        *,
        recent_limit: Optional[int] = None,
    ):
        self.store = store
        self.preferences = preferences or PreferencesStore(store)
        self.recent_limit = recent_limit or getattr(settings, "RECENT_SEARCHES_LIMIT", 10)

    def save(self, state: FilterState) -> bool:
        """Persist ``state`` when auto-save is on; returns whether it was written."""
        if not self.preferences.load().auto_save_search:
            return False
        self.store.set(
            SEARCH_FILTERS_KEY,
            {stored: getattr(state, name) for name, stored in _PERSISTED_FIELDS.items()},
        )
        return True

    def load(self, url_params: Optional[Mapping[str, str]] = None) -> FilterState:
        saved = self.store.get(SEARCH_FILTERS_KEY) or {}
        if not isinstance(saved, dict):
            saved = {}
        # A stored 0 is a real bound; only missing or blank values are skipped
        state = FilterState.from_dict(
            {
                name: saved[stored]
                for name, stored in _PERSISTED_FIELDS.items()
                if saved.get(stored) not in (None, "")
            }
        )

        params = url_params or {}
        if params.get("search"):
            state = replace(state, search=params["search"])
        if params.get("category"):
            state = replace(state, category=resolve_category(params["category"]))
        if params.get("location"):
            state = replace(state, location=params["location"])
        return state

    def clear(self) -> FilterState:
        self.store.remove(SEARCH_FILTERS_KEY)
        return FilterState()

    def add_recent_search(self, term: str) -> List[str]:
        term = (term or "").strip()
        if not term:
            return self.recent_searches()
        recent = [term] + [t for t in self.recent_searches() if t != term]
        recent = recent[: self.recent_limit]
        self.store.set(RECENT_SEARCHES_KEY, recent)
        return recent

    def recent_searches(self) -> List[str]:
        value = self.store.get(RECENT_SEARCHES_KEY) or []
        if not isinstance(value, list):
            logger.warning("Discarding malformed recent searches")
            return []
        return [str(t) for t in value]

    def clear_recent_searches(self) -> None:
        self.store.remove(RECENT_SEARCHES_KEY)
