"""Tests for the listing filter engine and persisted search state."""

from __future__ import annotations

from django.core.cache import caches
from django.test import SimpleTestCase, override_settings

from apps.accounts.preferences import PreferencesStore
from apps.properties.filters import (
    ALL,
    FilterState,
    SearchFilterStore,
    available_values,
    category_label,
    filter_listings,
    resolve_category,
)
from shared.domain.value_objects import PriceRange
from shared.infrastructure.kv_store import PersistedKeyValueStore

LISTINGS = [
    {"id": 1, "title": "Toyota Camry 2020", "category": "cars", "city": "Riyadh", "price": 45000,
     "listing_type": "sale", "brand": "Toyota", "location": "Al Olaya"},
    {"id": 2, "title": "Hyundai Elantra", "category": "cars", "city": "Jeddah", "price": "9999",
     "listing_type": "sale", "brand": "Hyundai", "location": "Al Rawdah"},
    {"id": 3, "title": "Lexus LX", "category": "cars", "city": "Riyadh", "price": 50001,
     "listing_type": "sale", "brand": "Lexus"},
    {"id": 4, "title": "شقة فاخرة", "category": "real-estate", "city": "Riyadh", "price": 30000,
     "listing_type": "rent", "neighborhood": "حي النخيل", "property_type": "apartment"},
    {"id": 5, "title": "Nissan Patrol", "category": "cars", "city": "Dammam", "price": 10000,
     "listing_type": "sale", "description": "Clean, one owner"},
    {"id": 6, "title": "Sofa", "category": "furniture", "city": "Riyadh", "price": None},
]


def ids(listings):
    return [listing["id"] for listing in listings]


class FilterStateTests(SimpleTestCase):
    def test_category_and_price_bounds_are_combined(self) -> None:
        state = FilterState(category="cars", min_price="10000", max_price="50000")

        result = filter_listings(LISTINGS, state)

        self.assertEqual(ids(result), [1, 5])
        for listing in result:
            self.assertEqual(listing["category"], "cars")
            self.assertTrue(10000 <= float(listing["price"]) <= 50000)

    def test_empty_and_all_fields_impose_nothing(self) -> None:
        state = FilterState(category=ALL, city="", min_price="", max_price="  ")
        self.assertTrue(FilterState().is_empty)
        self.assertEqual(ids(filter_listings(LISTINGS, state)), [1, 2, 3, 4, 5, 6])

    def test_listing_without_price_only_matches_unbounded_range(self) -> None:
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(category="furniture"))), [6])
        self.assertEqual(filter_listings(LISTINGS, FilterState(category="furniture", min_price="1")), [])

    def test_unparsable_bound_is_ignored(self) -> None:
        state = FilterState(category="cars", min_price="abc", max_price="Infinity")
        self.assertEqual(state.price_range, PriceRange())
        self.assertEqual(ids(filter_listings(LISTINGS, state)), [1, 2, 3, 5])

    def test_search_is_case_insensitive_across_text_fields(self) -> None:
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(search="toyota"))), [1])
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(search="ONE OWNER"))), [5])
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(search="النخيل"))), [4])

    def test_location_matches_city_location_or_neighborhood(self) -> None:
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(location="jeddah"))), [2])
        self.assertEqual(ids(filter_listings(LISTINGS, FilterState(location="olaya"))), [1])

    def test_exact_fields(self) -> None:
        state = FilterState(city="Riyadh", listing_type="rent", property_type="apartment")
        self.assertEqual(ids(filter_listings(LISTINGS, state)), [4])

    def test_input_order_is_preserved(self) -> None:
        reversed_listings = list(reversed(LISTINGS))
        self.assertEqual(ids(filter_listings(reversed_listings, FilterState(city="Riyadh"))), [6, 4, 3, 1])

    def test_objects_are_filtered_like_rows(self) -> None:
        class Listing:
            def __init__(self, **fields):
                self.__dict__.update(fields)

        listings = [Listing(category="cars", price=20000, title="a"), Listing(category="cars", price=5, title="b")]
        result = filter_listings(listings, FilterState(category="cars", min_price="10000"))
        self.assertEqual([listing.title for listing in result], ["a"])

    def test_dict_round_trip_ignores_unknown_keys(self) -> None:
        state = FilterState(search="villa", category="real-estate", min_price="100")
        data = {**state.to_dict(), "sort": "price"}
        self.assertEqual(FilterState.from_dict(data), state)

    def test_available_values(self) -> None:
        self.assertEqual(available_values(LISTINGS, "city"), ["Riyadh", "Jeddah", "Dammam"])
        self.assertEqual(available_values(LISTINGS, "brand"), ["Toyota", "Hyundai", "Lexus"])

    def test_category_aliases_and_labels(self) -> None:
        self.assertEqual(resolve_category("سيارات"), "cars")
        self.assertEqual(resolve_category("شقق للإيجار"), "real-estate")
        self.assertEqual(resolve_category("electronics"), "electronics")
        self.assertEqual(resolve_category(""), ALL)
        self.assertEqual(category_label("furniture"), "أثاث")
        self.assertEqual(category_label("boats"), "boats")


class SearchFilterStoreTests(SimpleTestCase):
    def setUp(self) -> None:
        caches["persisted"].clear()
        self.store = PersistedKeyValueStore()
        self.filters = SearchFilterStore(self.store)

    def restart(self) -> SearchFilterStore:
        return SearchFilterStore(PersistedKeyValueStore())

    def test_saved_state_survives_restart(self) -> None:
        state = FilterState(category="cars", city="Riyadh", listing_type="sale", min_price="10000", max_price="50000")

        self.assertTrue(self.filters.save(state))
        loaded = self.restart().load()

        self.assertEqual(loaded, state)
        self.assertEqual(
            self.store.get("searchFilters"),
            {"category": "cars", "city": "Riyadh", "listingType": "sale", "minPrice": "10000", "maxPrice": "50000"},
        )

    def test_url_parameters_take_precedence(self) -> None:
        self.filters.save(FilterState(category="cars", city="Riyadh", min_price="10000"))

        loaded = self.restart().load({"category": "أثاث", "search": "sofa", "location": "olaya"})

        self.assertEqual(loaded.category, "furniture")
        self.assertEqual(loaded.search, "sofa")
        self.assertEqual(loaded.location, "olaya")
        self.assertEqual(loaded.city, "Riyadh")
        self.assertEqual(loaded.min_price, "10000")

    def test_search_text_and_location_are_not_persisted(self) -> None:
        self.filters.save(FilterState(search="villa", location="olaya", category="real-estate"))
        loaded = self.restart().load()
        self.assertEqual(loaded, FilterState(category="real-estate"))

    def test_auto_save_can_be_turned_off(self) -> None:
        PreferencesStore(self.store).update(auto_save_search=False)

        self.assertFalse(self.filters.save(FilterState(category="cars")))
        self.assertEqual(self.filters.load(), FilterState())

    def test_clear(self) -> None:
        self.filters.save(FilterState(category="cars"))
        self.assertEqual(self.filters.clear(), FilterState())
        self.assertEqual(self.restart().load(), FilterState())

    def test_zero_price_bound_survives_restart(self) -> None:
        self.store.set("searchFilters", {"category": "cars", "minPrice": 0, "maxPrice": "", "city": None})

        loaded = self.restart().load()

        self.assertEqual(loaded, FilterState(category="cars", min_price="0"))
        self.assertEqual(ids(filter_listings(LISTINGS, loaded)), [1, 2, 3, 5])

    def test_malformed_saved_value(self) -> None:
        self.store.set("searchFilters", "cars")
        self.assertEqual(self.filters.load(), FilterState())

    @override_settings(RECENT_SEARCHES_LIMIT=3)
    def test_recent_searches_are_deduplicated_and_capped(self) -> None:
        filters = SearchFilterStore(self.store)
        for term in ("villa", "camry", " villa ", "sofa", "iphone", ""):
            filters.add_recent_search(term)

        self.assertEqual(filters.recent_searches(), ["iphone", "sofa", "villa"])

        filters.clear_recent_searches()
        self.assertEqual(filters.recent_searches(), [])
