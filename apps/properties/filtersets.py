"""FilterSet for the listings API, the server-side twin of ``filters.FilterState``."""

from __future__ import annotations

import django_filters  # type: ignore
from django.db.models import Q  # type: ignore

from .filters import ALL, LOCATION_FIELDS, SEARCH_FIELDS, resolve_category
from .models import Property


class ListingFilterSet(django_filters.FilterSet):
    """``all`` or an empty value imposes nothing; price bounds are inclusive."""

    search = django_filters.CharFilter(method="filter_search")
    location = django_filters.CharFilter(method="filter_location")
    category = django_filters.CharFilter(method="filter_category")
    city = django_filters.CharFilter(method="filter_exact")
    property_type = django_filters.CharFilter(method="filter_exact")
    listing_type = django_filters.CharFilter(method="filter_exact")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")

    class Meta:
        model = Property
        fields = ["city", "property_type", "listing_type"]

    @staticmethod
    def _any_contains(queryset, fields, value):  # type: ignore
        query = Q()
        for name in fields:
            query |= Q(**{f"{name}__icontains": value})
        return queryset.filter(query)

    def filter_search(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return self._any_contains(queryset, SEARCH_FIELDS, value)

    def filter_location(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return self._any_contains(queryset, LOCATION_FIELDS, value)

    def filter_category(self, queryset, name, value):  # type: ignore
        category = resolve_category(value)
        if category == ALL:
            return queryset
        return queryset.filter(category=category)

    def filter_exact(self, queryset, name, value):  # type: ignore
        if not value or value == ALL:
            return queryset
        return queryset.filter(**{name: value})
