"""Unit tests for search term validation and ranking."""

import pytest

from storefront.exceptions import ValidationError
from storefront.services.product_search import (
    FULL_LIMIT,
    QUICK_LIMIT,
    rank_key,
    validate_search_query,
)


class TestValidateSearchQuery:
    def test_strips_angle_brackets(self):
        query = validate_search_query("  <b>shirt</b> ")

        assert query.text == "bshirt/b"
        assert query.type == "quick"
        assert query.limit == QUICK_LIMIT

    def test_full_type(self):
        query = validate_search_query("shirt", "FULL")

        assert query.type == "full"
        assert query.limit == FULL_LIMIT

    def test_unknown_type_falls_back_to_quick(self):
        assert validate_search_query("shirt", "fuzzy").type == "quick"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_required(self, raw):
        with pytest.raises(ValidationError, match="Search query is required"):
            validate_search_query(raw)

    def test_too_short_after_cleaning(self):
        with pytest.raises(ValidationError, match="at least 2 characters"):
            validate_search_query("<a>")

    def test_too_long(self):
        with pytest.raises(ValidationError, match="must not exceed 100 characters"):
            validate_search_query("x" * 101)


def test_rank_key_prefers_prefix_then_position_then_length():
    names = ["Cotton Shirt", "Shirt Dress", "Shirt", "Overshirt"]

    ranked = sorted(names, key=lambda n: rank_key(n, "shirt"))

    assert ranked == ["Shirt", "Shirt Dress", "Overshirt", "Cotton Shirt"]
