"""Unit tests for catalogue normalization and the exclusive-offer rule."""

from datetime import datetime, timezone

import pytest

from storefront.exceptions import OfferValidationError
from storefront.services.catalog import (
    EXCLUSIVE_OFFER,
    clean_text_list,
    normalize_image_path,
    normalize_tag,
    parse_datetime,
    parse_int,
    parse_json_field,
    parse_number,
    validate_offer_fields,
)


class TestNormalizeTag:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Exclusive Offer", "exclusive-offer"),
            ("best_selling", "best-selling"),
            ("  NEW-ARRIVAL ", "new-arrival"),
            ("", None),
            (None, None),
        ],
    )
    def test_labels(self, raw, expected):
        assert normalize_tag(raw) == expected


class TestNormalizeImagePath:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("/uploads/a.jpg", "/uploads/a.jpg"),
            ("uploads/a.jpg", "/uploads/a.jpg"),
            ("uploads\\a.jpg", "/uploads/a.jpg"),
            ("a.jpg", "/uploads/a.jpg"),
            ("/a.jpg", "/uploads/a.jpg"),
            ("https://cdn.example.com/a.jpg", "https://cdn.example.com/a.jpg"),
            ("   ", None),
            (None, None),
        ],
    )
    def test_paths(self, raw, expected):
        assert normalize_image_path(raw) == expected


class TestLenientParsing:
    """Form values arrive as strings and must never raise."""

    def test_parse_number(self):
        assert parse_number("12.5") == 12.5
        assert parse_number(3) == 3.0
        assert parse_number("") is None
        assert parse_number("abc") is None
        assert parse_number(True) is None
        assert parse_number("nan") is None
        assert parse_number("inf") is None

    def test_parse_int(self):
        assert parse_int("7") == 7
        assert parse_int("7.9") == 7
        assert parse_int("x", default=3) == 3

    def test_parse_json_field(self):
        assert parse_json_field('["S", "M"]', []) == ["S", "M"]
        assert parse_json_field("{not json", []) == []
        assert parse_json_field(None, {}) == {}
        assert parse_json_field(["already"], []) == ["already"]

    def test_clean_text_list(self):
        assert clean_text_list([" Cotton ", "", None, "Slim fit"]) == ["Cotton", "Slim fit"]
        assert clean_text_list("Cotton") == []

    def test_parse_datetime(self):
        assert parse_datetime("2025-07-01T10:30:00Z") == datetime(2025, 7, 1, 10, 30, tzinfo=timezone.utc)
        assert parse_datetime("2025-07-01").tzinfo == timezone.utc
        assert parse_datetime("soon") is None
        assert parse_datetime("") is None


class TestValidateOfferFields:
    """Tests for the exclusive-offer rule."""

    def test_complete_offer(self):
        offer = validate_offer_fields("Exclusive Offer", 800.0, 1000.0, "2025-07-01T00:00")

        assert offer.tag == EXCLUSIVE_OFFER
        assert offer.old_price == 1000.0
        assert offer.exclusive_offer_end == datetime(2025, 7, 1, tzinfo=timezone.utc)

    def test_other_tags_drop_offer_columns(self):
        offer = validate_offer_fields("best-selling", 800.0, 1000.0, "2025-07-01")

        assert offer.tag == "best-selling"
        assert offer.old_price is None
        assert offer.exclusive_offer_end is None

    def test_old_price_required(self):
        with pytest.raises(OfferValidationError, match="Old price is required"):
            validate_offer_fields(EXCLUSIVE_OFFER, 800.0, None, "2025-07-01")

    def test_old_price_must_exceed_price(self):
        with pytest.raises(OfferValidationError, match="must be greater than price"):
            validate_offer_fields(EXCLUSIVE_OFFER, 800.0, 800.0, "2025-07-01")

    def test_end_date_required(self):
        with pytest.raises(OfferValidationError, match="end date is required"):
            validate_offer_fields(EXCLUSIVE_OFFER, 800.0, 1000.0, "not a date")
