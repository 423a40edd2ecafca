"""Tests for the data structures adapters produce."""

from decimal import Decimal

import pytest

from tracker.scrapers.base import (
    UNKNOWN_PRODUCT_NAME,
    ExtractedProduct,
    ProductSnapshot,
    SizeAvailability,
)
from tracker.scrapers.sites import Site

URL = "https://www.zara.com/pt/pt/casaco-de-la-p02753752.html"


class TestSizeAvailability:
    def test_low_stock_size_must_be_available(self):
        with pytest.raises(ValueError):
            SizeAvailability(size="M", available=False, low_stock=True)

    def test_size_label_required(self):
        with pytest.raises(ValueError):
            SizeAvailability(size="", available=True)

    def test_from_dict_accepts_camel_case(self):
        size = SizeAvailability.from_dict({"size": "S", "available": True, "lowStock": True})

        assert size == SizeAvailability(size="S", available=True, low_stock=True)
        assert size.to_dict() == {"size": "S", "available": True, "low_stock": True}


class TestProductSnapshot:
    def test_discount_is_derived(self):
        snapshot = ProductSnapshot(
            site=Site.ZARA,
            name="CASACO DE LÃ",
            url=URL,
            current_price=Decimal("39.95"),
            reference_price=Decimal("49.95"),
        )

        assert snapshot.discount_percent == 20

    def test_explicit_discount_is_kept(self):
        snapshot = ProductSnapshot(
            site=Site.ZARA,
            name="CASACO DE LÃ",
            url=URL,
            current_price=Decimal("39.95"),
            reference_price=Decimal("49.95"),
            discount_percent=25,
        )

        assert snapshot.discount_percent == 25

    def test_no_reference_price_means_no_discount(self):
        snapshot = ProductSnapshot(
            site=Site.ZARA, name="CASACO DE LÃ", url=URL, current_price=Decimal("39.95")
        )

        assert snapshot.discount_percent is None

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValueError):
            ProductSnapshot(
                site=Site.ZARA, name="CASACO DE LÃ", url=URL, current_price=Decimal("-1")
            )

    def test_name_is_required(self):
        with pytest.raises(ValueError):
            ProductSnapshot(site=Site.ZARA, name="", url=URL, current_price=Decimal("1"))

    def test_from_extracted_defaults_missing_price_to_zero(self):
        extracted = ExtractedProduct(
            site=Site.ZARA,
            url=URL,
            name="CASACO DE LÃ",
            sizes=[
                SizeAvailability(size="S", available=True),
                SizeAvailability(size="M", available=True, low_stock=True),
                SizeAvailability(size="L", available=False),
            ],
        )

        snapshot = ProductSnapshot.from_extracted(extracted)

        assert snapshot.current_price == Decimal("0")
        assert snapshot.available_sizes == ["S", "M"]
        assert snapshot.low_stock_sizes == ["M"]


def test_extracted_product_without_name():
    assert not ExtractedProduct(site=Site.ZARA, url=URL).has_name
    assert not ExtractedProduct(site=Site.ZARA, url=URL, name=UNKNOWN_PRODUCT_NAME).has_name
    assert ExtractedProduct(site=Site.ZARA, url=URL, name="CASACO").has_name
