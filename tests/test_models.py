# test_models.py
# Description: Entity helpers and price range parsing
#
"""
test_models.py
--------------

Behaviour that lives on the entity dataclasses themselves, and the
``MIN-MAX:PRICE`` text format used by the product form.
"""

import pytest

from shoptrack.errors import InputError
from shoptrack.models import (
    GENERAL_EXPENSE, Expense, PaymentMethod, PriceRange, Product, Sale,
    format_price_ranges, parse_price_ranges,
)


class TestParsePriceRanges:

    def test_parses_and_sorts(self):
        ranges = parse_price_ranges("10-49:2.25, 1-9:2.5", product_id=4)
        assert [(r.min_quantity, r.max_quantity, r.price) for r in ranges] == [
            (1, 9, 2.5), (10, 49, 2.25)]
        assert all(r.product_id == 4 for r in ranges)

    @pytest.mark.parametrize("text", ["", "   ", None, " , "])
    def test_blank_means_no_tiers(self, text):
        assert parse_price_ranges(text) == []

    @pytest.mark.parametrize("text", [
        "1-9",          # no price
        "1:2.0",        # no upper bound
        "a-b:1",        # not numbers
        "0-5:1.0",      # zero minimum
        "9-1:1.0",      # inverted
    ])
    def test_rejects_malformed(self, text):
        with pytest.raises(InputError):
            parse_price_ranges(text)

    def test_rejects_overlap(self):
        with pytest.raises(InputError, match="overlap"):
            parse_price_ranges("1-10:2, 10-20:1.5")

    def test_format(self):
        ranges = [PriceRange(0, 1, 9, 2.5), PriceRange(0, 10, 49, 2.0)]
        assert format_price_ranges(ranges) == "1-9:2.5, 10-49:2"
        assert parse_price_ranges(format_price_ranges(ranges)) == ranges


class TestEntities:

    def test_price_range_covers_inclusive_bounds(self):
        pr = PriceRange(1, 5, 10, 1.0)
        assert pr.covers(5) and pr.covers(10)
        assert not pr.covers(4) and not pr.covers(11)

    def test_out_of_stock_only_for_tracked_products(self):
        assert Product("A", 1, 2, 0).is_out_of_stock()
        assert not Product("A", 1, 2, 0, track_inventory=False).is_out_of_stock()
        assert not Product("A", 1, 2, 1).is_out_of_stock()

    def test_bill_key(self):
        grouped = Sale(1, "A", 1, 1, 1, 0, 1, PaymentMethod.CASH, id=7, transaction_id=55)
        legacy = Sale(1, "A", 1, 1, 1, 0, 1, PaymentMethod.CASH, id=7)
        assert grouped.bill_key == 55
        assert legacy.bill_key == -7

    def test_expense_default_category(self):
        assert Expense(description="Bread", amount=1.0).category == GENERAL_EXPENSE
