# test_repository.py
# Description: Business operations of the persistence facade
#
"""
test_repository.py
------------------

Tests for ``ShopTrackRepository``: product and supply bookkeeping, sale
pricing and stock movements, cancellation, purchases, favourites,
settings and expenses.  Every test runs against a real SQLite file.
"""

from datetime import datetime

import pytest

from shoptrack.errors import InputError, InsufficientStockError, NotFoundError
from shoptrack.event_bus import EventType
from shoptrack.models import (
    GENERAL_EXPENSE, INVENTORY_PURCHASE_EXPENSE, SUPPLIES_EXPENSE,
    CashReconciliation, PaymentMethod, PriceRange, ProductSupplyLink,
    PurchaseBill, PurchaseItem, PurchaseItemType, Settings,
)


class TestFacade:

    def test_exposes_one_dao_per_entity(self, repo):
        assert set(repo.daos) == set(repo.ENTITIES)
        assert all(dao.db is repo.db for dao in repo.daos.values())

    def test_works_without_event_bus(self, db):
        from shoptrack.repository import ShopTrackRepository

        repo = ShopTrackRepository.from_database(db)
        repo.add_expense("Bread", 2.0)
        assert len(repo.expenses.get_all()) == 1


class TestProducts:

    def test_save_assigns_id_and_announces(self, repo, changes, make_product):
        product = make_product()
        assert product.id > 0
        assert repo.get_product(product.id).name == "Cola"
        assert "products" in changes

    def test_save_strips_name(self, repo, make_product):
        product = make_product(name="  Tea  ")
        assert repo.get_product(product.id).name == "Tea"

    @pytest.mark.parametrize("kwargs", [
        {"name": "   "},
        {"cost": -1.0},
        {"price": -0.5},
        {"qty": -3},
    ])
    def test_save_rejects_bad_input(self, make_product, kwargs):
        with pytest.raises(InputError):
            make_product(**kwargs)

    def test_untracked_product_may_have_negative_stock(self, make_product):
        product = make_product(qty=-1, track_inventory=False)
        assert product.id > 0

    def test_get_missing_product(self, repo):
        with pytest.raises(NotFoundError):
            repo.get_product(999)

    def test_search_blank_returns_all(self, repo, make_product):
        make_product(name="Cola")
        make_product(name="Chips")
        assert len(repo.search_products("  ")) == 2
        assert [p.name for p in repo.search_products("chi")] == ["Chips"]

    def test_price_ranges_kept_only_with_tiered_pricing(self, repo, make_product):
        ranges = [PriceRange(0, 1, 9, 2.0), PriceRange(0, 10, 99, 1.5)]
        plain = make_product(name="Plain", ranges=ranges)
        tiered = make_product(name="Tiered", ranges=[PriceRange(0, 10, 99, 1.5)],
                              has_quantity_based_pricing=True)

        assert repo.price_ranges.get_for_product(plain.id) == []
        assert len(repo.price_ranges.get_for_product(tiered.id)) == 1

    def test_invalid_price_range_rejected(self, make_product):
        with pytest.raises(InputError):
            make_product(ranges=[PriceRange(0, 5, 2, 1.0)],
                         has_quantity_based_pricing=True)

    def test_restock(self, repo, make_product):
        product = make_product(qty=2)
        repo.restock_product(product.id, 5)
        assert repo.get_product(product.id).quantity_in_stock == 7

    def test_restock_requires_positive_quantity(self, repo, make_product):
        product = make_product()
        with pytest.raises(InputError):
            repo.restock_product(product.id, 0)

    def test_delete_removes_dependents(self, repo, make_product, make_supply):
        product = make_product(has_quantity_based_pricing=True,
                               ranges=[PriceRange(0, 1, 5, 1.0)])
        supply = make_supply()
        repo.update_supply_links(product.id, [ProductSupplyLink(0, supply.id, 1.0)])
        repo.add_to_favorites(product.id)

        repo.delete_product(product)

        assert repo.products.get_by_id(product.id) is None
        assert repo.price_ranges.get_for_product(product.id) == []
        assert repo.product_supply_links.get_for_product(product.id) == []
        assert not repo.favorites.is_favorite(product.id)


class TestCategories:

    def test_add_category(self, repo, changes):
        category = repo.add_category("  Snacks ")
        assert category.id > 0
        assert category.name == "Snacks"
        assert changes == ["categories"]

    def test_blank_category_rejected(self, repo):
        with pytest.raises(InputError):
            repo.add_category("")

    def test_delete_category_uncategorises_products(self, repo, make_product):
        category = repo.add_category("Drinks")
        product = make_product(category_id=category.id)

        repo.delete_category(category)

        assert repo.categories.get_all() == []
        assert repo.get_product(product.id).category_id is None


class TestPricing:

    def test_regular_price(self, repo, make_product):
        product = make_product(price=2.0)
        assert repo.price_for(product, 3) == 2.0

    def test_tiered_price_applies_inside_range(self, repo, make_product):
        product = make_product(price=2.0, has_quantity_based_pricing=True,
                               ranges=[PriceRange(0, 10, 49, 1.5)])
        assert repo.price_for(product, 9) == 2.0
        assert repo.price_for(product, 10) == 1.5
        assert repo.price_for(product, 50) == 2.0

    def test_wholesale_price_wins_when_requested(self, repo, make_product):
        product = make_product(price=2.0, wholesale_price=1.2,
                               has_quantity_based_pricing=True,
                               ranges=[PriceRange(0, 1, 99, 1.5)])
        assert repo.price_for(product, 5, is_wholesale=True) == 1.2
        assert repo.price_for(product, 5) == 1.5

    def test_wholesale_without_wholesale_price_uses_retail(self, repo, make_product):
        product = make_product(price=2.0)
        assert repo.price_for(product, 1, is_wholesale=True) == 2.0


class TestSales:

    def test_sale_amounts_and_stock(self, repo, make_product):
        product = make_product(cost=1.0, price=2.5, qty=10)

        sale = repo.record_sale(product.id, 4)

        assert sale.total_amount == pytest.approx(10.0)
        assert sale.unit_price == pytest.approx(2.5)
        assert sale.profit == pytest.approx(6.0)
        assert sale.payment_method is PaymentMethod.CASH
        assert repo.get_product(product.id).quantity_in_stock == 6

    def test_discount_reduces_total_and_profit(self, repo, make_product):
        product = make_product(cost=1.0, price=2.0)
        sale = repo.record_sale(product.id, 5, discount=3.0)
        assert sale.total_amount == pytest.approx(7.0)
        assert sale.unit_price == pytest.approx(1.4)
        assert sale.profit == pytest.approx(2.0)

    def test_discount_never_makes_total_negative(self, repo, make_product):
        product = make_product(price=2.0)
        sale = repo.record_sale(product.id, 1, discount=10.0)
        assert sale.total_amount == 0.0

    def test_wholesale_sale(self, repo, make_product):
        product = make_product(price=2.0, wholesale_price=1.5)
        sale = repo.record_sale(product.id, 2, PaymentMethod.VISA, is_wholesale=True)
        assert sale.total_amount == pytest.approx(3.0)
        assert sale.is_wholesale
        assert sale.payment_method is PaymentMethod.VISA

    def test_insufficient_stock(self, repo, make_product):
        product = make_product(qty=2)
        with pytest.raises(InsufficientStockError) as exc:
            repo.record_sale(product.id, 3)
        assert exc.value.available == 2
        assert repo.sales.get_all() == []
        assert repo.get_product(product.id).quantity_in_stock == 2

    def test_untracked_product_sells_without_stock(self, repo, make_product):
        product = make_product(qty=0, track_inventory=False)
        repo.record_sale(product.id, 5)
        assert repo.get_product(product.id).quantity_in_stock == 0

    def test_zero_quantity_rejected(self, repo, make_product):
        product = make_product()
        with pytest.raises(InputError):
            repo.record_sale(product.id, 0)

    def test_sale_of_missing_product(self, repo):
        with pytest.raises(NotFoundError):
            repo.record_sale(42, 1)

    def test_sale_deducts_linked_supplies(self, repo, make_product, make_supply):
        product = make_product()
        cups = make_supply(name="Cups", quantity=100)
        lids = make_supply(name="Lids", quantity=50)
        repo.update_supply_links(product.id, [
            ProductSupplyLink(0, cups.id, 1.0),
            ProductSupplyLink(0, lids.id, 0.5),
        ])

        repo.record_sale(product.id, 4)

        assert repo.supplies.get_by_id(cups.id).quantity == pytest.approx(96)
        assert repo.supplies.get_by_id(lids.id).quantity == pytest.approx(48)

    def test_sale_announces_sales_and_products(self, repo, changes, make_product):
        product = make_product()
        changes.clear()
        repo.record_sale(product.id, 1)
        assert changes == ["sales", "products"]

    def test_cogs_by_date(self, repo, make_product):
        product = make_product(cost=1.25)
        repo.record_sale(product.id, 4)
        assert repo.today_cogs() == pytest.approx(5.0)


class TestCancelSale:

    def test_cancel_restores_stock_once(self, repo, make_product):
        product = make_product(qty=10)
        sale = repo.record_sale(product.id, 3)

        assert repo.cancel_sale(sale.id) is True
        assert repo.cancel_sale(sale.id) is False

        assert repo.get_product(product.id).quantity_in_stock == 10
        assert repo.sales.get_by_id(sale.id).is_cancelled
        assert repo.sales.get_all() == []

    def test_cancel_restores_supplies(self, repo, make_product, make_supply):
        product = make_product()
        cups = make_supply(quantity=10)
        repo.update_supply_links(product.id, [ProductSupplyLink(0, cups.id, 2.0)])
        sale = repo.record_sale(product.id, 2)

        repo.cancel_sale(sale.id)

        assert repo.supplies.get_by_id(cups.id).quantity == pytest.approx(10)

    def test_cancel_untracked_leaves_stock(self, repo, make_product):
        product = make_product(qty=0, track_inventory=False)
        sale = repo.record_sale(product.id, 2)
        repo.cancel_sale(sale.id)
        assert repo.get_product(product.id).quantity_in_stock == 0

    def test_cancel_after_product_deleted(self, repo, make_product):
        product = make_product()
        sale = repo.record_sale(product.id, 1)
        repo.delete_product(product)
        assert repo.cancel_sale(sale.id) is True

    def test_cancel_missing_sale(self, repo):
        with pytest.raises(NotFoundError):
            repo.cancel_sale(12345)

    def test_cancel_bill(self, repo, make_product):
        a = make_product(name="A", qty=5)
        b = make_product(name="B", qty=5)
        sales = [repo.record_sale(a.id, 1, transaction_id=7),
                 repo.record_sale(b.id, 2, transaction_id=7)]

        assert repo.cancel_bill(sales) is True
        assert repo.cancel_bill(sales) is False
        assert repo.get_product(b.id).quantity_in_stock == 5


class TestPurchases:

    def _item(self, item_type, name, qty, cost, item_id=None):
        return PurchaseItem(item_type=item_type, item_name=name, quantity=qty,
                            unit_cost=cost, total_cost=qty * cost, item_id=item_id)

    def test_purchase_adds_stock_and_books_inventory_expense(self, repo, make_product):
        product = make_product(qty=1)
        bill = PurchaseBill(total_amount=20.0, supplier_name="Acme")
        items = [self._item(PurchaseItemType.PRODUCT, "Cola", 10, 2.0, product.id)]

        bill_id = repo.record_purchase(bill, items)

        assert repo.get_product(product.id).quantity_in_stock == 11
        stored = repo.purchase_bills.get_with_items(bill_id)
        assert stored.bill.supplier_name == "Acme"
        assert len(stored.items) == 1
        [expense] = repo.expenses.get_all()
        assert expense.category == INVENTORY_PURCHASE_EXPENSE
        assert expense.description == "Purchase from Acme"
        assert expense.amount == pytest.approx(20.0)

    def test_supply_line_books_supplies_expense(self, repo, make_supply):
        cups = make_supply(quantity=5)
        bill = PurchaseBill(total_amount=3.0)
        repo.record_purchase(bill, [
            self._item(PurchaseItemType.SUPPLY, "Cups", 30, 0.1, cups.id)])

        assert repo.supplies.get_by_id(cups.id).quantity == pytest.approx(35)
        [expense] = repo.expenses.get_all()
        assert expense.category == SUPPLIES_EXPENSE
        assert expense.description == INVENTORY_PURCHASE_EXPENSE

    def test_purchase_without_expense(self, repo, make_product):
        product = make_product()
        repo.record_purchase(
            PurchaseBill(total_amount=5.0),
            [self._item(PurchaseItemType.PRODUCT, "Cola", 5, 1.0, product.id)],
            record_as_expense=False)
        assert repo.expenses.get_all() == []

    def test_create_missing_matches_existing_names(self, repo, make_product, make_supply):
        product = make_product(name="Cola", qty=0)
        cups = make_supply(name="Cups", quantity=0)
        items = [self._item(PurchaseItemType.PRODUCT, "cola", 6, 1.0),
                 self._item(PurchaseItemType.SUPPLY, "CUPS", 20, 0.1)]

        repo.record_purchase(PurchaseBill(total_amount=8.0), items, create_missing=True)

        assert items[0].item_id == product.id
        assert items[1].item_id == cups.id
        assert repo.get_product(product.id).quantity_in_stock == 6
        assert repo.supplies.get_by_id(cups.id).quantity == pytest.approx(20)
        assert len(repo.products.get_all()) == 1

    def test_create_missing_creates_new_items(self, repo):
        items = [self._item(PurchaseItemType.PRODUCT, "Juice", 12, 0.8),
                 self._item(PurchaseItemType.SUPPLY, "Straws", 100, 0.01)]

        repo.record_purchase(PurchaseBill(total_amount=10.6), items, create_missing=True)

        juice = repo.get_product(items[0].item_id)
        assert juice.name == "Juice"
        assert juice.quantity_in_stock == 12
        assert juice.cost_price == juice.selling_price == pytest.approx(0.8)
        straws = repo.supplies.get_by_id(items[1].item_id)
        assert straws.quantity == pytest.approx(100)
        assert straws.unit == "unit"

    def test_unlinked_line_without_create_missing_touches_no_stock(self, repo):
        items = [self._item(PurchaseItemType.PRODUCT, "Juice", 12, 0.8)]
        repo.record_purchase(PurchaseBill(total_amount=9.6), items)
        assert repo.products.get_all() == []
        assert items[0].item_id is None

    @pytest.mark.parametrize("qty, cost, name", [
        (0, 1.0, "Cola"),
        (1, -1.0, "Cola"),
        (1, 1.0, "  "),
    ])
    def test_invalid_lines_rejected(self, repo, qty, cost, name):
        with pytest.raises(InputError):
            repo.record_purchase(PurchaseBill(total_amount=1.0), [
                self._item(PurchaseItemType.PRODUCT, name, qty, cost)])
        assert repo.purchase_bills.get_all() == []

    def test_empty_purchase_rejected(self, repo):
        with pytest.raises(InputError):
            repo.record_purchase(PurchaseBill(total_amount=0.0), [])

    def test_delete_bill_removes_items(self, repo, make_product):
        product = make_product()
        bill = PurchaseBill(total_amount=1.0)
        bill_id = repo.record_purchase(bill, [
            self._item(PurchaseItemType.PRODUCT, "Cola", 1, 1.0, product.id)])

        repo.delete_purchase_bill(bill)

        assert repo.purchase_bills.get_with_items(bill_id) is None
        assert repo.purchase_bills.items_for_bill(bill_id) == []


class TestFavorites:

    def test_new_favorites_go_last(self, repo, make_product):
        a, b, c = (make_product(name=n) for n in "ABC")
        for product in (b, a, c):
            repo.add_to_favorites(product.id)

        names = [p.name for p in repo.favorites.get_favorite_products()]
        assert names == ["B", "A", "C"]

    def test_toggle(self, repo, make_product):
        product = make_product()
        assert repo.toggle_favorite(product.id) is True
        assert repo.favorites.is_favorite(product.id)
        assert repo.toggle_favorite(product.id) is False
        assert not repo.favorites.is_favorite(product.id)

    def test_reorder(self, repo, make_product):
        a, b, c = (make_product(name=n) for n in "ABC")
        for product in (a, b, c):
            repo.add_to_favorites(product.id)

        repo.update_favorite_order([c.id, a.id, b.id])

        assert repo.favorites.ordered_ids() == [c.id, a.id, b.id]


class TestSettings:

    def test_defaults_before_first_save(self, repo):
        settings = repo.get_settings()
        assert settings == Settings()
        assert repo.currency_code() == "USD"

    def test_update_persists_and_notifies(self, repo, event_bus):
        received = []
        event_bus.subscribe(EventType.SETTINGS_CHANGED, received.append)

        repo.update_settings(Settings(id=99, currency_code="OMR", shop_name="Corner",
                                      cr_number="CR-1", wholesale_mode_enabled=True))

        stored = repo.get_settings()
        assert stored.id == 1
        assert stored.currency_code == "OMR"
        assert stored.wholesale_mode_enabled is True
        assert received and received[0].shop_name == "Corner"


class TestExpenses:

    def test_add_expense_defaults(self, repo, changes):
        expense = repo.add_expense("  Rent  ", 100.0, category="")
        assert expense.description == "Rent"
        assert expense.category == GENERAL_EXPENSE
        assert changes == ["expenses"]

    @pytest.mark.parametrize("description, amount", [
        ("", 5.0),
        ("Rent", 0),
        ("Rent", -2.0),
    ])
    def test_invalid_expense(self, repo, description, amount):
        with pytest.raises(InputError):
            repo.add_expense(description, amount)

    def test_add_expense_with_date(self, repo):
        when = datetime(2026, 3, 14, 12, 0)
        repo.add_expense("Water", 4.0, date=when)
        assert len(repo.expenses.get_by_date("2026-03-14")) == 1
        assert repo.expenses.get_by_date("2026-03-15") == []

    def test_update_and_delete(self, repo):
        expense = repo.add_expense("Power", 30.0, "Utilities")
        expense.amount = 35.0
        repo.update_expense(expense)
        assert repo.expenses.get_by_id(expense.id).amount == 35.0

        repo.delete_expense(expense)
        assert repo.expenses.get_all() == []

    def test_update_validates(self, repo):
        expense = repo.add_expense("Power", 30.0)
        expense.amount = 0
        with pytest.raises(InputError):
            repo.update_expense(expense)

    def test_reconciliation_requires_valid_date(self, repo):
        with pytest.raises(InputError):
            repo.save_cash_reconciliation(CashReconciliation(date="14/03/2026"))


class TestSupplies:

    def test_save_validates(self, repo, make_supply):
        with pytest.raises(InputError):
            make_supply(name="")
        with pytest.raises(InputError):
            make_supply(unit=" ")
        with pytest.raises(InputError):
            make_supply(quantity=-1)

    def test_adjust(self, repo, make_supply):
        supply = make_supply(quantity=10)
        repo.adjust_supply(supply.id, 5)
        repo.adjust_supply(supply.id, -3)
        assert repo.supplies.get_by_id(supply.id).quantity == pytest.approx(12)

    def test_adjust_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.adjust_supply(1, 1)

    def test_low_stock(self, make_supply):
        assert make_supply(quantity=10, low_stock_threshold=10).is_low_stock()
        assert not make_supply(name="Lids", quantity=11).is_low_stock()

    def test_delete_removes_links(self, repo, make_product, make_supply):
        product = make_product()
        supply = make_supply()
        repo.update_supply_links(product.id, [ProductSupplyLink(0, supply.id, 1.0)])

        repo.delete_supply(supply)

        assert repo.supplies.get_all() == []
        assert repo.product_supply_links.get_for_product(product.id) == []



class TestDaoQueries:
    """Query methods of the DAOs that no facade operation wraps."""

    def test_products_by_category(self, repo, make_product):
        drinks = repo.add_category("Drinks")
        snacks = repo.add_category("Snacks")
        make_product(name="Water", category_id=drinks.id)
        make_product(name="Cola", category_id=drinks.id)
        make_product(name="Chips", category_id=snacks.id)
        make_product(name="Loose")

        names = [p.name for p in repo.products.get_by_category(drinks.id)]

        assert names == ["Cola", "Water"]
        assert repo.products.get_by_category(999) == []

    def test_low_stock_includes_threshold(self, repo, make_supply):
        make_supply(name="Straws", quantity=10, low_stock_threshold=10)
        make_supply(name="Lids", quantity=10.5, low_stock_threshold=10)
        make_supply(name="Bags", quantity=3, low_stock_threshold=5)

        names = [s.name for s in repo.supplies.get_low_stock()]

        assert names == ["Bags", "Straws"]

    def test_set_supply_quantity(self, repo, make_supply):
        supply = make_supply(quantity=40)
        repo.supplies.set_quantity(supply.id, 2.5)
        assert repo.supplies.get_by_id(supply.id).quantity == pytest.approx(2.5)
        assert [s.id for s in repo.supplies.get_low_stock()] == [supply.id]

    def test_products_for_supply(self, repo, make_product, make_supply):
        cups = make_supply(name="Cups")
        lids = make_supply(name="Lids")
        tea = make_product(name="Tea")
        coffee = make_product(name="Coffee")
        repo.update_supply_links(tea.id, [ProductSupplyLink(0, cups.id, 1.0)])
        repo.update_supply_links(coffee.id, [ProductSupplyLink(0, cups.id, 1.0),
                                             ProductSupplyLink(0, lids.id, 1.0)])

        assert [p.name for p in repo.product_supply_links.products_for_supply(cups.id)] \
            == ["Coffee", "Tea"]
        assert [p.name for p in repo.product_supply_links.products_for_supply(lids.id)] \
            == ["Coffee"]

    def test_purchase_bills_in_half_open_range(self, repo):
        start, end = datetime(2026, 5, 1), datetime(2026, 6, 1)
        for when, amount in ((start, 10.0), (datetime(2026, 5, 15, 9), 5.0),
                             (end, 100.0), (datetime(2026, 4, 30, 23, 59), 1.0)):
            repo.purchase_bills.insert_with_items(
                PurchaseBill(total_amount=amount, date=when), [])

        bills = repo.purchase_bills.get_by_date_range(start, end)

        assert [b.total_amount for b in bills] == [5.0, 10.0]
        assert repo.purchase_bills.total_for_date_range(start, end) == pytest.approx(15.0)

    def test_empty_range_total_is_zero(self, repo):
        start = datetime(2026, 5, 1)
        assert repo.purchase_bills.total_for_date_range(start, start) == 0.0

    def test_today_counts_by_payment(self, repo, make_product):
        product = make_product(price=2.0, qty=20)
        repo.record_sale(product.id, 1)
        repo.record_sale(product.id, 2)
        repo.record_sale(product.id, 3, PaymentMethod.VISA)
        cancelled = repo.record_sale(product.id, 1, PaymentMethod.VISA)
        repo.cancel_sale(cancelled.id)

        sales = repo.sales
        assert sales.today_count() == 3
        assert sales.today_cash_count() == 2
        assert sales.today_visa_count() == 1
        assert sales.today_cash_revenue() == pytest.approx(6.0)
        assert sales.today_visa_revenue() == pytest.approx(6.0)
        assert sales.today_revenue() == pytest.approx(12.0)
        assert sales.today_profit() == pytest.approx(6.0)
