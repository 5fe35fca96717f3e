"""
Data-access objects, one per entity type.

Each DAO wraps the shared ``Database`` and converts between
``sqlite3.Row`` objects and the dataclasses in ``shoptrack.models``.
DAOs hold no business rules; cross-entity logic lives in
``shoptrack.repository``.
"""

import sqlite3
from datetime import datetime
from typing import List, Optional

from shoptrack import dates
from shoptrack.errors import InputError
from shoptrack.logutil import get_logger
from shoptrack.models import (
    CashReconciliation, Category, Expense, MonthlySalesSummary, PaymentMethod,
    PriceRange, Product, ProductSupplyLink, PurchaseBill, PurchaseBillWithItems,
    PurchaseItem, PurchaseItemType, Sale, Settings, Supply,
)

log = get_logger("dao")


def _ms(dt: Optional[datetime]):
    return dates.to_millis(dt) if dt is not None else None


def _dt(ms):
    return dates.from_millis(ms) if ms is not None else None


class BaseDao:
    """Shared plumbing: write helpers that turn constraint failures into
    ``InputError``."""

    def __init__(self, db):
        self.db = db

    def _write(self, sql, params=()):
        try:
            return self.db.execute(sql, params)
        except sqlite3.IntegrityError as e:
            log.warning("Rejected write: %s", e)
            raise InputError(str(e)) from e

    def _insert(self, sql, params=()) -> int:
        return self._write(sql, params).lastrowid


# ═══════════════════════════════════════════════════════════════════════
#  Products & categories
# ═══════════════════════════════════════════════════════════════════════

def _product(row) -> Product:
    return Product(
        id=row["id"],
        name=row["name"],
        cost_price=row["cost_price"],
        selling_price=row["selling_price"],
        wholesale_price=row["wholesale_price"],
        quantity_in_stock=row["quantity_in_stock"],
        has_quantity_based_pricing=bool(row["has_quantity_based_pricing"]),
        barcode=row["barcode"],
        created_at=_dt(row["created_at"]),
        category_id=row["category_id"],
        image_path=row["image_path"],
        color_hex=row["color_hex"],
        track_inventory=bool(row["track_inventory"]),
    )


class ProductDao(BaseDao):
    _COLUMNS = ("name, cost_price, selling_price, wholesale_price, "
                "quantity_in_stock, has_quantity_based_pricing, barcode, "
                "created_at, category_id, image_path, color_hex, track_inventory")

    @staticmethod
    def _values(p: Product):
        return (p.name, p.cost_price, p.selling_price, p.wholesale_price,
                p.quantity_in_stock, int(p.has_quantity_based_pricing),
                p.barcode or None, _ms(p.created_at), p.category_id,
                p.image_path, p.color_hex, int(p.track_inventory))

    def get_all(self) -> List[Product]:
        return [_product(r) for r in
                self.db.query("SELECT * FROM products ORDER BY name ASC")]

    def search(self, query: str) -> List[Product]:
        return [_product(r) for r in self.db.query(
            "SELECT * FROM products WHERE name LIKE ? ORDER BY name ASC",
            (f"%{query}%",))]

    def get_by_id(self, product_id: int) -> Optional[Product]:
        row = self.db.query_one("SELECT * FROM products WHERE id = ?", (product_id,))
        return _product(row) if row else None

    def get_by_barcode(self, barcode: str) -> Optional[Product]:
        row = self.db.query_one(
            "SELECT * FROM products WHERE barcode = ? LIMIT 1", (barcode,))
        return _product(row) if row else None

    def get_by_category(self, category_id: int) -> List[Product]:
        return [_product(r) for r in self.db.query(
            "SELECT * FROM products WHERE category_id = ? ORDER BY name ASC",
            (category_id,))]

    def insert(self, product: Product) -> int:
        return self._insert(
            f"INSERT INTO products ({self._COLUMNS}) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._values(product))

    def update(self, product: Product):
        self._write(
            "UPDATE products SET name = ?, cost_price = ?, selling_price = ?, "
            "wholesale_price = ?, quantity_in_stock = ?, "
            "has_quantity_based_pricing = ?, barcode = ?, created_at = ?, "
            "category_id = ?, image_path = ?, color_hex = ?, "
            "track_inventory = ? WHERE id = ?",
            self._values(product) + (product.id,))

    def delete(self, product: Product):
        self.db.execute("DELETE FROM products WHERE id = ?", (product.id,))

    def update_quantity(self, product_id: int, quantity: int):
        self.db.execute("UPDATE products SET quantity_in_stock = ? WHERE id = ?",
                        (quantity, product_id))


class CategoryDao(BaseDao):

    def get_all(self) -> List[Category]:
        return [Category(id=r["id"], name=r["name"]) for r in
                self.db.query("SELECT * FROM categories ORDER BY name ASC")]

    def get_by_id(self, category_id: int) -> Optional[Category]:
        row = self.db.query_one("SELECT * FROM categories WHERE id = ?", (category_id,))
        return Category(id=row["id"], name=row["name"]) if row else None

    def insert(self, category: Category) -> int:
        return self._insert("INSERT INTO categories (name) VALUES (?)", (category.name,))

    def update(self, category: Category):
        self._write("UPDATE categories SET name = ? WHERE id = ?",
                    (category.name, category.id))

    def delete(self, category: Category):
        with self.db.transaction():
            self.db.execute("UPDATE products SET category_id = NULL WHERE category_id = ?",
                            (category.id,))
            self.db.execute("DELETE FROM categories WHERE id = ?", (category.id,))


# ═══════════════════════════════════════════════════════════════════════
#  Sales
# ═══════════════════════════════════════════════════════════════════════

def _sale(row) -> Sale:
    return Sale(
        id=row["id"],
        product_id=row["product_id"],
        product_name=row["product_name"],
        quantity_sold=row["quantity_sold"],
        unit_price=row["unit_price"],
        total_amount=row["total_amount"],
        cost_price=row["cost_price"],
        profit=row["profit"],
        payment_method=PaymentMethod(row["payment_method"]),
        sale_date=_dt(row["sale_date"]),
        is_wholesale=bool(row["is_wholesale"]),
        is_cancelled=bool(row["is_cancelled"]),
        transaction_id=row["transaction_id"],
    )


class SaleDao(BaseDao):
    """Sales queries.  Everything except ``get_by_id`` ignores cancelled rows."""

    _ACTIVE = "is_cancelled = 0"

    @staticmethod
    def _values(s: Sale):
        return (s.product_id, s.product_name, s.quantity_sold, s.unit_price,
                s.total_amount, s.cost_price, s.profit, s.payment_method.value,
                _ms(s.sale_date), int(s.is_wholesale), int(s.is_cancelled),
                s.transaction_id)

    def get_all(self) -> List[Sale]:
        return [_sale(r) for r in self.db.query(
            f"SELECT * FROM sales WHERE {self._ACTIVE} ORDER BY sale_date DESC")]

    def get_by_id(self, sale_id: int) -> Optional[Sale]:
        row = self.db.query_one("SELECT * FROM sales WHERE id = ?", (sale_id,))
        return _sale(row) if row else None

    def get_by_transaction(self, transaction_id: int) -> List[Sale]:
        return [_sale(r) for r in self.db.query(
            "SELECT * FROM sales WHERE transaction_id = ? ORDER BY id ASC",
            (transaction_id,))]

    def insert(self, sale: Sale) -> int:
        return self._insert(
            "INSERT INTO sales (product_id, product_name, quantity_sold, "
            "unit_price, total_amount, cost_price, profit, payment_method, "
            "sale_date, is_wholesale, is_cancelled, transaction_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            self._values(sale))

    def update(self, sale: Sale):
        self._write(
            "UPDATE sales SET product_id = ?, product_name = ?, quantity_sold = ?, "
            "unit_price = ?, total_amount = ?, cost_price = ?, profit = ?, "
            "payment_method = ?, sale_date = ?, is_wholesale = ?, "
            "is_cancelled = ?, transaction_id = ? WHERE id = ?",
            self._values(sale) + (sale.id,))

    # ── Range queries ─────────────────────────────────────────────────

    def _in_range(self, bounds) -> List[Sale]:
        return [_sale(r) for r in self.db.query(
            f"SELECT * FROM sales WHERE {self._ACTIVE} "
            "AND sale_date >= ? AND sale_date < ? ORDER BY sale_date DESC",
            bounds)]

    def get_by_date(self, date_key: str) -> List[Sale]:
        return self._in_range(dates.day_bounds(date_key))

    def get_by_month(self, month_key: str) -> List[Sale]:
        return self._in_range(dates.month_bounds(month_key))

    def get_today(self) -> List[Sale]:
        return self.get_by_date(dates.today_key())

    def monthly_summary(self, month_key: str) -> List[MonthlySalesSummary]:
        """Per-day totals for a month, newest day first."""
        per_day = {}
        for sale in self.get_by_month(month_key):
            key = dates.date_key(sale.sale_date)
            count, revenue, profit = per_day.get(key, (0, 0.0, 0.0))
            per_day[key] = (count + 1, revenue + sale.total_amount,
                            profit + sale.profit)
        return [MonthlySalesSummary(date=k, sales_count=c, total_revenue=r,
                                    total_profit=p)
                for k, (c, r, p) in sorted(per_day.items(), reverse=True)]

    # ── Aggregates ────────────────────────────────────────────────────

    def _aggregate(self, expr, date_key, payment_method=None):
        start, end = dates.day_bounds(date_key)
        sql = (f"SELECT {expr} FROM sales WHERE {self._ACTIVE} "
               "AND sale_date >= ? AND sale_date < ?")
        params = [start, end]
        if payment_method is not None:
            sql += " AND payment_method = ?"
            params.append(payment_method.value)
        return self.db.scalar(sql, params, default=0)

    def revenue_by_date(self, date_key: str) -> float:
        return float(self._aggregate("SUM(total_amount)", date_key))

    def profit_by_date(self, date_key: str) -> float:
        return float(self._aggregate("SUM(profit)", date_key))

    def count_by_date(self, date_key: str) -> int:
        return int(self._aggregate("COUNT(*)", date_key))

    def cogs_by_date(self, date_key: str) -> float:
        return float(self._aggregate("SUM(cost_price * quantity_sold)", date_key))

    def revenue_by_payment(self, date_key: str, method: PaymentMethod) -> float:
        return float(self._aggregate("SUM(total_amount)", date_key, method))

    def count_by_payment(self, date_key: str, method: PaymentMethod) -> int:
        return int(self._aggregate("COUNT(*)", date_key, method))

    def today_revenue(self) -> float:
        return self.revenue_by_date(dates.today_key())

    def today_profit(self) -> float:
        return self.profit_by_date(dates.today_key())

    def today_count(self) -> int:
        return self.count_by_date(dates.today_key())

    def today_cash_revenue(self) -> float:
        return self.revenue_by_payment(dates.today_key(), PaymentMethod.CASH)

    def today_visa_revenue(self) -> float:
        return self.revenue_by_payment(dates.today_key(), PaymentMethod.VISA)

    def today_cash_count(self) -> int:
        return self.count_by_payment(dates.today_key(), PaymentMethod.CASH)

    def today_visa_count(self) -> int:
        return self.count_by_payment(dates.today_key(), PaymentMethod.VISA)


# ═══════════════════════════════════════════════════════════════════════
#  Favorites & price ranges
# ═══════════════════════════════════════════════════════════════════════

class FavoriteDao(BaseDao):

    def get_favorite_products(self) -> List[Product]:
        return [_product(r) for r in self.db.query(
            "SELECT p.* FROM products p "
            "INNER JOIN favorites f ON p.id = f.product_id "
            "ORDER BY f.display_order ASC")]

    def add(self, product_id: int, display_order: int):
        self._write("INSERT OR REPLACE INTO favorites (product_id, display_order) "
                    "VALUES (?, ?)", (product_id, display_order))

    def remove(self, product_id: int):
        self.db.execute("DELETE FROM favorites WHERE product_id = ?", (product_id,))

    def is_favorite(self, product_id: int) -> bool:
        return self.db.query_one("SELECT 1 FROM favorites WHERE product_id = ?",
                                 (product_id,)) is not None

    def max_display_order(self) -> Optional[int]:
        return self.db.scalar("SELECT MAX(display_order) FROM favorites")

    def ordered_ids(self) -> List[int]:
        return [r["product_id"] for r in self.db.query(
            "SELECT product_id FROM favorites ORDER BY display_order ASC")]

    def update_display_order(self, product_id: int, display_order: int):
        self.db.execute("UPDATE favorites SET display_order = ? WHERE product_id = ?",
                        (display_order, product_id))


def _price_range(row) -> PriceRange:
    return PriceRange(id=row["id"], product_id=row["product_id"],
                      min_quantity=row["min_quantity"],
                      max_quantity=row["max_quantity"], price=row["price"])


class PriceRangeDao(BaseDao):

    def get_for_product(self, product_id: int) -> List[PriceRange]:
        return [_price_range(r) for r in self.db.query(
            "SELECT * FROM price_ranges WHERE product_id = ? ORDER BY min_quantity ASC",
            (product_id,))]

    def insert(self, price_range: PriceRange) -> int:
        return self._insert(
            "INSERT INTO price_ranges (product_id, min_quantity, max_quantity, price) "
            "VALUES (?, ?, ?, ?)",
            (price_range.product_id, price_range.min_quantity,
             price_range.max_quantity, price_range.price))

    def insert_all(self, price_ranges):
        with self.db.transaction():
            for pr in price_ranges:
                self.insert(pr)

    def update(self, price_range: PriceRange):
        self._write(
            "UPDATE price_ranges SET product_id = ?, min_quantity = ?, "
            "max_quantity = ?, price = ? WHERE id = ?",
            (price_range.product_id, price_range.min_quantity,
             price_range.max_quantity, price_range.price, price_range.id))

    def delete(self, price_range: PriceRange):
        self.db.execute("DELETE FROM price_ranges WHERE id = ?", (price_range.id,))

    def delete_for_product(self, product_id: int):
        self.db.execute("DELETE FROM price_ranges WHERE product_id = ?", (product_id,))

    def price_for_quantity(self, product_id: int, quantity: int) -> Optional[float]:
        return self.db.scalar(
            "SELECT price FROM price_ranges WHERE product_id = ? "
            "AND min_quantity <= ? AND max_quantity >= ? "
            "ORDER BY min_quantity ASC LIMIT 1",
            (product_id, quantity, quantity))


# ═══════════════════════════════════════════════════════════════════════
#  Settings, expenses, cash reconciliation
# ═══════════════════════════════════════════════════════════════════════

class SettingsDao(BaseDao):

    def get(self) -> Optional[Settings]:
        row = self.db.query_one("SELECT * FROM settings WHERE id = 1")
        if row is None:
            return None
        return Settings(
            id=row["id"],
            wholesale_mode_enabled=bool(row["wholesale_mode_enabled"]),
            currency_code=row["currency_code"],
            shop_name=row["shop_name"],
            cr_number=row["cr_number"],
        )

    def save(self, settings: Settings):
        self._write(
            "INSERT OR REPLACE INTO settings "
            "(id, wholesale_mode_enabled, currency_code, shop_name, cr_number) "
            "VALUES (?, ?, ?, ?, ?)",
            (settings.id, int(settings.wholesale_mode_enabled),
             settings.currency_code, settings.shop_name, settings.cr_number))


def _expense(row) -> Expense:
    return Expense(id=row["id"], description=row["description"],
                   amount=row["amount"], category=row["category"],
                   date=_dt(row["date"]))


class ExpenseDao(BaseDao):

    def get_all(self) -> List[Expense]:
        return [_expense(r) for r in
                self.db.query("SELECT * FROM expenses ORDER BY date DESC")]

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        row = self.db.query_one("SELECT * FROM expenses WHERE id = ?", (expense_id,))
        return _expense(row) if row else None

    def _in_range(self, bounds) -> List[Expense]:
        return [_expense(r) for r in self.db.query(
            "SELECT * FROM expenses WHERE date >= ? AND date < ? ORDER BY date DESC",
            bounds)]

    def get_by_date(self, date_key: str) -> List[Expense]:
        return self._in_range(dates.day_bounds(date_key))

    def get_by_month(self, month_key: str) -> List[Expense]:
        return self._in_range(dates.month_bounds(month_key))

    def total_by_date(self, date_key: str) -> float:
        start, end = dates.day_bounds(date_key)
        return float(self.db.scalar(
            "SELECT SUM(amount) FROM expenses WHERE date >= ? AND date < ?",
            (start, end), default=0.0))

    def insert(self, expense: Expense) -> int:
        return self._insert(
            "INSERT INTO expenses (description, amount, category, date) "
            "VALUES (?, ?, ?, ?)",
            (expense.description, expense.amount, expense.category,
             _ms(expense.date)))

    def update(self, expense: Expense):
        self._write(
            "UPDATE expenses SET description = ?, amount = ?, category = ?, "
            "date = ? WHERE id = ?",
            (expense.description, expense.amount, expense.category,
             _ms(expense.date), expense.id))

    def delete(self, expense: Expense):
        self.db.execute("DELETE FROM expenses WHERE id = ?", (expense.id,))


def _reconciliation(row) -> CashReconciliation:
    return CashReconciliation(
        date=row["date"], opening_cash=row["opening_cash"],
        actual_cash_counted=row["actual_cash_counted"],
        change_for_tomorrow=row["change_for_tomorrow"], notes=row["notes"])


class CashReconciliationDao(BaseDao):

    def save(self, rec: CashReconciliation):
        self._write(
            "INSERT OR REPLACE INTO cash_reconciliation "
            "(date, opening_cash, actual_cash_counted, change_for_tomorrow, notes) "
            "VALUES (?, ?, ?, ?, ?)",
            (rec.date, rec.opening_cash, rec.actual_cash_counted,
             rec.change_for_tomorrow, rec.notes))

    def get_by_date(self, date_key: str) -> Optional[CashReconciliation]:
        row = self.db.query_one("SELECT * FROM cash_reconciliation WHERE date = ?",
                                (date_key,))
        return _reconciliation(row) if row else None

    def get_previous(self, date_key: str) -> Optional[CashReconciliation]:
        """Latest reconciliation strictly before ``date_key``."""
        row = self.db.query_one(
            "SELECT * FROM cash_reconciliation WHERE date < ? "
            "ORDER BY date DESC LIMIT 1", (date_key,))
        return _reconciliation(row) if row else None

    def get_all(self) -> List[CashReconciliation]:
        return [_reconciliation(r) for r in self.db.query(
            "SELECT * FROM cash_reconciliation ORDER BY date DESC")]

    def delete(self, date_key: str):
        self.db.execute("DELETE FROM cash_reconciliation WHERE date = ?", (date_key,))


# ═══════════════════════════════════════════════════════════════════════
#  Supplies
# ═══════════════════════════════════════════════════════════════════════

def _supply(row) -> Supply:
    return Supply(id=row["id"], name=row["name"], quantity=row["quantity"],
                  unit=row["unit"], cost_per_unit=row["cost_per_unit"],
                  low_stock_threshold=row["low_stock_threshold"],
                  created_at=_dt(row["created_at"]))


class SupplyDao(BaseDao):

    def get_all(self) -> List[Supply]:
        return [_supply(r) for r in
                self.db.query("SELECT * FROM supplies ORDER BY name ASC")]

    def get_by_id(self, supply_id: int) -> Optional[Supply]:
        row = self.db.query_one("SELECT * FROM supplies WHERE id = ?", (supply_id,))
        return _supply(row) if row else None

    def get_low_stock(self) -> List[Supply]:
        return [_supply(r) for r in self.db.query(
            "SELECT * FROM supplies WHERE quantity <= low_stock_threshold "
            "ORDER BY name ASC")]

    def insert(self, supply: Supply) -> int:
        return self._insert(
            "INSERT INTO supplies (name, quantity, unit, cost_per_unit, "
            "low_stock_threshold, created_at) VALUES (?, ?, ?, ?, ?, ?)",
            (supply.name, supply.quantity, supply.unit, supply.cost_per_unit,
             supply.low_stock_threshold, _ms(supply.created_at)))

    def update(self, supply: Supply):
        self._write(
            "UPDATE supplies SET name = ?, quantity = ?, unit = ?, "
            "cost_per_unit = ?, low_stock_threshold = ?, created_at = ? "
            "WHERE id = ?",
            (supply.name, supply.quantity, supply.unit, supply.cost_per_unit,
             supply.low_stock_threshold, _ms(supply.created_at), supply.id))

    def delete(self, supply: Supply):
        self.db.execute("DELETE FROM supplies WHERE id = ?", (supply.id,))

    def increment(self, supply_id: int, amount: float):
        self.db.execute("UPDATE supplies SET quantity = quantity + ? WHERE id = ?",
                        (amount, supply_id))

    def decrement(self, supply_id: int, amount: float):
        self.db.execute("UPDATE supplies SET quantity = quantity - ? WHERE id = ?",
                        (amount, supply_id))

    def set_quantity(self, supply_id: int, quantity: float):
        self.db.execute("UPDATE supplies SET quantity = ? WHERE id = ?",
                        (quantity, supply_id))


def _link(row) -> ProductSupplyLink:
    return ProductSupplyLink(product_id=row["product_id"],
                             supply_id=row["supply_id"],
                             quantity_consumed=row["quantity_consumed"])


class ProductSupplyLinkDao(BaseDao):

    def get_for_product(self, product_id: int) -> List[ProductSupplyLink]:
        return [_link(r) for r in self.db.query(
            "SELECT * FROM product_supply_links WHERE product_id = ?", (product_id,))]

    def get_for_supply(self, supply_id: int) -> List[ProductSupplyLink]:
        return [_link(r) for r in self.db.query(
            "SELECT * FROM product_supply_links WHERE supply_id = ?", (supply_id,))]

    def supplies_for_product(self, product_id: int) -> List[Supply]:
        return [_supply(r) for r in self.db.query(
            "SELECT s.* FROM supplies s "
            "INNER JOIN product_supply_links l ON s.id = l.supply_id "
            "WHERE l.product_id = ? ORDER BY s.name ASC", (product_id,))]

    def products_for_supply(self, supply_id: int) -> List[Product]:
        return [_product(r) for r in self.db.query(
            "SELECT p.* FROM products p "
            "INNER JOIN product_supply_links l ON p.id = l.product_id "
            "WHERE l.supply_id = ? ORDER BY p.name ASC", (supply_id,))]

    def insert(self, link: ProductSupplyLink):
        self._write(
            "INSERT OR REPLACE INTO product_supply_links "
            "(product_id, supply_id, quantity_consumed) VALUES (?, ?, ?)",
            (link.product_id, link.supply_id, link.quantity_consumed))

    def delete(self, link: ProductSupplyLink):
        self.db.execute(
            "DELETE FROM product_supply_links WHERE product_id = ? AND supply_id = ?",
            (link.product_id, link.supply_id))

    def delete_for_product(self, product_id: int):
        self.db.execute("DELETE FROM product_supply_links WHERE product_id = ?",
                        (product_id,))

    def delete_for_supply(self, supply_id: int):
        self.db.execute("DELETE FROM product_supply_links WHERE supply_id = ?",
                        (supply_id,))

    def replace_for_product(self, product_id: int, links):
        with self.db.transaction():
            self.delete_for_product(product_id)
            for link in links:
                link.product_id = product_id
                self.insert(link)


# ═══════════════════════════════════════════════════════════════════════
#  Purchases
# ═══════════════════════════════════════════════════════════════════════

def _bill(row) -> PurchaseBill:
    return PurchaseBill(id=row["id"], date=_dt(row["date"]),
                        supplier_name=row["supplier_name"],
                        total_amount=row["total_amount"], notes=row["notes"])


def _item(row) -> PurchaseItem:
    return PurchaseItem(id=row["id"], bill_id=row["bill_id"],
                        item_type=PurchaseItemType(row["item_type"]),
                        item_id=row["item_id"], item_name=row["item_name"],
                        quantity=row["quantity"], unit_cost=row["unit_cost"],
                        total_cost=row["total_cost"])


class PurchaseBillDao(BaseDao):

    def get_all(self) -> List[PurchaseBill]:
        return [_bill(r) for r in
                self.db.query("SELECT * FROM purchase_bills ORDER BY date DESC")]

    def items_for_bill(self, bill_id: int) -> List[PurchaseItem]:
        return [_item(r) for r in self.db.query(
            "SELECT * FROM purchase_items WHERE bill_id = ? ORDER BY id ASC",
            (bill_id,))]

    def get_all_with_items(self) -> List[PurchaseBillWithItems]:
        return [PurchaseBillWithItems(bill, self.items_for_bill(bill.id))
                for bill in self.get_all()]

    def get_with_items(self, bill_id: int) -> Optional[PurchaseBillWithItems]:
        row = self.db.query_one("SELECT * FROM purchase_bills WHERE id = ?", (bill_id,))
        if row is None:
            return None
        return PurchaseBillWithItems(_bill(row), self.items_for_bill(bill_id))

    def get_by_date_range(self, start: datetime, end: datetime) -> List[PurchaseBill]:
        """Bills dated in ``[start, end)``."""
        return [_bill(r) for r in self.db.query(
            "SELECT * FROM purchase_bills WHERE date >= ? AND date < ? "
            "ORDER BY date DESC", (_ms(start), _ms(end)))]

    def total_for_date_range(self, start: datetime, end: datetime) -> float:
        return float(self.db.scalar(
            "SELECT SUM(total_amount) FROM purchase_bills WHERE date >= ? AND date < ?",
            (_ms(start), _ms(end)), default=0.0))

    def insert_with_items(self, bill: PurchaseBill, items) -> int:
        with self.db.transaction():
            bill_id = self._insert(
                "INSERT INTO purchase_bills (date, supplier_name, total_amount, notes) "
                "VALUES (?, ?, ?, ?)",
                (_ms(bill.date), bill.supplier_name, bill.total_amount, bill.notes))
            for item in items:
                item.bill_id = bill_id
                item.id = self._insert(
                    "INSERT INTO purchase_items (bill_id, item_type, item_id, "
                    "item_name, quantity, unit_cost, total_cost) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (bill_id, item.item_type.value, item.item_id, item.item_name,
                     item.quantity, item.unit_cost, item.total_cost))
        bill.id = bill_id
        return bill_id

    def delete_with_items(self, bill: PurchaseBill):
        with self.db.transaction():
            self.db.execute("DELETE FROM purchase_items WHERE bill_id = ?", (bill.id,))
            self.db.execute("DELETE FROM purchase_bills WHERE id = ?", (bill.id,))
