"""
Persistence facade for ShopTrack Lite.

``ShopTrackRepository`` aggregates one DAO per entity type and carries the
business operations that touch more than one table: recording and
cancelling sales, recording purchases, supply deduction, favourites
ordering and settings defaults.

The app constructs exactly one repository and hands the same instance to
every screen.  Writes that change what a screen shows are announced on
the event bus as ``EventType.DATA_CHANGED`` with the entity name as data.
"""

from datetime import datetime
from typing import Dict, List, Optional

from shoptrack import dates
from shoptrack.dao import (
    CashReconciliationDao, CategoryDao, ExpenseDao, FavoriteDao, PriceRangeDao,
    ProductDao, ProductSupplyLinkDao, PurchaseBillDao, SaleDao, SettingsDao,
    SupplyDao,
)
from shoptrack.errors import InputError, InsufficientStockError, NotFoundError
from shoptrack.event_bus import EventType
from shoptrack.logutil import get_logger
from shoptrack.models import (
    GENERAL_EXPENSE, INVENTORY_PURCHASE_EXPENSE, SUPPLIES_EXPENSE,
    CashReconciliation, Category, Expense, PaymentMethod, Product,
    PurchaseBill, PurchaseItem, PurchaseItemType, Sale, Settings, Supply,
)

log = get_logger("repository")


class ShopTrackRepository:
    """One handle per entity type plus the cross-entity operations."""

    ENTITIES = (
        "products", "categories", "sales", "favorites", "price_ranges",
        "settings", "expenses", "cash_reconciliation", "supplies",
        "product_supply_links", "purchase_bills",
    )

    def __init__(self, db, products, categories, sales, favorites,
                 price_ranges, settings, expenses, cash_reconciliation,
                 supplies, product_supply_links, purchase_bills,
                 event_bus=None):
        self.db = db
        self.products: ProductDao = products
        self.categories: CategoryDao = categories
        self.sales: SaleDao = sales
        self.favorites: FavoriteDao = favorites
        self.price_ranges: PriceRangeDao = price_ranges
        self.settings: SettingsDao = settings
        self.expenses: ExpenseDao = expenses
        self.cash_reconciliation: CashReconciliationDao = cash_reconciliation
        self.supplies: SupplyDao = supplies
        self.product_supply_links: ProductSupplyLinkDao = product_supply_links
        self.purchase_bills: PurchaseBillDao = purchase_bills
        self.event_bus = event_bus

    @classmethod
    def from_database(cls, db, event_bus=None):
        repo = cls(
            db,
            products=ProductDao(db),
            categories=CategoryDao(db),
            sales=SaleDao(db),
            favorites=FavoriteDao(db),
            price_ranges=PriceRangeDao(db),
            settings=SettingsDao(db),
            expenses=ExpenseDao(db),
            cash_reconciliation=CashReconciliationDao(db),
            supplies=SupplyDao(db),
            product_supply_links=ProductSupplyLinkDao(db),
            purchase_bills=PurchaseBillDao(db),
            event_bus=event_bus,
        )
        log.info("Repository ready (%d DAOs)", len(repo.daos))
        return repo

    @property
    def daos(self) -> Dict[str, object]:
        return {name: getattr(self, name) for name in self.ENTITIES}

    def _changed(self, *entities):
        """Announce changed entities once the enclosing transaction commits."""
        if self.event_bus is None:
            return
        self.db.after_commit(lambda: self._emit_changed(entities))

    def _emit_changed(self, entities):
        for entity in entities:
            self.event_bus.emit(EventType.DATA_CHANGED, entity)

    # ── Products ──────────────────────────────────────────────────────

    def get_product(self, product_id: int) -> Product:
        product = self.products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    def search_products(self, query: str) -> List[Product]:
        if not query or not query.strip():
            return self.products.get_all()
        return self.products.search(query.strip())

    def save_product(self, product: Product, price_ranges=None) -> int:
        """Insert or update ``product`` and replace its tiered prices.

        Price ranges are only kept while quantity-based pricing is on.
        """
        if not product.name or not product.name.strip():
            raise InputError("Product name is required")
        if product.cost_price < 0 or product.selling_price < 0:
            raise InputError("Prices cannot be negative")
        if product.wholesale_price is not None and product.wholesale_price < 0:
            raise InputError("Wholesale price cannot be negative")
        if product.track_inventory and product.quantity_in_stock < 0:
            raise InputError("Quantity cannot be negative")
        ranges = list(price_ranges or [])
        for pr in ranges:
            if pr.min_quantity < 1 or pr.max_quantity < pr.min_quantity or pr.price < 0:
                raise InputError(
                    f"Invalid price range {pr.min_quantity}-{pr.max_quantity}")

        product.name = product.name.strip()
        with self.db.transaction():
            if product.id:
                self.products.update(product)
            else:
                product.id = self.products.insert(product)
            self.price_ranges.delete_for_product(product.id)
            if product.has_quantity_based_pricing:
                for pr in ranges:
                    pr.product_id = product.id
                self.price_ranges.insert_all(ranges)
        log.info("Saved product %d (%s)", product.id, product.name)
        self._changed("products", "price_ranges")
        return product.id

    def delete_product(self, product: Product):
        with self.db.transaction():
            self.price_ranges.delete_for_product(product.id)
            self.product_supply_links.delete_for_product(product.id)
            self.favorites.remove(product.id)
            self.products.delete(product)
        log.info("Deleted product %d (%s)", product.id, product.name)
        self._changed("products", "favorites")

    def restock_product(self, product_id: int, quantity: int) -> Product:
        if quantity <= 0:
            raise InputError("Restock quantity must be positive")
        with self.db.transaction():
            product = self.get_product(product_id)
            product.quantity_in_stock += quantity
            self.products.update_quantity(product_id, product.quantity_in_stock)
        log.info("Restocked %s by %d -> %d", product.name, quantity,
                 product.quantity_in_stock)
        self._changed("products")
        return product

    def price_for(self, product: Product, quantity: int, is_wholesale=False) -> float:
        """Unit price for ``quantity`` units before any discount."""
        if is_wholesale and product.wholesale_price is not None:
            return product.wholesale_price
        if product.has_quantity_based_pricing:
            tiered = self.price_ranges.price_for_quantity(product.id, quantity)
            if tiered is not None:
                return tiered
        return product.selling_price

    def add_category(self, name: str) -> Category:
        name = (name or "").strip()
        if not name:
            raise InputError("Category name is required")
        category = Category(name=name)
        category.id = self.categories.insert(category)
        self._changed("categories")
        return category

    def delete_category(self, category: Category):
        self.categories.delete(category)
        log.info("Deleted category %d (%s)", category.id, category.name)
        self._changed("categories", "products")

    # ── Sales ─────────────────────────────────────────────────────────

    def record_sale(self, product_id: int, quantity: int,
                    payment_method: PaymentMethod = PaymentMethod.CASH,
                    is_wholesale=False, discount=0.0,
                    transaction_id: Optional[int] = None) -> Sale:
        if quantity <= 0:
            raise InputError("Quantity must be positive")

        with self.db.transaction():
            product = self.get_product(product_id)
            if product.track_inventory and product.quantity_in_stock < quantity:
                raise InsufficientStockError(product.name, quantity,
                                             product.quantity_in_stock)

            gross = quantity * self.price_for(product, quantity, is_wholesale)
            total = max(0.0, gross - discount)
            sale = Sale(
                product_id=product_id,
                product_name=product.name,
                quantity_sold=quantity,
                unit_price=total / quantity,
                total_amount=total,
                cost_price=product.cost_price,
                profit=total - quantity * product.cost_price,
                payment_method=payment_method,
                is_wholesale=is_wholesale,
                transaction_id=transaction_id,
            )
            sale.id = self.sales.insert(sale)

            if product.track_inventory:
                self.products.update_quantity(
                    product_id, product.quantity_in_stock - quantity)
                self.deduct_supplies_for_sale(product_id, quantity)

        log.info("Sale %d: %d x %s = %.2f (%s%s)", sale.id, quantity,
                 product.name, total, payment_method.value,
                 ", wholesale" if is_wholesale else "")
        self._changed("sales", "products")
        return sale

    def deduct_supplies_for_sale(self, product_id: int, quantity: int):
        for link in self.product_supply_links.get_for_product(product_id):
            self.supplies.decrement(link.supply_id, link.quantity_consumed * quantity)

    def cancel_sale(self, sale_id: int) -> bool:
        """Cancel a sale and put its units back into stock.

        Returns False when the sale was already cancelled.
        """
        with self.db.transaction():
            sale = self.sales.get_by_id(sale_id)
            if sale is None:
                raise NotFoundError("Sale", sale_id)
            if sale.is_cancelled:
                return False
            product = self.products.get_by_id(sale.product_id)
            if product is not None and product.track_inventory:
                self.products.update_quantity(
                    product.id, product.quantity_in_stock + sale.quantity_sold)
                for link in self.product_supply_links.get_for_product(product.id):
                    self.supplies.increment(
                        link.supply_id, link.quantity_consumed * sale.quantity_sold)
            sale.is_cancelled = True
            self.sales.update(sale)
        log.info("Cancelled sale %d (%s x %d)", sale.id, sale.product_name,
                 sale.quantity_sold)
        self._changed("sales", "products")
        return True

    def cancel_bill(self, sales: List[Sale]) -> bool:
        """Cancel every sale of a bill; True only if all of them were cancelled."""
        results = [self.cancel_sale(s.id) for s in sales]
        return all(results)

    def cogs_by_date(self, date_key: str) -> float:
        return self.sales.cogs_by_date(date_key)

    def today_cogs(self) -> float:
        return self.cogs_by_date(dates.today_key())

    # ── Favourites ────────────────────────────────────────────────────

    def add_to_favorites(self, product_id: int):
        with self.db.transaction():
            max_order = self.favorites.max_display_order()
            self.favorites.add(product_id, (max_order or 0) + 1)
        self._changed("favorites")

    def remove_from_favorites(self, product_id: int):
        self.favorites.remove(product_id)
        self._changed("favorites")

    def toggle_favorite(self, product_id: int) -> bool:
        """Flip favourite status; returns the new status."""
        if self.favorites.is_favorite(product_id):
            self.remove_from_favorites(product_id)
            return False
        self.add_to_favorites(product_id)
        return True

    def update_favorite_order(self, product_ids: List[int]):
        with self.db.transaction():
            for index, product_id in enumerate(product_ids):
                self.favorites.update_display_order(product_id, index)
        self._changed("favorites")

    # ── Settings ──────────────────────────────────────────────────────

    def get_settings(self) -> Settings:
        return self.settings.get() or Settings()

    def update_settings(self, settings: Settings):
        settings.id = 1
        self.settings.save(settings)
        log.info("Settings saved (currency=%s, wholesale=%s)",
                 settings.currency_code, settings.wholesale_mode_enabled)
        if self.event_bus is not None:
            self.event_bus.emit(EventType.SETTINGS_CHANGED, settings)

    def currency_code(self) -> str:
        return self.get_settings().currency_code

    # ── Expenses ──────────────────────────────────────────────────────

    @staticmethod
    def _validate_expense(expense: Expense):
        if not expense.description or not expense.description.strip():
            raise InputError("Description is required")
        if expense.amount is None or expense.amount <= 0:
            raise InputError("Amount must be greater than zero")

    def add_expense(self, description: str, amount: float,
                    category: str = GENERAL_EXPENSE,
                    date: Optional[datetime] = None) -> Expense:
        expense = Expense(description=(description or "").strip(), amount=amount,
                          category=category or GENERAL_EXPENSE)
        if date is not None:
            expense.date = date
        self._validate_expense(expense)
        expense.id = self.expenses.insert(expense)
        log.info("Expense %d: %.2f (%s)", expense.id, amount, expense.category)
        self._changed("expenses")
        return expense

    def update_expense(self, expense: Expense):
        self._validate_expense(expense)
        expense.description = expense.description.strip()
        self.expenses.update(expense)
        self._changed("expenses")

    def delete_expense(self, expense: Expense):
        self.expenses.delete(expense)
        self._changed("expenses")

    # ── Cash reconciliation ───────────────────────────────────────────

    def save_cash_reconciliation(self, rec: CashReconciliation):
        dates.parse_date_key(rec.date)
        self.cash_reconciliation.save(rec)
        log.info("Cash reconciliation saved for %s (counted %.2f)",
                 rec.date, rec.actual_cash_counted)
        self._changed("cash_reconciliation")

    # ── Supplies ──────────────────────────────────────────────────────

    def save_supply(self, supply: Supply) -> int:
        if not supply.name or not supply.name.strip():
            raise InputError("Supply name is required")
        if not supply.unit or not supply.unit.strip():
            raise InputError("Unit is required")
        if supply.quantity < 0 or supply.cost_per_unit < 0:
            raise InputError("Quantity and cost cannot be negative")
        supply.name = supply.name.strip()
        if supply.id:
            self.supplies.update(supply)
        else:
            supply.id = self.supplies.insert(supply)
        self._changed("supplies")
        return supply.id

    def adjust_supply(self, supply_id: int, delta: float):
        if self.supplies.get_by_id(supply_id) is None:
            raise NotFoundError("Supply", supply_id)
        if delta >= 0:
            self.supplies.increment(supply_id, delta)
        else:
            self.supplies.decrement(supply_id, -delta)
        self._changed("supplies")

    def delete_supply(self, supply: Supply):
        with self.db.transaction():
            self.product_supply_links.delete_for_supply(supply.id)
            self.supplies.delete(supply)
        log.info("Deleted supply %d (%s)", supply.id, supply.name)
        self._changed("supplies", "product_supply_links")

    def update_supply_links(self, product_id: int, links):
        self.product_supply_links.replace_for_product(product_id, links)
        self._changed("product_supply_links")

    # ── Purchases ─────────────────────────────────────────────────────

    def _resolve_purchase_item(self, item: PurchaseItem):
        """Link a purchase line to a product or supply with the same name,
        creating one with zero stock when none exists."""
        name = item.item_name.strip()
        if item.item_type is PurchaseItemType.PRODUCT:
            match = next((p for p in self.products.search(name)
                          if p.name.lower() == name.lower()), None)
            if match is None:
                match = Product(name=name, cost_price=item.unit_cost,
                                selling_price=item.unit_cost, quantity_in_stock=0)
                match.id = self.products.insert(match)
                log.info("Created product %d (%s) from purchase", match.id, name)
        else:
            match = next((s for s in self.supplies.get_all()
                          if s.name.lower() == name.lower()), None)
            if match is None:
                match = Supply(name=name, quantity=0, unit="unit",
                               cost_per_unit=item.unit_cost)
                match.id = self.supplies.insert(match)
                log.info("Created supply %d (%s) from purchase", match.id, name)
        item.item_id = match.id

    def record_purchase(self, bill: PurchaseBill, items: List[PurchaseItem],
                        record_as_expense=True, create_missing=False) -> int:
        """Store a purchase bill, add its lines to stock and book the expense.

        With ``create_missing`` set, lines without an ``item_id`` are matched
        by name, and unknown names become new products or supplies.
        """
        if not items:
            raise InputError("A purchase needs at least one item")
        for item in items:
            if not item.item_name or not item.item_name.strip():
                raise InputError("Every purchase line needs a name")
            if item.quantity <= 0:
                raise InputError(f"Quantity for {item.item_name} must be positive")
            if item.unit_cost < 0:
                raise InputError(f"Cost for {item.item_name} cannot be negative")

        with self.db.transaction():
            if create_missing:
                for item in items:
                    if item.item_id is None:
                        self._resolve_purchase_item(item)
            bill_id = self.purchase_bills.insert_with_items(bill, items)
            for item in items:
                if item.item_id is None:
                    continue
                if item.item_type is PurchaseItemType.PRODUCT:
                    product = self.products.get_by_id(item.item_id)
                    if product is not None:
                        self.products.update_quantity(
                            product.id, product.quantity_in_stock + int(item.quantity))
                else:
                    self.supplies.increment(item.item_id, item.quantity)

            if record_as_expense and bill.total_amount > 0:
                has_supplies = any(i.item_type is PurchaseItemType.SUPPLY for i in items)
                expense = Expense(
                    description=(f"Purchase from {bill.supplier_name}"
                                 if bill.supplier_name else INVENTORY_PURCHASE_EXPENSE),
                    amount=bill.total_amount,
                    category=SUPPLIES_EXPENSE if has_supplies else INVENTORY_PURCHASE_EXPENSE,
                    date=bill.date,
                )
                self.expenses.insert(expense)

        log.info("Purchase bill %d: %d item(s), total %.2f", bill_id, len(items),
                 bill.total_amount)
        self._changed("purchase_bills", "products", "supplies", "expenses")
        return bill_id

    def delete_purchase_bill(self, bill: PurchaseBill):
        self.purchase_bills.delete_with_items(bill)
        self._changed("purchase_bills")
