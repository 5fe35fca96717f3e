"""
Inventory screen: products, supplies and purchase bills in three tabs.
"""

from kivy.properties import StringProperty

from app.theme import get_color
from app.widgets import (
    ShopScreen, confirm_popup, form_popup, make_row, parse_float, parse_int,
    text_popup,
)
from shoptrack.currency import format_currency
from shoptrack.errors import InputError
from shoptrack.models import (
    Product, ProductSupplyLink, PurchaseBill, PurchaseItem, PurchaseItemType,
    Supply, format_price_ranges, parse_price_ranges,
)

ALL_CATEGORIES = "All"


def _required_float(values, key, label, default=None):
    value = parse_float(values.get(key), default)
    if value is None:
        raise InputError(f"{label} must be a number")
    return value


def _required_int(values, key, label, default=None):
    value = parse_int(values.get(key), default)
    if value is None:
        raise InputError(f"{label} must be a whole number")
    return value


class InventoryScreen(ShopScreen):
    """Stock management.

    Purchase lines are drafted in memory and only written when the bill is
    recorded; names that match no product or supply create one.
    """

    watches = ("products", "categories", "favorites", "price_ranges",
               "supplies", "product_supply_links", "purchase_bills")

    category = StringProperty(ALL_CATEGORIES)

    def __init__(self, repository, **kwargs):
        self._query = ""
        self._tab = "Products"
        self.draft = []
        super().__init__(repository, **kwargs)

    # ── Route state ──

    def save_state(self):
        return {"tab": self._tab, "query": self._query, "category": self.category}

    def restore_state(self, state):
        state = state or {}
        self._tab = state.get("tab", "Products")
        self._query = state.get("query", "")
        self.category = state.get("category", ALL_CATEGORIES)
        if "product_search" in self.ids:
            self.ids.product_search.text = self._query
            tabs = self.ids.tabs
            for item in tabs.tab_list:
                if item.text == self._tab:
                    tabs.switch_to(item)
        self._stale = True

    def on_tab_changed(self, text):
        self._tab = text

    # ── Loading ──

    def refresh(self):
        self._load_categories()
        self._load_products()
        self._load_supplies()
        self._load_purchases()
        self._render_draft()

    def _load_categories(self):
        spinner = self.ids.get("category_spinner")
        if spinner is None:
            return
        names = [c.name for c in self.repository.categories.get_all()]
        spinner.values = [ALL_CATEGORIES] + names
        if self.category not in spinner.values:
            self.category = ALL_CATEGORIES
        spinner.text = self.category

    def _filtered_products(self):
        products = self.repository.search_products(self._query)
        if self.category == ALL_CATEGORIES:
            return products
        category = self._category_by_name(self.category)
        if category is None:
            return products
        return [p for p in products if p.category_id == category.id]

    def _load_products(self):
        plist = self.ids.get("product_list")
        if plist is None:
            return
        plist.clear_widgets()
        code = self.currency_code
        favorites = set(self.repository.favorites.ordered_ids())
        for product in self._filtered_products():
            if product.track_inventory:
                detail = f"Stock: {product.quantity_in_stock}"
            else:
                detail = "Not tracked"
            detail += f"  |  Cost {format_currency(product.cost_price, code)}"
            if product.id in favorites:
                detail += "  |  Favorite"
            make_row(plist, product.name, detail,
                     format_currency(product.selling_price, code),
                     action=("Restock", lambda p=product: self.restock_product(p)),
                     secondary=("Unfav" if product.id in favorites else "Fav",
                                lambda p=product: self.toggle_favorite(p)),
                     on_select=lambda p=product: self.show_product(p),
                     highlight=product.is_out_of_stock(),
                     highlight_color=get_color("status_out"))

    def _load_supplies(self):
        slist = self.ids.get("supply_list")
        if slist is None:
            return
        slist.clear_widgets()
        code = self.currency_code
        for supply in self.repository.supplies.get_all():
            make_row(slist, supply.name,
                     f"{supply.quantity:g} {supply.unit}  |  "
                     f"{format_currency(supply.cost_per_unit, code)}/{supply.unit}",
                     "Low" if supply.is_low_stock() else "",
                     action=("Adjust", lambda s=supply: self.adjust_supply(s)),
                     secondary=("Delete", lambda s=supply: self.delete_supply(s)),
                     on_select=lambda s=supply: self.edit_supply(s),
                     highlight=supply.is_low_stock(),
                     highlight_color=get_color("status_low_stock"))

    def _load_purchases(self):
        blist = self.ids.get("purchase_list")
        if blist is None:
            return
        blist.clear_widgets()
        code = self.currency_code
        for entry in self.repository.purchase_bills.get_all_with_items():
            bill = entry.bill
            names = ", ".join(i.item_name for i in entry.items)
            make_row(blist, bill.supplier_name or "No supplier",
                     f"{bill.date:%Y-%m-%d}  |  {names}",
                     format_currency(bill.total_amount, code),
                     secondary=("Delete", lambda b=bill: self.delete_purchase(b)))

    def _render_draft(self):
        dlist = self.ids.get("draft_list")
        if dlist is None:
            return
        dlist.clear_widgets()
        code = self.currency_code
        for index, item in enumerate(self.draft):
            kind = "Supply" if item.item_type is PurchaseItemType.SUPPLY else "Product"
            make_row(dlist, item.item_name,
                     f"{kind}  |  {item.quantity:g} x {format_currency(item.unit_cost, code)}",
                     format_currency(item.total_cost, code),
                     secondary=("Remove", lambda i=index: self.remove_draft_line(i)))
        self.ids.draft_total.text = format_currency(self._draft_total(), code)
        self.ids.record_purchase_btn.disabled = not self.draft

    # ── Products ──

    def on_search_changed(self, text):
        self._query = text.strip()
        self._load_products()

    def on_category_selected(self, text):
        self.category = text
        self._load_products()

    def _category_by_name(self, name):
        name = (name or "").strip().lower()
        return next((c for c in self.repository.categories.get_all()
                     if c.name.lower() == name), None)

    def add_product(self):
        self._product_form(None)

    def edit_product(self, product):
        self._product_form(product)

    def _product_form(self, product):
        editing = product is not None
        ranges = self.repository.price_ranges.get_for_product(product.id) if editing else []
        links = self.repository.product_supply_links.get_for_product(product.id) if editing else []
        category = (self.repository.categories.get_by_id(product.category_id)
                    if editing and product.category_id else None)
        supply_names = {s.id: s.name for s in self.repository.supplies.get_all()}
        fields = [
            ("name", "Name", product.name if editing else "", None),
            ("cost", "Cost price", product.cost_price if editing else "", "float"),
            ("selling", "Selling price", product.selling_price if editing else "", "float"),
            ("wholesale", "Wholesale price",
             product.wholesale_price if editing and product.wholesale_price is not None else "",
             "float"),
            ("quantity", "Quantity", product.quantity_in_stock if editing else 0, "int"),
            ("barcode", "Barcode", (product.barcode or "") if editing else "", None),
            ("category", "Category", category.name if category else "", None),
            ("track", "Track stock", product.track_inventory if editing else True, "bool"),
            ("tiered", "Tiered pricing",
             product.has_quantity_based_pricing if editing else False, "bool"),
            ("ranges", "Tiers (1-9:2.5)", format_price_ranges(ranges), None),
            ("supplies", "Supplies (name:qty)",
             ", ".join(f"{supply_names.get(l.supply_id, l.supply_id)}:{l.quantity_consumed:g}"
                       for l in links), None),
        ]

        def _submit(values):
            self._save_product(product, values)

        form_popup("Edit Product" if editing else "Add Product", fields, _submit)

    def show_product(self, product):
        code = self.currency_code
        lines = [
            f"Selling price: {format_currency(product.selling_price, code)}",
            f"Cost price: {format_currency(product.cost_price, code)}",
        ]
        if product.wholesale_price is not None:
            lines.append(f"Wholesale: {format_currency(product.wholesale_price, code)}")
        if product.track_inventory:
            lines.append(f"In stock: {product.quantity_in_stock}")
        if product.barcode:
            lines.append(f"Barcode: {product.barcode}")
        for pr in self.repository.price_ranges.get_for_product(product.id):
            lines.append(f"{pr.min_quantity}-{pr.max_quantity} units: "
                         f"{format_currency(pr.price, code)}")
        for supply in self.repository.product_supply_links.supplies_for_product(product.id):
            lines.append(f"Uses {supply.name}")
        text_popup(product.name, "\n".join(lines), actions=[
            ("Edit", lambda: self.edit_product(product)),
            ("Delete", lambda: self.delete_product(product)),
        ])

    def _save_product(self, product, values):
        category_name = values["category"].strip()
        category = None
        if category_name:
            category = self._category_by_name(category_name)
            if category is None:
                raise InputError(f"Unknown category {category_name!r}")

        target = product or Product(name="", cost_price=0.0, selling_price=0.0,
                                    quantity_in_stock=0)
        target.name = values["name"]
        target.cost_price = _required_float(values, "cost", "Cost price", 0.0)
        target.selling_price = _required_float(values, "selling", "Selling price")
        target.wholesale_price = parse_float(values["wholesale"])
        target.quantity_in_stock = _required_int(values, "quantity", "Quantity", 0)
        target.barcode = values["barcode"].strip() or None
        target.category_id = category.id if category else None
        target.track_inventory = values["track"]
        target.has_quantity_based_pricing = values["tiered"]
        ranges = parse_price_ranges(values["ranges"]) if values["tiered"] else []
        links = self._parse_supply_links(values["supplies"])

        with self.repository.db.transaction():
            product_id = self.repository.save_product(target, ranges)
            self.repository.update_supply_links(
                product_id, [ProductSupplyLink(product_id, sid, qty) for sid, qty in links])
        self.feedback(f"Saved {target.name}")

    def _parse_supply_links(self, text):
        by_name = {s.name.lower(): s for s in self.repository.supplies.get_all()}
        links = []
        for chunk in (text or "").split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            name, _, qty = chunk.rpartition(":")
            supply = by_name.get(name.strip().lower())
            if supply is None:
                raise InputError(f"Unknown supply {name.strip() or chunk!r}")
            amount = parse_float(qty)
            if amount is None or amount <= 0:
                raise InputError(f"Invalid quantity for {supply.name}")
            links.append((supply.id, amount))
        return links

    def delete_product(self, product):
        confirm_popup("Delete Product", f"Delete {product.name}?",
                      lambda: self._delete_product(product), yes_text="Delete",
                      danger=True)

    def _delete_product(self, product):
        self.repository.delete_product(product)
        self.feedback(f"Deleted {product.name}")

    def restock_product(self, product):
        def _submit(values):
            qty = _required_int(values, "quantity", "Quantity")
            updated = self.repository.restock_product(product.id, qty)
            self.feedback(f"{updated.name}: {updated.quantity_in_stock} in stock")

        form_popup(f"Restock {product.name}",
                   [("quantity", "Add quantity", "", "int")], _submit, "Restock")

    def toggle_favorite(self, product):
        added = self.repository.toggle_favorite(product.id)
        self.feedback(f"{product.name} {'added to' if added else 'removed from'} favorites")

    def add_category(self):
        def _submit(values):
            category = self.repository.add_category(values["name"])
            self.category = category.name
            self.feedback(f"Category {category.name} added")

        form_popup("Add Category", [("name", "Name", "", None)], _submit, "Add")

    def delete_category(self):
        category = self._category_by_name(self.category)
        if category is None:
            self.feedback("Select a category first", error=True)
            return
        confirm_popup("Delete Category",
                      f"Delete {category.name}? Its products become uncategorised.",
                      lambda: self.repository.delete_category(category),
                      yes_text="Delete", danger=True)

    # ── Supplies ──

    def add_supply(self):
        self._supply_form(None)

    def edit_supply(self, supply):
        self._supply_form(supply)

    def _supply_form(self, supply):
        editing = supply is not None
        fields = [
            ("name", "Name", supply.name if editing else "", None),
            ("quantity", "Quantity", supply.quantity if editing else 0, "float"),
            ("unit", "Unit", supply.unit if editing else "unit", None),
            ("cost", "Cost per unit", supply.cost_per_unit if editing else "", "float"),
            ("threshold", "Low stock at", supply.low_stock_threshold if editing else 10, "int"),
        ]

        def _submit(values):
            target = supply or Supply(name="", quantity=0.0, unit="", cost_per_unit=0.0)
            target.name = values["name"]
            target.quantity = _required_float(values, "quantity", "Quantity", 0.0)
            target.unit = values["unit"]
            target.cost_per_unit = _required_float(values, "cost", "Cost per unit", 0.0)
            target.low_stock_threshold = _required_int(values, "threshold", "Low stock at", 10)
            self.repository.save_supply(target)
            self.feedback(f"Saved {target.name}")

        form_popup("Edit Supply" if editing else "Add Supply", fields, _submit)

    def adjust_supply(self, supply):
        def _submit(values):
            delta = _required_float(values, "delta", "Change")
            self.repository.adjust_supply(supply.id, delta)
            self.feedback(f"{supply.name} adjusted by {delta:g}")

        form_popup(f"Adjust {supply.name}",
                   [("delta", "Change (+/-)", "", None)], _submit, "Apply")

    def delete_supply(self, supply):
        confirm_popup("Delete Supply", f"Delete {supply.name}?",
                      lambda: self.repository.delete_supply(supply),
                      yes_text="Delete", danger=True)

    # ── Purchases ──

    def _draft_total(self):
        return sum(i.total_cost for i in self.draft)

    def add_draft_line(self):
        def _submit(values):
            name = values["name"].strip()
            if not name:
                raise InputError("Item name is required")
            quantity = _required_float(values, "quantity", "Quantity")
            if quantity <= 0:
                raise InputError("Quantity must be positive")
            unit_cost = _required_float(values, "cost", "Unit cost")
            item_type = PurchaseItemType.SUPPLY if values["supply"] else PurchaseItemType.PRODUCT
            self.draft.append(PurchaseItem(
                item_type=item_type, item_name=name, quantity=quantity,
                unit_cost=unit_cost, total_cost=quantity * unit_cost))
            self._render_draft()

        form_popup("Add Purchase Line", [
            ("name", "Item name", "", None),
            ("supply", "Is a supply", False, "bool"),
            ("quantity", "Quantity", "", "float"),
            ("cost", "Unit cost", "", "float"),
        ], _submit, "Add")

    def remove_draft_line(self, index):
        if 0 <= index < len(self.draft):
            del self.draft[index]
        self._render_draft()

    def record_purchase(self):
        supplier = self.ids.supplier_input.text.strip() or None
        as_expense = self.ids.record_expense_check.active
        bill = PurchaseBill(total_amount=self._draft_total(), supplier_name=supplier)
        bill_id = self.run_action(
            lambda: self.repository.record_purchase(
                bill, self.draft, record_as_expense=as_expense, create_missing=True),
            success="Purchase recorded")
        if bill_id is None:
            # Ids assigned before the rollback point at rows that no longer exist.
            for item in self.draft:
                item.item_id = None
            return
        self.draft = []
        self.ids.supplier_input.text = ""
        self._render_draft()

    def delete_purchase(self, bill):
        confirm_popup("Delete Purchase",
                      "Delete this bill? Stock and expenses already booked stay as they are.",
                      lambda: self.repository.delete_purchase_bill(bill),
                      yes_text="Delete", danger=True)
