"""
Checkout screen: favourites, product search, barcode entry and the cart.
"""

from kivy.metrics import dp
from kivy.uix.button import Button

from app.theme import get_color
from app.widgets import ShopScreen, confirm_popup, make_row, parse_float, text_popup
from shoptrack.cart import Cart
from shoptrack.currency import format_currency
from shoptrack.models import PaymentMethod


class HomeScreen(ShopScreen):
    """Point of sale.

    The cart survives navigation because the screen instance does; the
    saved route state only carries the search box and customer name.
    """

    watches = ("products", "favorites", "sales", "price_ranges")

    def __init__(self, repository, **kwargs):
        self.cart = Cart(repository)
        self._query = ""
        self._wholesale = False
        super().__init__(repository, **kwargs)

    # ── Route state ──

    def save_state(self):
        return {"query": self._query, "customer": self.cart.customer_name,
                "wholesale": self._wholesale}

    def restore_state(self, state):
        state = state or {}
        self._query = state.get("query", "")
        self.cart.customer_name = state.get("customer", "")
        self._wholesale = state.get("wholesale", False)
        if "search_input" in self.ids:
            self.ids.search_input.text = self._query
            self.ids.customer_input.text = self.cart.customer_name
        self._stale = True

    # ── Loading ──

    def refresh(self):
        settings = self.repository.get_settings()
        toggle = self.ids.get("wholesale_toggle")
        if toggle:
            toggle.disabled = not settings.wholesale_mode_enabled
            if not settings.wholesale_mode_enabled:
                self._wholesale = False
            toggle.state = "down" if self._wholesale else "normal"
        self._load_favorites()
        self._load_results()
        self._load_today()
        self._render_cart()

    def _load_favorites(self):
        grid = self.ids.get("favorites_grid")
        if grid is None:
            return
        grid.clear_widgets()
        for product in self.repository.favorites.get_favorite_products():
            btn = Button(
                text=f"{product.name}\n{format_currency(product.selling_price, self.currency_code)}",
                halign='center', font_size='13sp', size_hint_y=None, height=dp(64),
                background_color=list(get_color(
                    "status_out" if product.is_out_of_stock() else "btn_primary")))
            btn.bind(on_release=lambda *_, p=product: self.add_product(p))
            grid.add_widget(btn)

    def _load_results(self):
        results = self.ids.get("results_list")
        if results is None:
            return
        results.clear_widgets()
        if not self._query:
            return
        code = self.currency_code
        for product in self.repository.search_products(self._query)[:20]:
            stock = (f"Stock: {product.quantity_in_stock}" if product.track_inventory
                     else "Not tracked")
            make_row(results, product.name, stock,
                     format_currency(product.selling_price, code),
                     action=("Add", lambda p=product: self.add_product(p)),
                     highlight=product.is_out_of_stock(),
                     highlight_color=get_color("status_out"))

    def _load_today(self):
        sales = self.repository.sales
        code = self.currency_code
        if "today_revenue" in self.ids:
            self.ids.today_revenue.value_text = format_currency(sales.today_revenue(), code)
            self.ids.today_count.value_text = str(sales.today_count())

    def _render_cart(self):
        cart_list = self.ids.get("cart_list")
        if cart_list is None:
            return
        cart_list.clear_widgets()
        code = self.currency_code
        for item in self.cart.items:
            make_row(cart_list, item.product_name,
                     f"Qty {item.quantity}",
                     format_currency(item.total(self._wholesale), code),
                     action=("+", lambda pid=item.product_id: self.change_quantity(pid, 1)),
                     secondary=("-", lambda pid=item.product_id: self.change_quantity(pid, -1)))
        self.ids.cart_subtotal.text = format_currency(self.cart.subtotal(self._wholesale), code)
        self.ids.cart_total.text = format_currency(self.cart.final_total(self._wholesale), code)
        self.ids.checkout_btn.disabled = self.cart.is_empty()

    # ── Actions (bound in app.kv) ──

    def on_search_changed(self, text):
        self._query = text.strip()
        self._load_results()

    def on_barcode_submit(self, text):
        product = self.run_action(lambda: self.cart.add_by_barcode(text))
        if product is not None:
            self.feedback(f"{product.name} added to cart")
            self.ids.barcode_input.text = ""
            self._render_cart()

    def add_product(self, product):
        if product.is_out_of_stock():
            self.feedback(f"{product.name} is out of stock", error=True)
            return
        self.run_action(lambda: self.cart.add(product, 1))
        self._render_cart()

    def change_quantity(self, product_id, delta):
        item = next((i for i in self.cart.items if i.product_id == product_id), None)
        if item is None:
            return
        self.cart.update_quantity(product_id, item.quantity + delta)
        self._render_cart()

    def on_discount_changed(self, text):
        self.cart.set_discount(parse_float(text, 0.0))
        self._render_cart()

    def on_payment_changed(self, text):
        self.cart.payment_method = PaymentMethod(text.upper())

    def on_wholesale_toggled(self, state):
        self._wholesale = state == "down"
        self._render_cart()

    def on_customer_changed(self, text):
        self.cart.customer_name = text

    def on_clear_cart(self):
        if self.cart.is_empty():
            return
        confirm_popup("Clear Cart", "Remove all items from the cart?",
                      self._clear_cart, yes_text="Clear", danger=True)

    def _clear_cart(self):
        self.cart.clear()
        self.ids.discount_input.text = ""
        self.ids.customer_input.text = ""
        self._render_cart()

    def on_checkout(self):
        # On failure nothing was recorded and the cart is kept for a retry.
        receipt = self.run_action(lambda: self.cart.checkout(is_wholesale=self._wholesale))
        if receipt is None:
            self._render_cart()
            return
        self.ids.discount_input.text = ""
        self.ids.customer_input.text = ""
        self.feedback("Sale recorded")
        self._show_receipt(receipt)

    def _show_receipt(self, receipt):
        code = self.currency_code
        settings = self.repository.get_settings()
        lines = [settings.shop_name or "ShopTrack Lite"]
        if settings.cr_number:
            lines.append(f"CR: {settings.cr_number}")
        if receipt.customer_name:
            lines.append(f"Customer: {receipt.customer_name}")
        lines.append("")
        for item in receipt.items:
            lines.append(f"{item.product_name} x{item.quantity}  "
                         f"{format_currency(item.total(receipt.is_wholesale), code)}")
        lines.append("")
        lines.append(f"Subtotal: {format_currency(receipt.subtotal, code)}")
        if receipt.discount:
            lines.append(f"Discount: -{format_currency(receipt.discount, code)}")
        lines.append(f"Total: {format_currency(receipt.total, code)}")
        lines.append(f"Paid by: {receipt.payment_method.value.title()}")
        if receipt.is_wholesale:
            lines.append("Wholesale")
        text_popup("Receipt", "\n".join(lines))
