"""
Checkout cart.

The cart lives in memory on the checkout screen.  Line totals are priced
through the repository (tiered prices included) each time a quantity
changes; ``checkout`` turns the cart into sales that share one
transaction id, inside a single database transaction.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from shoptrack.errors import EmptyCartError, InputError, NotFoundError
from shoptrack.logutil import get_logger
from shoptrack.models import PaymentMethod, Product, Sale

log = get_logger("cart")


@dataclass
class CartItem:
    product_id: int
    product_name: str
    unit_price: float
    wholesale_price: Optional[float]
    quantity: int
    total_amount: float
    wholesale_total_amount: Optional[float] = None

    def total(self, is_wholesale=False) -> float:
        if is_wholesale and self.wholesale_total_amount is not None:
            return self.wholesale_total_amount
        return self.total_amount


@dataclass
class Receipt:
    items: List[CartItem]
    subtotal: float
    discount: float
    total: float
    payment_method: PaymentMethod
    transaction_id: int
    is_wholesale: bool = False
    customer_name: Optional[str] = None
    sales: List[Sale] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)


class Cart:
    """Items waiting to be checked out, keyed by product id."""

    def __init__(self, repository):
        self.repository = repository
        self._items: Dict[int, CartItem] = {}
        self.discount = 0.0
        self.payment_method = PaymentMethod.CASH
        self.customer_name = ""

    # ── Contents ──────────────────────────────────────────────────────

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self):
        return len(self._items)

    def _price_line(self, product: Product, quantity: int) -> CartItem:
        retail = quantity * self.repository.price_for(product, quantity)
        wholesale = (quantity * product.wholesale_price
                     if product.wholesale_price is not None else None)
        return CartItem(
            product_id=product.id,
            product_name=product.name,
            unit_price=product.selling_price,
            wholesale_price=product.wholesale_price,
            quantity=quantity,
            total_amount=retail,
            wholesale_total_amount=wholesale,
        )

    def add(self, product: Product, quantity=1) -> CartItem:
        if quantity <= 0:
            raise InputError("Quantity must be positive")
        existing = self._items.get(product.id)
        if existing is not None:
            quantity += existing.quantity
        item = self._price_line(product, quantity)
        self._items[product.id] = item
        return item

    def add_bulk(self, quantities: Dict[int, int]) -> int:
        """Add several products by id; returns how many lines were added."""
        added = 0
        for product_id, quantity in quantities.items():
            if quantity <= 0:
                continue
            product = self.repository.products.get_by_id(product_id)
            if product is None:
                continue
            self.add(product, quantity)
            added += 1
        return added

    def add_by_barcode(self, barcode: str) -> Product:
        """Scan a barcode and add one unit of the matching product."""
        barcode = (barcode or "").strip()
        if not barcode:
            raise InputError("Barcode is empty")
        product = self.repository.products.get_by_barcode(barcode)
        if product is None:
            raise NotFoundError("Product with barcode", barcode)
        if product.is_out_of_stock():
            raise InputError(f"{product.name} is out of stock")
        self.add(product, 1)
        return product

    def update_quantity(self, product_id: int, quantity: int):
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove(product_id)
            return
        item = self._items.get(product_id)
        if item is None:
            return
        product = self.repository.products.get_by_id(product_id)
        if product is None:
            self._items[product_id] = CartItem(
                product_id=product_id,
                product_name=item.product_name,
                unit_price=item.unit_price,
                wholesale_price=item.wholesale_price,
                quantity=quantity,
                total_amount=quantity * item.unit_price,
                wholesale_total_amount=(quantity * item.wholesale_price
                                        if item.wholesale_price is not None else None),
            )
        else:
            self._items[product_id] = self._price_line(product, quantity)

    def remove(self, product_id: int):
        self._items.pop(product_id, None)

    def clear(self):
        self._items.clear()
        self.discount = 0.0
        self.customer_name = ""

    # ── Totals ────────────────────────────────────────────────────────

    @property
    def total(self) -> float:
        return sum(i.total_amount for i in self._items.values())

    @property
    def wholesale_total(self) -> float:
        return sum(i.total(is_wholesale=True) for i in self._items.values())

    def subtotal(self, is_wholesale=False) -> float:
        return self.wholesale_total if is_wholesale else self.total

    def final_total(self, is_wholesale=False) -> float:
        return max(0.0, self.subtotal(is_wholesale) - self.discount)

    def set_discount(self, discount: float):
        self.discount = max(0.0, discount or 0.0)

    # ── Checkout ──────────────────────────────────────────────────────

    def checkout(self, is_wholesale=False) -> Receipt:
        """Record every line as a sale; all of them or none.

        The discount is split across lines in proportion to their totals.
        """
        if self.is_empty():
            raise EmptyCartError("Cart is empty")

        items = self.items
        subtotal = self.subtotal(is_wholesale)
        discount = self.discount
        transaction_id = int(time.time() * 1000)

        sales = []
        with self.repository.db.transaction():
            for item in items:
                share = (item.total(is_wholesale) / subtotal) * discount if subtotal > 0 else 0.0
                sales.append(self.repository.record_sale(
                    item.product_id, item.quantity, self.payment_method,
                    is_wholesale=is_wholesale, discount=share,
                    transaction_id=transaction_id))

        receipt = Receipt(
            items=items,
            subtotal=subtotal,
            discount=discount,
            total=max(0.0, subtotal - discount),
            payment_method=self.payment_method,
            transaction_id=transaction_id,
            is_wholesale=is_wholesale,
            customer_name=self.customer_name.strip() or None,
            sales=sales,
        )
        log.info("Checkout %d: %d line(s), total %.2f", transaction_id,
                 len(items), receipt.total)
        self.clear()
        return receipt
