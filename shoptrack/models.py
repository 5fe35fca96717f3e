"""
Entity definitions for ShopTrack Lite.

Plain dataclasses mirror the rows of the SQLite tables.  The DAOs build
them from ``sqlite3.Row`` objects and write them back field by field;
nothing here touches the database.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from shoptrack.errors import InputError


class PaymentMethod(Enum):
    CASH = "CASH"
    VISA = "VISA"


class PurchaseItemType(Enum):
    PRODUCT = "PRODUCT"
    SUPPLY = "SUPPLY"


# Expense categories with special meaning in reports and purchases
GENERAL_EXPENSE = "General"
INVENTORY_PURCHASE_EXPENSE = "Inventory Purchase"
SUPPLIES_EXPENSE = "Supplies"

EXPENSE_CATEGORIES = [
    GENERAL_EXPENSE, "Rent", "Utilities", "Salaries", "Transport",
    "Maintenance", INVENTORY_PURCHASE_EXPENSE, SUPPLIES_EXPENSE, "Other",
]


@dataclass
class Product:
    name: str
    cost_price: float
    selling_price: float
    quantity_in_stock: int
    id: int = 0
    wholesale_price: Optional[float] = None
    has_quantity_based_pricing: bool = False
    barcode: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    category_id: Optional[int] = None
    image_path: Optional[str] = None
    color_hex: Optional[str] = None
    track_inventory: bool = True

    def is_out_of_stock(self):
        return self.track_inventory and self.quantity_in_stock <= 0


@dataclass
class Category:
    name: str
    id: int = 0


@dataclass
class Sale:
    product_id: int
    product_name: str
    quantity_sold: int
    unit_price: float
    total_amount: float
    cost_price: float
    profit: float
    payment_method: PaymentMethod
    id: int = 0
    sale_date: datetime = field(default_factory=datetime.now)
    is_wholesale: bool = False
    is_cancelled: bool = False
    transaction_id: Optional[int] = None

    @property
    def bill_key(self):
        """Sales of one checkout share a transaction id; legacy rows stand alone."""
        return self.transaction_id if self.transaction_id is not None else -self.id


@dataclass
class Favorite:
    product_id: int
    display_order: int = 0


@dataclass
class PriceRange:
    product_id: int
    min_quantity: int
    max_quantity: int
    price: float
    id: int = 0

    def covers(self, quantity):
        return self.min_quantity <= quantity <= self.max_quantity


@dataclass
class Settings:
    id: int = 1
    wholesale_mode_enabled: bool = False
    currency_code: str = "USD"
    shop_name: str = ""
    cr_number: str = ""


@dataclass
class Expense:
    description: str
    amount: float
    category: str = GENERAL_EXPENSE
    id: int = 0
    date: datetime = field(default_factory=datetime.now)


@dataclass
class CashReconciliation:
    date: str  # "YYYY-MM-DD"
    opening_cash: float = 0.0
    actual_cash_counted: float = 0.0
    change_for_tomorrow: float = 0.0
    notes: str = ""


@dataclass
class Supply:
    name: str
    quantity: float
    unit: str
    cost_per_unit: float
    id: int = 0
    low_stock_threshold: int = 10
    created_at: datetime = field(default_factory=datetime.now)

    def is_low_stock(self):
        return self.quantity <= self.low_stock_threshold


@dataclass
class ProductSupplyLink:
    product_id: int
    supply_id: int
    quantity_consumed: float  # supply units used per product unit sold


@dataclass
class PurchaseBill:
    total_amount: float
    id: int = 0
    date: datetime = field(default_factory=datetime.now)
    supplier_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class PurchaseItem:
    item_type: PurchaseItemType
    item_name: str
    quantity: float
    unit_cost: float
    total_cost: float
    id: int = 0
    bill_id: int = 0
    item_id: Optional[int] = None  # product or supply id


@dataclass
class PurchaseBillWithItems:
    bill: PurchaseBill
    items: List[PurchaseItem] = field(default_factory=list)


@dataclass
class MonthlySalesSummary:
    date: str
    sales_count: int
    total_revenue: float
    total_profit: float


def parse_price_ranges(text, product_id=0) -> List[PriceRange]:
    """Parse ``"1-9:2.50, 10-49:2.25"`` into price ranges.

    Ranges may not overlap; an empty string means no tiers.
    """
    ranges = []
    for chunk in (text or "").split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            bounds, price = chunk.split(":")
            low, high = bounds.split("-")
            pr = PriceRange(product_id=product_id, min_quantity=int(low),
                            max_quantity=int(high), price=float(price))
        except ValueError:
            raise InputError(f"Invalid price range {chunk!r}, expected MIN-MAX:PRICE")
        if pr.min_quantity < 1 or pr.max_quantity < pr.min_quantity:
            raise InputError(f"Invalid quantity range {chunk!r}")
        ranges.append(pr)

    ranges.sort(key=lambda r: r.min_quantity)
    for prev, cur in zip(ranges, ranges[1:]):
        if cur.min_quantity <= prev.max_quantity:
            raise InputError(
                f"Price ranges {prev.min_quantity}-{prev.max_quantity} and "
                f"{cur.min_quantity}-{cur.max_quantity} overlap")
    return ranges


def format_price_ranges(ranges) -> str:
    return ", ".join(f"{r.min_quantity}-{r.max_quantity}:{r.price:g}" for r in ranges)
