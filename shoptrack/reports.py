"""
Daily and monthly reports.

Two views of the same numbers:

- **Cash flow**: cash in minus cash out (revenue - all expenses).
- **Accounting**: revenue - COGS = gross profit, minus operating
  expenses = net profit.  Inventory purchases are left out of operating
  expenses because their cost already shows up as COGS when sold.

Everything here is computed from repository queries; nothing is stored
except cash reconciliations.
"""

import os
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from shoptrack import dates
from shoptrack.currency import format_currency
from shoptrack.errors import InputError
from shoptrack.logutil import get_logger
from shoptrack.models import (
    INVENTORY_PURCHASE_EXPENSE, CashReconciliation, Expense,
    MonthlySalesSummary, PaymentMethod, Sale,
)

log = get_logger("reports")

BALANCE_TOLERANCE = 0.005


class ReportType(Enum):
    CASH_FLOW = "cash_flow"
    ACCOUNTING = "accounting"

    def toggled(self):
        return ReportType.ACCOUNTING if self is ReportType.CASH_FLOW else ReportType.CASH_FLOW


def group_bills(sales: List[Sale]) -> "OrderedDict[int, List[Sale]]":
    """Group sales into bills, keeping the order in which bills first appear."""
    bills = OrderedDict()
    for sale in sales:
        bills.setdefault(sale.bill_key, []).append(sale)
    return bills


def _revenue(sales, method=None):
    return sum(s.total_amount for s in sales
               if method is None or s.payment_method is method)


def _bill_count(sales, method=None):
    return len(group_bills([s for s in sales
                            if method is None or s.payment_method is method]))


def _operating(expenses):
    return sum(e.amount for e in expenses if e.category != INVENTORY_PURCHASE_EXPENSE)


# ═══════════════════════════════════════════════════════════════════════
#  Daily
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DailyReport:
    date: str
    sales: List[Sale] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)

    @classmethod
    def for_date(cls, repository, date_key: str) -> "DailyReport":
        dates.parse_date_key(date_key)
        return cls(date=date_key,
                   sales=repository.sales.get_by_date(date_key),
                   expenses=repository.expenses.get_by_date(date_key))

    @property
    def bills(self) -> Dict[int, List[Sale]]:
        return group_bills(self.sales)

    @property
    def bill_count(self) -> int:
        return len(self.bills)

    @property
    def items_sold(self) -> int:
        return sum(s.quantity_sold for s in self.sales)

    @property
    def revenue(self) -> float:
        return _revenue(self.sales)

    @property
    def profit(self) -> float:
        return sum(s.profit for s in self.sales)

    @property
    def cogs(self) -> float:
        return sum(s.cost_price * s.quantity_sold for s in self.sales)

    @property
    def gross_profit(self) -> float:
        return self.revenue - self.cogs

    @property
    def operating_expenses(self) -> float:
        return _operating(self.expenses)

    @property
    def total_expenses(self) -> float:
        return sum(e.amount for e in self.expenses)

    @property
    def net_profit(self) -> float:
        return self.gross_profit - self.operating_expenses

    @property
    def cash_flow_net(self) -> float:
        return self.revenue - self.total_expenses

    @property
    def cash_revenue(self) -> float:
        return _revenue(self.sales, PaymentMethod.CASH)

    @property
    def visa_revenue(self) -> float:
        return _revenue(self.sales, PaymentMethod.VISA)

    @property
    def cash_bill_count(self) -> int:
        return _bill_count(self.sales, PaymentMethod.CASH)

    @property
    def visa_bill_count(self) -> int:
        return _bill_count(self.sales, PaymentMethod.VISA)


# ═══════════════════════════════════════════════════════════════════════
#  Cash reconciliation
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class CashReconciliationView:
    """End-of-day cash count for one date.

    When an earlier reconciliation exists, the opening cash is that day's
    change for tomorrow and cannot be edited.
    """

    date: str
    has_previous: bool
    opening_cash: Optional[float]
    cash_revenue: float
    total_expenses: float
    actual_cash_counted: float = 0.0
    change_for_tomorrow: float = 0.0
    notes: str = ""
    saved: bool = False

    @classmethod
    def load(cls, repository, date_key: str, report: Optional[DailyReport] = None):
        report = report or DailyReport.for_date(repository, date_key)
        previous = repository.cash_reconciliation.get_previous(date_key)
        saved = repository.cash_reconciliation.get_by_date(date_key)

        if previous is not None:
            opening = previous.change_for_tomorrow
        elif saved is not None:
            opening = saved.opening_cash
        else:
            opening = None

        return cls(
            date=date_key,
            has_previous=previous is not None,
            opening_cash=opening,
            cash_revenue=report.cash_revenue,
            total_expenses=report.total_expenses,
            actual_cash_counted=saved.actual_cash_counted if saved else 0.0,
            change_for_tomorrow=saved.change_for_tomorrow if saved else 0.0,
            notes=saved.notes if saved else "",
            saved=saved is not None,
        )

    @property
    def expected_cash(self) -> float:
        return (self.opening_cash or 0.0) + self.cash_revenue - self.total_expenses

    @property
    def difference(self) -> float:
        return self.actual_cash_counted - self.expected_cash

    @property
    def status(self) -> str:
        diff = self.difference
        if abs(diff) < BALANCE_TOLERANCE:
            return "Balanced"
        return "Over" if diff > 0 else "Short"

    @property
    def cash_to_take_out(self) -> float:
        return self.actual_cash_counted - self.change_for_tomorrow

    def save(self, repository, opening_cash=None, actual_cash_counted=None,
             change_for_tomorrow=None, notes=None) -> CashReconciliation:
        """Validate and persist the count; fields left as None keep their value."""
        if not self.has_previous and opening_cash is not None:
            self.opening_cash = opening_cash
        if actual_cash_counted is not None:
            self.actual_cash_counted = actual_cash_counted
        if change_for_tomorrow is not None:
            self.change_for_tomorrow = change_for_tomorrow
        if notes is not None:
            self.notes = notes

        if not self.has_previous and self.opening_cash is None:
            raise InputError("Please enter the opening cash")
        if self.actual_cash_counted <= 0:
            raise InputError("Please enter the actual cash counted")
        if self.change_for_tomorrow < 0:
            raise InputError("Change for tomorrow cannot be negative")

        rec = CashReconciliation(
            date=self.date,
            opening_cash=self.opening_cash or 0.0,
            actual_cash_counted=self.actual_cash_counted,
            change_for_tomorrow=self.change_for_tomorrow,
            notes=self.notes,
        )
        repository.save_cash_reconciliation(rec)
        self.saved = True
        return rec


# ═══════════════════════════════════════════════════════════════════════
#  Monthly
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class MonthlyReport:
    month: str
    sales: List[Sale] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    daily: List[MonthlySalesSummary] = field(default_factory=list)
    opening_cash: float = 0.0

    @classmethod
    def for_month(cls, repository, month_key: str) -> "MonthlyReport":
        dates.parse_month_key(month_key)
        first_day = repository.cash_reconciliation.get_by_date(f"{month_key}-01")
        return cls(
            month=month_key,
            sales=repository.sales.get_by_month(month_key),
            expenses=repository.expenses.get_by_month(month_key),
            daily=repository.sales.monthly_summary(month_key),
            opening_cash=first_day.opening_cash if first_day else 0.0,
        )

    @property
    def bill_count(self) -> int:
        return _bill_count(self.sales)

    @property
    def items_sold(self) -> int:
        return sum(s.quantity_sold for s in self.sales)

    @property
    def revenue(self) -> float:
        return _revenue(self.sales)

    @property
    def total_expenses(self) -> float:
        return sum(e.amount for e in self.expenses)

    @property
    def profit(self) -> float:
        return self.revenue - self.total_expenses

    @property
    def cogs(self) -> float:
        return sum(s.cost_price * s.quantity_sold for s in self.sales)

    @property
    def gross_profit(self) -> float:
        return self.revenue - self.cogs

    @property
    def operating_expenses(self) -> float:
        return _operating(self.expenses)

    @property
    def net_profit(self) -> float:
        return self.gross_profit - self.operating_expenses

    @property
    def cash_revenue(self) -> float:
        return _revenue(self.sales, PaymentMethod.CASH)

    @property
    def visa_revenue(self) -> float:
        return _revenue(self.sales, PaymentMethod.VISA)

    @property
    def cash_bill_count(self) -> int:
        return _bill_count(self.sales, PaymentMethod.CASH)

    @property
    def visa_bill_count(self) -> int:
        return _bill_count(self.sales, PaymentMethod.VISA)


def previous_month(month_key: str) -> str:
    return dates.shift_month(month_key, -1)


def next_month(month_key: str, current: Optional[str] = None) -> str:
    """The following month, but never past ``current`` (default: this month)."""
    current = current or dates.current_month_key()
    if month_key >= current:
        return month_key
    return dates.shift_month(month_key, 1)


# ═══════════════════════════════════════════════════════════════════════
#  Text rendering / export
# ═══════════════════════════════════════════════════════════════════════

def render_daily_report(report: DailyReport, currency_code: str,
                        shop_name: str = "", cr_number: str = "",
                        report_type: ReportType = ReportType.ACCOUNTING) -> str:
    def money(value):
        return format_currency(value, currency_code)

    lines = []
    lines.append(shop_name or "ShopTrack Lite")
    if cr_number:
        lines.append(f"CR: {cr_number}")
    lines.append(f"Daily Report - {report.date}")
    lines.append("")
    lines.append(f"Bills: {report.bill_count}")
    lines.append(f"Items Sold: {report.items_sold}")
    lines.append(f"Revenue: {money(report.revenue)}")
    lines.append(f"  Cash: {money(report.cash_revenue)} ({report.cash_bill_count} bills)")
    lines.append(f"  Visa: {money(report.visa_revenue)} ({report.visa_bill_count} bills)")

    if report_type is ReportType.ACCOUNTING:
        lines.append(f"COGS: {money(report.cogs)}")
        lines.append(f"Gross Profit: {money(report.gross_profit)}")
        lines.append(f"Operating Expenses: {money(report.operating_expenses)}")
        lines.append(f"Net Profit: {money(report.net_profit)}")
    else:
        lines.append(f"Expenses: {money(report.total_expenses)}")
        lines.append(f"Net: {money(report.cash_flow_net)}")

    if report.bills:
        lines.append("")
        lines.append("Sales (by bill):")
        for bill_sales in report.bills.values():
            bill_total = sum(s.total_amount for s in bill_sales)
            time_str = bill_sales[0].sale_date.strftime("%H:%M")
            lines.append(f"Bill {time_str} - {len(bill_sales)} item(s) - {money(bill_total)}")
            for sale in bill_sales:
                lines.append(f"  {sale.product_name} x{sale.quantity_sold} - "
                             f"{money(sale.total_amount)}")

    if report.expenses:
        lines.append("")
        lines.append("Expenses:")
        for expense in report.expenses:
            lines.append(f"  {expense.category}: {expense.description} - "
                         f"{money(expense.amount)}")

    lines.append("")
    lines.append(f"Generated on: {datetime.now().strftime('%b %d, %Y %H:%M')}")
    return "\n".join(lines)


def export_report(text: str, export_dir: str, date_key: str) -> str:
    """Write a rendered report to ``export_dir``; returns the file path."""
    os.makedirs(export_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join(export_dir, f"shop_report_{date_key}_{stamp}.txt")
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    log.info("Report exported to %s", path)
    return path
