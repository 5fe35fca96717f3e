"""
Reports screen: daily report with cash reconciliation, and monthly report.

The daily tab shows either the cash-flow or the accounting view of the
same day; the share button renders the day as plain text and can export
it to the ``exports`` storage directory.
"""

from datetime import timedelta

from app.theme import get_color
from app.widgets import (
    ShopScreen, SummaryTile, confirm_popup, make_row, parse_float, text_popup,
)
from shoptrack import config, dates
from shoptrack.currency import format_currency
from shoptrack.models import PaymentMethod
from shoptrack.reports import (
    CashReconciliationView, DailyReport, MonthlyReport, ReportType,
    export_report, next_month, previous_month, render_daily_report,
)


def _add_tile(grid, label, value, color=None):
    tile = SummaryTile(label_text=label, value_text=value)
    tile.value_color = list(color or get_color("text_primary"))
    grid.add_widget(tile)


class ReportsScreen(ShopScreen):

    watches = ("sales", "expenses", "cash_reconciliation", "products")

    def __init__(self, repository, **kwargs):
        self._tab = "Daily"
        self._date = dates.today_key()
        self._month = dates.current_month_key()
        self.report_type = ReportType.CASH_FLOW
        self.report = None
        self.reconciliation = None
        super().__init__(repository, **kwargs)

    # ── Route state ──

    def save_state(self):
        return {"tab": self._tab, "date": self._date, "month": self._month,
                "report_type": self.report_type}

    def restore_state(self, state):
        state = state or {}
        self._tab = state.get("tab", "Daily")
        self._date = state.get("date", dates.today_key())
        self._month = state.get("month", dates.current_month_key())
        self.report_type = state.get("report_type", ReportType.CASH_FLOW)
        tabs = self.ids.get("report_tabs")
        if tabs is not None:
            for item in tabs.tab_list:
                if item.text == self._tab:
                    tabs.switch_to(item)
        self._stale = True

    def on_tab_changed(self, text):
        self._tab = text

    # ── Loading ──

    def refresh(self):
        self._load_daily()
        self._load_monthly()

    def _money(self, value):
        return format_currency(value, self.currency_code)

    def _load_daily(self):
        tiles = self.ids.get("daily_tiles")
        if tiles is None:
            return
        report = DailyReport.for_date(self.repository, self._date)
        self.report = report
        self.ids.date_input.text = self._date
        self.ids.next_day_btn.disabled = self._date >= dates.today_key()
        accounting = self.report_type is ReportType.ACCOUNTING
        self.ids.type_btn.text = "Accounting" if accounting else "Cash Flow"

        tiles.clear_widgets()
        _add_tile(tiles, "Revenue", self._money(report.revenue))
        _add_tile(tiles, "Bills", str(report.bill_count))
        _add_tile(tiles, "Items Sold", str(report.items_sold))
        _add_tile(tiles, "Cash", f"{self._money(report.cash_revenue)} "
                                 f"({report.cash_bill_count})")
        _add_tile(tiles, "Visa", f"{self._money(report.visa_revenue)} "
                                 f"({report.visa_bill_count})")
        if accounting:
            _add_tile(tiles, "COGS", self._money(report.cogs))
            _add_tile(tiles, "Gross Profit", self._money(report.gross_profit))
            _add_tile(tiles, "Operating Exp.", self._money(report.operating_expenses))
            net = report.net_profit
        else:
            _add_tile(tiles, "Expenses", self._money(report.total_expenses))
            net = report.cash_flow_net
        _add_tile(tiles, "Net Profit" if accounting else "Net", self._money(net),
                  get_color("text_profit" if net >= 0 else "text_loss"))

        bill_list = self.ids.bill_list
        bill_list.clear_widgets()
        for bill_sales in reversed(list(report.bills.values())):
            first = bill_sales[0]
            names = ", ".join(f"{s.product_name} x{s.quantity_sold}" for s in bill_sales)
            method = "Visa" if first.payment_method is PaymentMethod.VISA else "Cash"
            make_row(bill_list, f"{first.sale_date:%H:%M}  {method}", names,
                     self._money(sum(s.total_amount for s in bill_sales)),
                     secondary=("Cancel", lambda b=bill_sales: self.cancel_bill(b)))

        expense_list = self.ids.daily_expense_list
        expense_list.clear_widgets()
        for expense in report.expenses:
            make_row(expense_list, expense.description, expense.category,
                     self._money(expense.amount))

        self._load_reconciliation()

    def _load_reconciliation(self):
        view = CashReconciliationView.load(self.repository, self._date, self.report)
        self.reconciliation = view
        opening = self.ids.opening_input
        opening.text = "" if view.opening_cash is None else f"{view.opening_cash:.2f}"
        opening.disabled = view.has_previous
        self.ids.actual_input.text = (f"{view.actual_cash_counted:.2f}"
                                      if view.saved else "")
        self.ids.change_input.text = (f"{view.change_for_tomorrow:.2f}"
                                      if view.saved else "")
        self.ids.notes_input.text = view.notes
        self._render_reconciliation()

    def _render_reconciliation(self):
        view = self.reconciliation
        if view is None:
            return
        self.ids.recon_cash_sales.text = self._money(view.cash_revenue)
        self.ids.recon_expenses.text = self._money(view.total_expenses)
        self.ids.recon_expected.text = self._money(view.expected_cash)
        if view.actual_cash_counted > 0:
            status = view.status
            color_key = {"Balanced": "status_balanced", "Over": "status_over",
                         "Short": "status_short"}[status]
            self.ids.recon_status.text = f"{status} {self._money(abs(view.difference))}"
            self.ids.recon_status.color = get_color(color_key)
            self.ids.recon_takeout.text = self._money(view.cash_to_take_out)
        else:
            self.ids.recon_status.text = "-"
            self.ids.recon_status.color = get_color("text_dim")
            self.ids.recon_takeout.text = "-"

    def _load_monthly(self):
        tiles = self.ids.get("monthly_tiles")
        if tiles is None:
            return
        report = MonthlyReport.for_month(self.repository, self._month)
        self.ids.month_label.text = self._month
        self.ids.next_month_btn.disabled = self._month >= dates.current_month_key()

        tiles.clear_widgets()
        _add_tile(tiles, "Revenue", self._money(report.revenue))
        _add_tile(tiles, "Expenses", self._money(report.total_expenses))
        _add_tile(tiles, "Profit", self._money(report.profit),
                  get_color("text_profit" if report.profit >= 0 else "text_loss"))
        _add_tile(tiles, "Bills", str(report.bill_count))
        _add_tile(tiles, "Items Sold", str(report.items_sold))
        _add_tile(tiles, "Opening Cash", self._money(report.opening_cash))
        _add_tile(tiles, "Cash", f"{self._money(report.cash_revenue)} "
                                 f"({report.cash_bill_count})")
        _add_tile(tiles, "Visa", f"{self._money(report.visa_revenue)} "
                                 f"({report.visa_bill_count})")
        _add_tile(tiles, "Net Profit", self._money(report.net_profit),
                  get_color("text_profit" if report.net_profit >= 0 else "text_loss"))

        days = self.ids.month_days
        days.clear_widgets()
        for summary in report.daily:
            make_row(days, summary.date, f"{summary.sales_count} sale(s)",
                     self._money(summary.total_revenue),
                     on_select=lambda d=summary.date: self.open_day(d))

    # ── Daily actions ──

    def on_date_submit(self, text):
        day = self.run_action(lambda: dates.parse_date_key(text.strip()))
        if day is None:
            return
        self._date = min(day.isoformat(), dates.today_key())
        self._load_daily()

    def shift_day(self, days):
        day = dates.parse_date_key(self._date) + timedelta(days=days)
        self._date = min(day.isoformat(), dates.today_key())
        self._load_daily()

    def open_day(self, date_key):
        self._date = date_key
        tabs = self.ids.report_tabs
        for item in tabs.tab_list:
            if item.text == "Daily":
                tabs.switch_to(item)
        self._load_daily()

    def toggle_report_type(self):
        self.report_type = self.report_type.toggled()
        self._load_daily()

    def cancel_bill(self, bill_sales):
        total = sum(s.total_amount for s in bill_sales)
        confirm_popup("Cancel Bill",
                      f"Cancel this bill of {len(bill_sales)} item(s) "
                      f"({self._money(total)})? Stock will be restored.",
                      lambda: self._cancel_bill(bill_sales),
                      yes_text="Cancel Bill", danger=True)

    def _cancel_bill(self, bill_sales):
        if self.run_action(lambda: self.repository.cancel_bill(bill_sales)):
            self.feedback("Bill cancelled")

    def share_report(self):
        settings = self.repository.get_settings()
        text = render_daily_report(self.report, settings.currency_code,
                                   shop_name=settings.shop_name,
                                   cr_number=settings.cr_number,
                                   report_type=self.report_type)
        text_popup(f"Report {self._date}", text,
                   actions=[("Export", lambda: self._export(text))])

    def _export(self, text):
        try:
            path = export_report(text, config.storage_dir("exports"), self._date)
        except OSError as e:
            self.feedback(f"Export failed: {e}", error=True)
            return
        self.feedback(f"Saved to {path}")

    # ── Cash reconciliation ──

    def on_recon_input(self):
        view = self.reconciliation
        if view is None:
            return
        if not view.has_previous:
            view.opening_cash = parse_float(self.ids.opening_input.text)
        view.actual_cash_counted = parse_float(self.ids.actual_input.text, 0.0)
        view.change_for_tomorrow = parse_float(self.ids.change_input.text, 0.0)
        self._render_reconciliation()

    def save_reconciliation(self):
        view = self.reconciliation
        if view is None:
            return
        self.run_action(lambda: view.save(
            self.repository,
            opening_cash=parse_float(self.ids.opening_input.text),
            actual_cash_counted=parse_float(self.ids.actual_input.text, 0.0),
            change_for_tomorrow=parse_float(self.ids.change_input.text, 0.0),
            notes=self.ids.notes_input.text.strip(),
        ), success="Cash count saved")

    # ── Monthly actions ──

    def previous_month(self):
        self._month = previous_month(self._month)
        self._load_monthly()

    def next_month(self):
        self._month = next_month(self._month)
        self._load_monthly()
