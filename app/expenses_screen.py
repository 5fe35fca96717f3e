"""
Expenses screen: today's, this month's or a chosen day's expenses.
"""

from dataclasses import replace
from datetime import datetime

from app.widgets import ShopScreen, confirm_popup, form_popup, make_row, parse_float
from shoptrack import dates
from shoptrack.currency import format_currency
from shoptrack.errors import InputError
from shoptrack.models import EXPENSE_CATEGORIES, GENERAL_EXPENSE

PERIODS = ("Today", "Month", "Date")


class ExpensesScreen(ShopScreen):

    watches = ("expenses",)

    def __init__(self, repository, **kwargs):
        self._period = "Today"
        self._date = dates.today_key()
        super().__init__(repository, **kwargs)

    def save_state(self):
        return {"period": self._period, "date": self._date}

    def restore_state(self, state):
        state = state or {}
        self._period = state.get("period", "Today")
        self._date = state.get("date", dates.today_key())
        if "period_spinner" in self.ids:
            self.ids.period_spinner.text = self._period
            self.ids.date_input.text = self._date
        self._stale = True

    # ── Loading ──

    def _expenses(self):
        if self._period == "Month":
            return self.repository.expenses.get_by_month(self._date[:7])
        if self._period == "Date":
            return self.repository.expenses.get_by_date(self._date)
        return self.repository.expenses.get_by_date(dates.today_key())

    def refresh(self):
        elist = self.ids.get("expense_list")
        if elist is None:
            return
        self.ids.date_input.disabled = self._period == "Today"
        elist.clear_widgets()
        code = self.currency_code
        expenses = self._expenses()
        for expense in expenses:
            make_row(elist, expense.description,
                     f"{expense.category}  |  {expense.date:%Y-%m-%d %H:%M}",
                     format_currency(expense.amount, code),
                     action=("Edit", lambda e=expense: self.edit_expense(e)),
                     secondary=("Delete", lambda e=expense: self.delete_expense(e)))
        self.ids.expense_total.value_text = format_currency(
            sum(e.amount for e in expenses), code)
        self.ids.expense_count.value_text = str(len(expenses))

    # ── Actions ──

    def on_period_selected(self, text):
        self._period = text
        self.refresh()

    def on_date_submit(self, text):
        day = self.run_action(lambda: dates.parse_date_key(text.strip()))
        if day is None:
            return
        self._date = day.isoformat()
        if self._period == "Today":
            self._period = "Date"
            self.ids.period_spinner.text = self._period
        self.refresh()

    def add_expense(self):
        self._expense_form(None)

    def edit_expense(self, expense):
        self._expense_form(expense)

    def _expense_form(self, expense):
        editing = expense is not None
        default_date = dates.today_key() if self._period == "Today" else self._date
        fields = [
            ("description", "Description", expense.description if editing else "", None),
            ("amount", "Amount", expense.amount if editing else "", "float"),
            ("category", "Category",
             expense.category if editing else GENERAL_EXPENSE, None),
            ("date", "Date (YYYY-MM-DD)",
             dates.date_key(expense.date) if editing else default_date, None),
        ]

        def _submit(values):
            amount = parse_float(values["amount"])
            if amount is None:
                raise InputError("Amount must be a number")
            category = self._match_category(values["category"])
            day = dates.parse_date_key(values["date"].strip())
            if editing:
                updated = replace(
                    expense, description=values["description"], amount=amount,
                    category=category,
                    date=expense.date.replace(year=day.year, month=day.month, day=day.day))
                self.repository.update_expense(updated)
                self.feedback("Expense updated")
            else:
                when = datetime.now()
                if day != when.date():
                    when = datetime.combine(day, datetime.min.time().replace(hour=12))
                self.repository.add_expense(values["description"], amount,
                                            category, date=when)
                self.feedback("Expense added")

        form_popup("Edit Expense" if editing else "Add Expense", fields, _submit)

    @staticmethod
    def _match_category(text):
        text = (text or "").strip()
        if not text:
            return GENERAL_EXPENSE
        for category in EXPENSE_CATEGORIES:
            if category.lower() == text.lower():
                return category
        raise InputError("Category must be one of: " + ", ".join(EXPENSE_CATEGORIES))

    def delete_expense(self, expense):
        confirm_popup("Delete Expense",
                      f"Delete {expense.description} "
                      f"({format_currency(expense.amount, self.currency_code)})?",
                      lambda: self.repository.delete_expense(expense),
                      yes_text="Delete", danger=True)
