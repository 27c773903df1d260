"""Monthly and annual summaries over ledger entries.

Income entries carry positive amounts and expenses negative ones, so a
period's balance is the sum of both totals.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from .models import Account, Category, Entry, EntryKind

MONTHS_PER_YEAR = 12
_ZERO = Decimal("0")


@dataclass
class MonthlySummary:
    month: int
    year: int
    total_income: Decimal
    total_expenses: Decimal

    @property
    def balance(self) -> Decimal:
        return self.total_income + self.total_expenses


@dataclass
class AnnualSummary:
    year: int
    total_income: Decimal
    total_expenses: Decimal
    average_income: Decimal
    average_expenses: Decimal
    months: list[MonthlySummary] = field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.total_income + self.total_expenses


@dataclass
class CategoryTotal:
    category: Category
    total: Decimal
    percent: float


def entries_for_month(entries: Iterable[Entry], month: int, year: int) -> list[Entry]:
    return [e for e in entries if e.month == month and e.year == year]


def monthly_summary(entries: Iterable[Entry], month: int, year: int) -> MonthlySummary:
    """Total income and expenses booked in one month."""
    selected = entries_for_month(entries, month, year)
    return MonthlySummary(
        month=month,
        year=year,
        total_income=sum((e.amount for e in selected if e.amount > 0), _ZERO),
        total_expenses=sum((e.amount for e in selected if e.amount < 0), _ZERO),
    )


def annual_summary(entries: Iterable[Entry], year: int) -> AnnualSummary:
    """Month-by-month summary of a year, with averages over all twelve months."""
    entries = list(entries)
    months = [
        monthly_summary(entries, month, year)
        for month in range(1, MONTHS_PER_YEAR + 1)
    ]
    total_income = sum((m.total_income for m in months), _ZERO)
    total_expenses = sum((m.total_expenses for m in months), _ZERO)
    return AnnualSummary(
        year=year,
        total_income=total_income,
        total_expenses=total_expenses,
        average_income=total_income / MONTHS_PER_YEAR,
        average_expenses=total_expenses / MONTHS_PER_YEAR,
        months=months,
    )


def account_balance(
    accounts: Iterable[Account], entries: Iterable[Entry], account_id: str
) -> Decimal:
    """Opening balance plus every entry booked against the account.

    Unknown accounts have a balance of zero.
    """
    account = next((a for a in accounts if a.id == account_id), None)
    if account is None:
        return _ZERO
    movement = sum((e.amount for e in entries if e.account_id == account_id), _ZERO)
    return account.opening_balance + movement


def top_categories(
    entries: Iterable[Entry],
    categories: Iterable[Category],
    year: int,
    kind: EntryKind = EntryKind.EXPENSE,
    limit: int = 5,
) -> list[CategoryTotal]:
    """Largest categories of a kind in a year, by absolute total.

    Percentages are relative to the total of that kind across the year.
    """
    by_id = {c.id: c for c in categories if c.kind == kind}
    totals: dict[str, Decimal] = {}
    for entry in entries:
        if entry.year == year and entry.category_id in by_id:
            totals[entry.category_id] = totals.get(entry.category_id, _ZERO) + abs(
                entry.amount
            )

    grand_total = sum(totals.values(), _ZERO)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)[:limit]
    return [
        CategoryTotal(
            category=by_id[category_id],
            total=total,
            percent=float(total / grand_total * 100) if grand_total else 0.0,
        )
        for category_id, total in ranked
    ]
