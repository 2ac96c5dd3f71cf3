from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from domain.costs import ExpenseCategory
from domain.ledger import EntryKind, LedgerEntry
from domain.reconciliation import ReconciliationResult

from .formatting import format_currency, format_signed_sol, format_sol, normalize_currency


@dataclass
class KindTotal:
    count: int = 0
    lamports: int = 0
    value: Decimal = Decimal(0)

    def add(self, entry: LedgerEntry) -> None:
        self.count += 1
        self.lamports += entry.source_lamports or 0
        self.value += entry.quote_value


@dataclass
class TaxSummary:
    year: int | None
    revenue: KindTotal = field(default_factory=KindTotal)
    return_of_capital: KindTotal = field(default_factory=KindTotal)
    reimbursements: KindTotal = field(default_factory=KindTotal)
    expenses_by_category: dict[str, KindTotal] = field(default_factory=dict)

    @property
    def total_expenses(self) -> Decimal:
        return sum((total.value for total in self.expenses_by_category.values()), start=Decimal(0))

    @property
    def net_taxable_income(self) -> Decimal:
        # Reimbursements offset gross expenses.
        return self.revenue.value + self.reimbursements.value - self.total_expenses


@dataclass(frozen=True)
class ScheduleCLine:
    section: str
    line: str
    description: str
    amount: Decimal


def compute_tax_summary(entries: Iterable[LedgerEntry], *, year: int | None = None) -> TaxSummary:
    summary = TaxSummary(year=year)
    expenses: dict[str, KindTotal] = defaultdict(KindTotal)
    for entry in entries:
        match entry.kind:
            case EntryKind.REVENUE:
                summary.revenue.add(entry)
            case EntryKind.RETURN_OF_CAPITAL:
                summary.return_of_capital.add(entry)
            case EntryKind.REIMBURSEMENT:
                summary.reimbursements.add(entry)
            case EntryKind.EXPENSE:
                expenses[entry.category].add(entry)
    summary.expenses_by_category = dict(sorted(expenses.items()))
    return summary


_MAPPED_EXPENSES: tuple[tuple[str, str, tuple[ExpenseCategory, ...]], ...] = (
    ("Commissions and fees", "Vote fees (gross) + DoubleZero network fees", (ExpenseCategory.VOTE_FEES, ExpenseCategory.DOUBLEZERO)),
    ("Contract labor", "Contractor expenses", (ExpenseCategory.CONTRACTOR,)),
    ("Office expenses", "Software subscriptions and tools", (ExpenseCategory.SOFTWARE,)),
    ("Rent or lease (other business property)", "Hosting and infrastructure", (ExpenseCategory.HOSTING,)),
)


def schedule_c_lines(summary: TaxSummary) -> list[ScheduleCLine]:
    """Map ledger totals onto Schedule C income and expense lines."""

    def category_total(categories: Iterable[ExpenseCategory]) -> Decimal:
        return sum(
            (summary.expenses_by_category[c.value].value for c in categories if c.value in summary.expenses_by_category),
            start=Decimal(0),
        )

    lines = [
        ScheduleCLine("Business income", "Income reported on Form(s) 1099", "Income reported on Form(s) 1099", Decimal(0)),
        ScheduleCLine(
            "Business income",
            "Income not reported on Form(s) 1099",
            "Taxable external withdrawals (cash-basis)",
            normalize_currency(summary.revenue.value),
        ),
        ScheduleCLine(
            "Business income",
            "Other income",
            "Vote fee reimbursements",
            normalize_currency(summary.reimbursements.value),
        ),
    ]

    mapped: set[str] = set()
    for line, description, categories in _MAPPED_EXPENSES:
        mapped.update(c.value for c in categories)
        lines.append(ScheduleCLine("Business expenses", line, description, normalize_currency(category_total(categories))))

    other = sum(
        (total.value for category, total in summary.expenses_by_category.items() if category not in mapped),
        start=Decimal(0),
    )
    lines.append(
        ScheduleCLine("Business expenses", "Other expenses", "See other-expenses detail", normalize_currency(other))
    )
    return lines


def other_expense_details(summary: TaxSummary) -> dict[str, Decimal]:
    mapped = {c.value for _, _, categories in _MAPPED_EXPENSES for c in categories}
    return {
        category: total.value
        for category, total in summary.expenses_by_category.items()
        if category not in mapped and total.value != 0
    }


def render_tax_summary(summary: TaxSummary, *, unclassified: int = 0, price_fallbacks: int = 0) -> None:
    year_label = f" ({summary.year})" if summary.year is not None else ""
    lines = [f"Tax summary{year_label} (USD):"]

    if summary.return_of_capital.count:
        lines.append(
            f"  Return of capital: {format_sol(summary.return_of_capital.lamports)} SOL"
            f" = {format_currency(summary.return_of_capital.value)} (non-taxable)"
        )
    lines.append(
        f"  Taxable revenue:   {summary.revenue.count} withdrawal(s)"
        f" {format_sol(summary.revenue.lamports)} SOL = {format_currency(summary.revenue.value)}"
    )
    if summary.reimbursements.count:
        lines.append(
            f"  Reimbursements:    {summary.reimbursements.count} period(s)"
            f" = {format_currency(summary.reimbursements.value)}"
        )

    lines.append("  Expenses:")
    if not summary.expenses_by_category:
        lines.append("    (none)")
    category_width = max((len(category) for category in summary.expenses_by_category), default=0)
    for category, total in summary.expenses_by_category.items():
        lines.append(f"    {category:<{category_width}} {total.count:>4} entries {format_currency(total.value):>12}")
    lines.append(f"    {'Total':<{category_width}} {'':>12} {format_currency(summary.total_expenses):>12}")

    lines.append(f"  Net taxable income: {format_currency(summary.net_taxable_income)}")
    if unclassified:
        lines.append(f"  Warning: {unclassified} transfer(s) could not be classified; review the audit list.")
    if price_fallbacks:
        lines.append(f"  Warning: fallback prices used {price_fallbacks} time(s).")
    print("\n".join(lines))


def render_reconciliation(result: ReconciliationResult) -> None:
    flows = result.cash_flows
    rows = [
        ("Income", format_sol(flows.income)),
        ("Expenses", format_sol(flows.expenses)),
        ("Withdrawals", format_sol(flows.withdrawals)),
        ("Deposits", format_sol(flows.deposits)),
        ("Net cash flow", format_signed_sol(result.net_cash_flow)),
        ("Mark-to-market", format_signed_sol(result.mark_to_market_adjustment)),
        ("Expected", format_signed_sol(result.expected)),
        ("Actual", format_sol(result.actual)),
        ("Difference", format_signed_sol(result.difference)),
    ]
    label_width = max(len(label) for label, _ in rows)
    value_width = max(len(value) for _, value in rows)
    lines = [f"Reconciliation at slot {result.slot} (SOL):"]
    lines.extend(f"  {label:<{label_width}} {value:>{value_width}}" for label, value in rows)
    lines.append(f"  Status: {result.status}")
    print("\n".join(lines))
