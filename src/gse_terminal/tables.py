"""Reshape the financial payload into display tables.

Statement rows carry whatever period keys the model chose ("2023",
"2023 H1", "Q3 2022", ...) and different rows may carry different keys.
Tables therefore take the union of all keys as columns, newest first, and
leave ``None`` in cells a row does not have; ``render_value`` turns those
into "N/A" so columns stay aligned.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, Sequence

from gse_terminal.models import FinancialData, StatementRow, YearlyMetric, YearlyRatio

MISSING = "N/A"

KEY_METRICS_HEADERS = (
    "Year", "Price/Share", "Market Cap", "Shares Outstanding", "Dividend/Share", "YTD Return",
)
KEY_RATIOS_HEADERS = ("Year", "P/E Ratio", "Debt-to-Equity", "Return on Equity", "EPS")

KEY_METRICS_TITLE = "Annual Metrics"
KEY_RATIOS_TITLE = "Key Financial Ratios"
INCOME_STATEMENT_TITLE = "Income Statement Highlights"
CASHFLOW_STATEMENT_TITLE = "Cash Flow Statement Highlights"
BALANCE_SHEET_TITLE = "Statement of Financial Position Highlights"

_CENT = Decimal("0.01")
# Wider numbers are shown as written rather than expanded digit by digit
_MAX_INTEGER_DIGITS = 60
_YEAR = re.compile(r"\d{4}")


# ═══════════════════════════════════════════════════════════════════════════
#  Cell formatting
# ═══════════════════════════════════════════════════════════════════════════

def _to_decimal(value: Any) -> Decimal | None:
    """Parse a cell as a number, tolerating thousands separators.

    The whole cell must be numeric: unlike a prefix parse, "12.5%" or
    "2.1bn" are not numbers here and are shown exactly as the model wrote
    them.
    """
    if isinstance(value, bool):
        return None
    text = str(value).replace(",", "")
    if "_" in text:
        return None
    try:
        num = Decimal(text)
    except InvalidOperation:
        return None
    return num if num.is_finite() else None


def render_value(value: Any) -> str:
    """Format a table cell for display.

    Missing values become "N/A", text passes through untouched, numbers get
    two decimals with thousands separators and negatives are shown in
    accounting parentheses: ``-1234.5 -> "(1,234.50)"``.
    """
    if value is None or value == "" or value == MISSING:
        return MISSING

    num = _to_decimal(value)
    if num is None or num.adjusted() >= _MAX_INTEGER_DIGITS:
        return str(value)

    # Enough digits for every integer place plus the two decimals
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, num.adjusted() + 3)
        cents = abs(num).quantize(_CENT, rounding=ROUND_HALF_UP)
    formatted = f"{cents:,.2f}"
    return f"({formatted})" if num < 0 else formatted


def _label(cell: Any) -> str:
    return "" if cell is None else str(cell)


# ═══════════════════════════════════════════════════════════════════════════
#  Tables
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Table:
    """A titled grid of raw cell values; the first column is the row label."""

    title: str = ""
    headers: tuple[str, ...] = ()
    rows: tuple[tuple[Any, ...], ...] = ()

    def __bool__(self) -> bool:
        return bool(self.rows)

    def formatted_rows(self) -> tuple[tuple[str, ...], ...]:
        return tuple(format_row(row) for row in self.rows)


def format_row(row: Sequence[Any]) -> tuple[str, ...]:
    """Render every cell except the leading label column."""
    if not row:
        return ()
    return (_label(row[0]),) + tuple(render_value(cell) for cell in row[1:])


def statement_period_keys(rows: Iterable[StatementRow]) -> list[str]:
    """Union of period keys across rows, sorted descending (newest first)."""
    keys: dict[str, None] = {}
    for row in rows:
        for key in row.periods:
            keys.setdefault(key, None)
    return sorted(keys, reverse=True)


def prepare_statement_table(rows: Sequence[StatementRow], title: str = "") -> Table:
    """Lay out statement rows under a fixed Metric column plus period columns."""
    if not rows:
        return Table(title=title)

    periods = statement_period_keys(rows)
    grid = []
    for row in rows:
        values = row.periods
        grid.append((row.metric, *(values.get(p) for p in periods)))
    return Table(title=title, headers=("Metric", *periods), rows=tuple(grid))


def _year_sort_key(year: Any) -> tuple[int, int]:
    """Newest year first; rows without a recognisable year go last."""
    if isinstance(year, int) and not isinstance(year, bool):
        return (0, -year)
    if isinstance(year, float) and math.isfinite(year):
        return (0, -int(year))
    m = _YEAR.search(str(year)) if year is not None else None
    if m:
        return (0, -int(m.group()))
    return (1, 0)


def key_metrics_table(metrics: Sequence[YearlyMetric]) -> Table:
    ordered = sorted(metrics, key=lambda m: _year_sort_key(m.year))
    rows = tuple(
        (m.year, m.price_per_share, m.market_cap, m.shares_outstanding,
         m.dividend_per_share, m.ytd_return)
        for m in ordered
    )
    return Table(title=KEY_METRICS_TITLE, headers=KEY_METRICS_HEADERS, rows=rows)


def key_ratios_table(ratios: Sequence[YearlyRatio]) -> Table:
    ordered = sorted(ratios, key=lambda r: _year_sort_key(r.year))
    rows = tuple(
        (r.year, r.pe_ratio, r.debt_to_equity, r.return_on_equity, r.eps)
        for r in ordered
    )
    return Table(title=KEY_RATIOS_TITLE, headers=KEY_RATIOS_HEADERS, rows=rows)


@dataclass(frozen=True)
class FinancialTables:
    key_metrics: Table
    key_ratios: Table
    income_statement: Table
    cashflow_statement: Table
    balance_sheet: Table

    @property
    def has_data(self) -> bool:
        return any(self.export_order())

    def export_order(self) -> tuple[Table, ...]:
        return (
            self.key_metrics, self.key_ratios,
            self.income_statement, self.cashflow_statement, self.balance_sheet,
        )

    def display_order(self) -> tuple[Table, ...]:
        return (
            self.key_ratios, self.key_metrics,
            self.income_statement, self.cashflow_statement, self.balance_sheet,
        )


def build_financial_tables(data: FinancialData) -> FinancialTables:
    """Build all five tables from a decoded ``financialData`` payload."""
    statements = data.statements
    analysis = data.financial_analysis
    return FinancialTables(
        key_metrics=key_metrics_table(data.key_metrics),
        key_ratios=key_ratios_table(analysis.key_ratios if analysis else ()),
        income_statement=prepare_statement_table(
            statements.income_statement, INCOME_STATEMENT_TITLE),
        cashflow_statement=prepare_statement_table(
            statements.cashflow_statement, CASHFLOW_STATEMENT_TITLE),
        balance_sheet=prepare_statement_table(
            statements.balance_sheet, BALANCE_SHEET_TITLE),
    )
