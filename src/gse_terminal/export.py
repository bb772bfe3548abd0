"""CSV export of the financial tables."""

from __future__ import annotations

import csv
import io
from typing import Any

from gse_terminal.models import FinancialData
from gse_terminal.tables import FinancialTables, build_financial_tables

EXPORT_FILENAME = "financial_data_export.csv"
EXPORT_MEDIA_TYPE = "text/csv; charset=utf-8"


def _csv_cell(cell: Any) -> str:
    return "" if cell is None else str(cell)


def tables_to_csv(tables: FinancialTables) -> str:
    """Serialize non-empty tables as title line, header line, rows, blank line.

    Sections run in a fixed order: annual metrics, key ratios, income
    statement, cash flow statement, balance sheet.  Empty sections are
    skipped together with their title.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for table in tables.export_order():
        if not table.rows:
            continue
        writer.writerow([table.title])
        writer.writerow(table.headers)
        for row in table.rows:
            writer.writerow([_csv_cell(c) for c in row])
        writer.writerow([])
    return buf.getvalue()


def export_csv(data: FinancialData) -> str:
    return tables_to_csv(build_financial_tables(data))
