"""
Export service for ledger data.

Provides functionality to export income and expenses to XLSX and CSV formats.
"""

import csv
import io
from datetime import datetime
from enum import Enum
from typing import Iterable, cast

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from tallybook.models import EntryKind, LedgerEntry

HEADERS = ["ID", "Date", "Type", "Description", "Amount", "Recurring", "Recurring Day"]


class ExportFormat(str, Enum):
    """Supported export formats."""

    CSV = "csv"
    XLSX = "xlsx"


class ExportService:
    """Service for exporting the ledger to spreadsheet formats."""

    @staticmethod
    def _combine(
        income: Iterable[LedgerEntry], expenses: Iterable[LedgerEntry]
    ) -> list[LedgerEntry]:
        """Income and expenses merged, newest first."""
        entries = list(income) + list(expenses)
        entries.sort(key=lambda e: (e.date, e.kind.value, e.id or 0), reverse=True)
        return entries

    @staticmethod
    def _row(entry: LedgerEntry) -> list:
        return [
            entry.id,
            entry.date,
            entry.kind.value,
            entry.label,
            entry.amount,
            "yes" if entry.is_recurring else "no",
            entry.recurring_date or "",
        ]

    def export_to_csv(
        self, income: Iterable[LedgerEntry], expenses: Iterable[LedgerEntry]
    ) -> io.BytesIO:
        """
        Export the ledger to CSV format.

        Returns:
            BytesIO buffer containing the CSV data
        """
        entries = self._combine(income, expenses)

        buffer = io.BytesIO()
        text_buffer = io.StringIO()

        writer = csv.writer(text_buffer)
        writer.writerow(HEADERS)
        for entry in entries:
            writer.writerow(self._row(entry))

        buffer.write(text_buffer.getvalue().encode("utf-8-sig"))  # BOM for Excel
        buffer.seek(0)

        return buffer

    def export_to_xlsx(
        self, income: Iterable[LedgerEntry], expenses: Iterable[LedgerEntry]
    ) -> io.BytesIO:
        """
        Export the ledger to XLSX format with formatting.

        Returns:
            BytesIO buffer containing the XLSX data
        """
        entries = self._combine(income, expenses)

        wb = Workbook()
        ws = cast(Worksheet, wb.active)
        ws.title = "Ledger"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        income_fill = PatternFill(
            start_color="C6EFCE", end_color="C6EFCE", fill_type="solid"
        )
        expense_fill = PatternFill(
            start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"
        )

        for col, header in enumerate(HEADERS, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = Alignment(horizontal="center")

        for row_idx, entry in enumerate(entries, 2):
            fill = income_fill if entry.kind is EntryKind.INCOME else expense_fill
            for col, value in enumerate(self._row(entry), 1):
                cell = ws.cell(row=row_idx, column=col, value=value)
                cell.fill = fill
            ws.cell(row=row_idx, column=5).number_format = "#,##0.00"

        column_widths = [8, 12, 10, 30, 15, 10, 14]
        for col, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

        ws.freeze_panes = "A2"

        self._add_summary_sheet(wb, entries)

        buffer = io.BytesIO()
        wb.save(buffer)
        buffer.seek(0)

        return buffer

    def _add_summary_sheet(self, wb: Workbook, entries: list[LedgerEntry]):
        """Add a summary sheet with totals and balance."""
        ws = wb.create_sheet(title="Summary")

        header_font = Font(bold=True)
        title_font = Font(bold=True, size=14)

        ws.cell(row=1, column=1, value="Ledger Summary").font = title_font
        ws.cell(
            row=2,
            column=1,
            value=f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}",
        )

        income = [e for e in entries if e.kind is EntryKind.INCOME]
        expenses = [e for e in entries if e.kind is EntryKind.EXPENSE]
        total_income = sum(e.amount for e in income)
        total_expenses = sum(e.amount for e in expenses)

        summary_start = 4
        ws.cell(row=summary_start, column=1, value="Category").font = header_font
        ws.cell(row=summary_start, column=2, value="Count").font = header_font
        ws.cell(row=summary_start, column=3, value="Total").font = header_font

        ws.cell(row=summary_start + 1, column=1, value="Income")
        ws.cell(row=summary_start + 1, column=2, value=len(income))
        ws.cell(row=summary_start + 1, column=3, value=total_income)

        ws.cell(row=summary_start + 2, column=1, value="Expenses")
        ws.cell(row=summary_start + 2, column=2, value=len(expenses))
        ws.cell(row=summary_start + 2, column=3, value=total_expenses)

        ws.cell(row=summary_start + 4, column=1, value="Balance").font = header_font
        ws.cell(row=summary_start + 4, column=3, value=total_income - total_expenses)

        for row in range(summary_start + 1, summary_start + 5):
            ws.cell(row=row, column=3).number_format = "#,##0.00"

        ws.column_dimensions["A"].width = 15
        ws.column_dimensions["B"].width = 10
        ws.column_dimensions["C"].width = 18

    def export(
        self,
        fmt: ExportFormat,
        income: Iterable[LedgerEntry],
        expenses: Iterable[LedgerEntry],
    ) -> io.BytesIO:
        """Export in the given format."""
        if fmt is ExportFormat.CSV:
            return self.export_to_csv(income, expenses)
        return self.export_to_xlsx(income, expenses)

    def get_filename(self, fmt: ExportFormat) -> str:
        """Suggested filename for an export made now."""
        date_str = datetime.now().strftime("%Y%m%d")
        return f"tallybook_ledger_{date_str}.{fmt.value}"
