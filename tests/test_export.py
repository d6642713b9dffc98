"""
Tests for CSV and XLSX ledger export.
"""

import csv
import io
import threading

import pytest
from openpyxl import load_workbook

from tallybook.errors import ValidationError
from tallybook.services import ExportFormat, ExportService
from tallybook.services.export import HEADERS

from .conftest import make_expense, make_income


@pytest.fixture
def service():
    return ExportService()


@pytest.fixture
def income():
    return [make_income(1, "Salary", 1000.0, "2026-10-01")]


@pytest.fixture
def expenses():
    return [
        make_expense(1, "Rent", 400.0, "2026-10-02"),
        make_expense(2, "Food", 50.0, "2026-09-20"),
    ]


class TestCsvExport:
    """Tests for export_to_csv."""

    def test_rows_newest_first(self, service, income, expenses):
        buf = service.export_to_csv(income, expenses)
        rows = list(csv.reader(io.StringIO(buf.getvalue().decode("utf-8-sig"))))

        assert rows[0] == HEADERS
        assert rows[1:] == [
            ["1", "2026-10-02", "expense", "Rent", "400.0", "no", ""],
            ["1", "2026-10-01", "income", "Salary", "1000.0", "no", ""],
            ["2", "2026-09-20", "expense", "Food", "50.0", "no", ""],
        ]

    def test_starts_with_bom(self, service):
        buf = service.export_to_csv([], [])
        assert buf.getvalue().startswith(b"\xef\xbb\xbf")


class TestXlsxExport:
    """Tests for export_to_xlsx."""

    def test_workbook_contents(self, service, income, expenses):
        wb = load_workbook(service.export_to_xlsx(income, expenses))

        assert wb.sheetnames == ["Ledger", "Summary"]
        ledger = wb["Ledger"]
        assert [cell.value for cell in ledger[1]] == HEADERS
        assert ledger.max_row == 4
        assert ledger["D2"].value == "Rent"

        summary = wb["Summary"]
        assert summary["A5"].value == "Income"
        assert summary["C5"].value == 1000.0
        assert summary["C6"].value == 450.0
        assert summary["C8"].value == 550.0


class TestFilename:
    def test_filename(self, service):
        name = service.get_filename(ExportFormat.XLSX)
        assert name.startswith("tallybook_ledger_")
        assert name.endswith(".xlsx")


class TestFacadeExport:
    """Tests for Tallybook.export_ledger."""

    async def test_csv_default(self, book):
        await book.add_income("Salary", 1000)
        result = await book.export_ledger()
        text = result.value.getvalue().decode("utf-8-sig")
        assert "Salary" in text

    async def test_xlsx(self, book):
        await book.add_expense("Rent", 400)
        result = await book.export_ledger("xlsx")
        assert load_workbook(result.value)["Ledger"]["D2"].value == "Rent"

    async def test_unknown_format(self, book):
        result = await book.export_ledger("pdf")
        assert isinstance(result.error, ValidationError)

    async def test_workbook_is_built_off_the_event_loop(self, book, monkeypatch):
        threads = []
        export = book.export_service.export

        def recording_export(export_format, income, expenses):
            threads.append(threading.current_thread())
            return export(export_format, income, expenses)

        monkeypatch.setattr(book.export_service, "export", recording_export)
        result = await book.export_ledger("xlsx")

        assert result.ok
        assert threads and threads[0] is not threading.main_thread()
