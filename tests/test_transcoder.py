"""
Tests for the spreadsheet CSV transcoder.

All flows run against the in-memory store; files go to pytest's tmp_path.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from finantech.config import DatabaseSettings, ExportSettings
from finantech.models.expense import Expense
from finantech.services.spreadsheet import (
    FISCAL_MONTHS,
    CsvFormatError,
    ExportFileStore,
    ExportMatrix,
    SpreadsheetTranscoder,
    fiscal_calendar,
    parse_delimited_line,
    resolve_import_year,
)
from finantech.services.storage import (
    InMemoryExpenseStorage,
    SQLiteExpenseStorage,
    StorageError,
)


TITLE = "Danillo Gastos Mensais"
HEADER = (
    ",,A quem:,Abril ,Maio ,Junho ,Julho ,Agosto ,Setembro ,Outubro ,"
    "Novembro ,Dezembro ,Janeiro ,Fevereiro ,Março ,Abril "
)


def run_async(coro):
    """Run a coroutine to completion."""
    return asyncio.run(coro)


def make_expense(origin, amount, month, year, paid=False):
    return Expense(
        origin=origin,
        amount=Decimal(amount),
        paid=paid,
        month=month,
        year=year,
        created_at=datetime(2025, 1, 1),
    )


def cells(value_by_position):
    """Render 13 quoted cells, "0" unless given."""
    return "".join(
        f',"{value_by_position.get(position, "0")}"' for position in range(13)
    )


@pytest.fixture
def storage():
    return InMemoryExpenseStorage()


@pytest.fixture
def transcoder(storage, tmp_path):
    file_store = ExportFileStore(ExportSettings(directory=str(tmp_path)))
    return SpreadsheetTranscoder(storage, file_store=file_store, title=TITLE)


class TestParseDelimitedLine:

    def test_plain_cells(self):
        assert parse_delimited_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_delimiter_is_kept(self):
        assert parse_delimited_line(',,Santander,"1500,50"') == ["", "", "Santander", "1500,50"]

    def test_trailing_empty_field_is_emitted(self):
        assert parse_delimited_line('a,') == ["a", ""]
        assert parse_delimited_line('"150,00",""') == ["150,00", ""]

    def test_empty_line(self):
        assert parse_delimited_line("") == [""]

    def test_quotes_are_dropped_not_escaped(self):
        assert parse_delimited_line('"a""b",c') == ["ab", "c"]


class TestFiscalCalendar:

    def test_sequence(self):
        assert len(FISCAL_MONTHS) == 13
        assert FISCAL_MONTHS[0] == FISCAL_MONTHS[12] == "Abril"
        assert FISCAL_MONTHS[9] == "Janeiro"

    def test_calendar_months(self):
        calendar = fiscal_calendar(2025)
        assert calendar[0] == (4, 2025)
        assert calendar[8] == (12, 2025)
        assert calendar[9] == (1, 2026)
        assert calendar[11] == (3, 2026)
        assert calendar[12] == (4, 2026)

    @pytest.mark.parametrize("month,position,expected", [
        (4, 0, 2025),
        (12, 8, 2025),
        (1, 9, 2026),
        (3, 11, 2026),
        (4, 12, 2026),
        (3, 2, 2026),
        (5, 10, 2025),
        (4, 9, 2026),
    ])
    def test_resolve_import_year(self, month, position, expected):
        assert resolve_import_year(month, position, 2025) == expected


class TestExportMatrix:

    def test_april_columns_are_independent(self):
        matrix = ExportMatrix(["Inter"])
        matrix.add("Inter", 0, Decimal("10"))
        matrix.add("Inter", 12, Decimal("20"))
        row = matrix.row("Inter")
        assert row[0] == Decimal("10")
        assert row[12] == Decimal("20")

    def test_totals_only_cover_listed_origins(self):
        matrix = ExportMatrix(["Inter"])
        matrix.add("Inter", 3, Decimal("10"))
        matrix.add("Unknown", 3, Decimal("99"))
        assert matrix.totals()[3] == Decimal("10")


class TestExport:

    def test_layout(self, storage, transcoder):
        """One unpaid and one paid expense in December."""
        run_async(storage.insert_expense(make_expense("Santander", "1500.50", 12, 2025)))
        run_async(storage.insert_expense(make_expense("Inter", "300.00", 12, 2025, paid=True)))

        document = run_async(transcoder.render_export(2025))
        lines = document.split("\n")

        assert lines[:9] == [",,,,,,,,,,,,,,,"] * 9
        assert lines[9] == ",,Danillo Gastos Mensais,,,,,,,,,,,,,"
        assert lines[10] == HEADER
        # Origins listed regardless of paid status, paid amounts excluded
        assert lines[11] == ",,Inter" + cells({})
        assert lines[12] == ",,Santander" + cells({8: "1500,50"})
        assert lines[13] == ",,Total" + cells({8: "1500,50"})
        assert lines[14] == ""
        assert len(lines) == 15

    def test_fiscal_year_boundaries(self, storage, transcoder):
        for expense in [
            make_expense("Pai", "100", 4, 2025),
            make_expense("Pai", "200", 4, 2026),
            make_expense("Pai", "50", 1, 2026),
            make_expense("Pai", "999", 3, 2025),   # previous fiscal year
            make_expense("Pai", "999", 5, 2026),   # next fiscal year
        ]:
            run_async(storage.insert_expense(expense))

        lines = run_async(transcoder.render_export(2025)).split("\n")
        assert lines[11] == ",,Pai" + cells({0: "100,00", 9: "50,00", 12: "200,00"})

    def test_amounts_are_summed_per_column(self, storage, transcoder):
        run_async(storage.insert_expense(make_expense("Inter", "10.10", 6, 2025)))
        run_async(storage.insert_expense(make_expense("Inter", "0.20", 6, 2025)))
        run_async(storage.insert_expense(make_expense("Nubank", "5", 6, 2025)))

        lines = run_async(transcoder.render_export(2025)).split("\n")
        assert lines[11] == ",,Inter" + cells({2: "10,30"})
        assert lines[12] == ",,Nubank" + cells({2: "5,00"})
        assert lines[13] == ",,Total" + cells({2: "15,30"})

    def test_empty_store(self, transcoder):
        lines = run_async(transcoder.render_export(2025)).split("\n")
        assert lines[10] == HEADER
        assert lines[11] == ",,Total" + cells({})

    def test_export_writes_file(self, storage, transcoder, tmp_path):
        run_async(storage.insert_expense(make_expense("Santander", "1500.50", 12, 2025)))

        path = run_async(transcoder.export_csv(2025))

        written = Path(path)
        assert written.is_absolute()
        assert written.parent == tmp_path.resolve()
        assert written.name.startswith("finantech_export_")
        assert written.suffix == ".csv"
        assert written.read_text(encoding="utf-8") == run_async(transcoder.render_export(2025))

    def test_default_year_is_current(self, storage, transcoder):
        this_year = datetime.now().year
        run_async(storage.insert_expense(make_expense("Inter", "1", 4, this_year)))

        lines = run_async(transcoder.render_export()).split("\n")
        assert lines[11] == ",,Inter" + cells({0: "1,00"})


class TestImport:

    def test_minimal_document(self, storage, transcoder):
        content = ',,A quem:,Abril ,Maio \n,,Santander,"150,00",""\n'

        assert run_async(transcoder.import_csv(content, 2025)) == 1

        [expense] = storage.expenses
        assert expense.origin == "Santander"
        assert expense.month == 4
        assert expense.year == 2025
        assert expense.amount == Decimal("150.00")
        assert expense.paid is False

    def test_missing_header_raises(self, storage, transcoder):
        content = ',,Santander,"150,00"\n,,Total,"150,00"\n'

        with pytest.raises(CsvFormatError):
            run_async(transcoder.import_csv(content, 2025))
        assert storage.expenses == []

    def test_second_import_inserts_nothing(self, storage, transcoder):
        content = ',,A quem:,Abril ,Maio \n,,Santander,"150,00","20,00"\n'

        assert run_async(transcoder.import_csv(content, 2025)) == 2
        assert run_async(transcoder.import_csv(content, 2025)) == 0
        assert len(storage.expenses) == 2

    def test_duplicates_match_case_insensitively(self, storage, transcoder):
        run_async(storage.insert_expense(make_expense("santander", "1", 4, 2025)))
        content = ',,A quem:,Abril \n,,Santander,"150,00"\n'

        assert run_async(transcoder.import_csv(content, 2025)) == 0
        assert storage.expenses[0].amount == Decimal("1")

    def test_zero_blank_and_unreadable_cells_are_skipped(self, storage, transcoder):
        content = ',,A quem:,Abril ,Maio ,Junho ,Julho \n,,Inter,"0","","abc","7,5"\n'

        assert run_async(transcoder.import_csv(content, 2025)) == 1
        [expense] = storage.expenses
        assert expense.month == 7
        assert expense.amount == Decimal("7.5")

    def test_next_year_columns(self, storage, transcoder):
        values = {9: "10,00", 11: "30,00", 12: "40,00"}
        content = HEADER + "\n,,Pai" + cells(values) + "\n,,Total" + cells(values) + "\n"

        assert run_async(transcoder.import_csv(content, 2025)) == 3
        found = {(e.month, e.year): e.amount for e in storage.expenses}
        assert found == {
            (1, 2026): Decimal("10.00"),
            (3, 2026): Decimal("30.00"),
            (4, 2026): Decimal("40.00"),
        }

    def test_stops_at_total_line(self, storage, transcoder):
        content = (
            ',,A quem:,Abril \n'
            ',,Inter,"1,00"\n'
            ',,Total,"1,00"\n'
            ',,Nubank,"2,00"\n'
        )
        assert run_async(transcoder.import_csv(content, 2025)) == 1
        assert [e.origin for e in storage.expenses] == ["Inter"]

    def test_skips_preamble_and_blank_lines(self, storage, transcoder):
        content = (
            ",,,,,,,,,,,,,,,\n" * 9
            + ",,Title,,,,,,,,,,,,,\n"
            + ',,A quem:,Maio \n'
            + "\n"
            + ',,Inter,"1,00"\n'
        )
        assert run_async(transcoder.import_csv(content, 2025)) == 1
        assert storage.expenses[0].month == 5

    def test_windows_line_endings(self, storage, transcoder):
        content = ',,A quem:,Abril ,Maio \r\n,,Inter,"1,00","2,00"\r\n'
        assert run_async(transcoder.import_csv(content, 2025)) == 2

    def test_extra_cells_beyond_header_are_ignored(self, storage, transcoder):
        content = ',,A quem:,Abril \n,,Inter,"1,00","2,00","3,00"\n'
        assert run_async(transcoder.import_csv(content, 2025)) == 1

    def test_row_without_origin_is_skipped(self, storage, transcoder):
        content = ',,A quem:,Abril \n,,"1,00","2,00"\n'
        assert run_async(transcoder.import_csv(content, 2025)) == 0

    def test_numeric_cells_before_origin_are_passed_over(self, storage, transcoder):
        # The first non-numeric cell is the origin, so "2025" cannot be one
        content = ',,A quem:,Abril \n,,2025,Santander,"5,00"\n'

        assert run_async(transcoder.import_csv(content, 2025)) == 1
        assert storage.expenses[0].origin == "Santander"

    def test_unknown_month_name_defaults_to_january(self, storage, transcoder):
        content = ',,A quem:,April \n,,Inter,"1,00"\n'

        run_async(transcoder.import_csv(content, 2025))
        [expense] = storage.expenses
        assert (expense.month, expense.year) == (1, 2026)

    def test_year_zero_is_taken_literally(self, storage, transcoder):
        content = ',,A quem:,Abril \n,,Inter,"1,00"\n'

        assert run_async(transcoder.import_csv(content, 0)) == 1
        assert storage.expenses[0].year == 0

    def test_import_file(self, storage, transcoder, tmp_path):
        path = tmp_path / "planilha.csv"
        path.write_text(',,A quem:,Março \n,,Inter,"12,34"\n', encoding="utf-8")

        assert run_async(transcoder.import_file(path, 2025)) == 1
        assert (storage.expenses[0].month, storage.expenses[0].year) == (3, 2026)

    def test_storage_failure_propagates_and_keeps_prior_inserts(self, tmp_path):
        class FailingStorage(InMemoryExpenseStorage):
            async def insert_expense(self, expense):
                if self.expenses:
                    raise StorageError("disk full")
                return await super().insert_expense(expense)

        storage = FailingStorage()
        transcoder = SpreadsheetTranscoder(
            storage,
            file_store=ExportFileStore(ExportSettings(directory=str(tmp_path))),
            title=TITLE,
        )
        content = ',,A quem:,Abril ,Maio \n,,Inter,"1,00","2,00"\n'

        with pytest.raises(StorageError, match="disk full"):
            run_async(transcoder.import_csv(content, 2025))
        assert len(storage.expenses) == 1




@pytest.fixture(params=["sqlite", "memory"])
def open_store(request, tmp_path):
    """Factory for empty stores of one kind; SQLite ones get their own file."""
    opened = []

    def factory(expenses=()):
        if request.param == "memory":
            store = InMemoryExpenseStorage()
        else:
            settings = DatabaseSettings(path=str(tmp_path / f"gastos_{len(opened)}.db"))
            store = SQLiteExpenseStorage(settings)
            opened.append(store)
        for expense in expenses:
            run_async(store.insert_expense(expense))
        return store

    yield factory
    for store in opened:
        store.close()


def fiscal_year_expenses(storage, year=2025):
    """Every stored expense of the fiscal year starting in April of `year`."""
    return [
        expense
        for month, calendar_year in fiscal_calendar(year)
        for expense in run_async(storage.list_expenses(month, calendar_year))
    ]


class TestRoundTrip:

    def export_then_import(self, source, target, tmp_path):
        file_store = ExportFileStore(ExportSettings(directory=str(tmp_path)))
        path = run_async(
            SpreadsheetTranscoder(source, file_store=file_store, title=TITLE).export_csv(2025)
        )
        importer = SpreadsheetTranscoder(target, file_store=file_store, title=TITLE)
        return importer, path

    def test_export_then_import_reproduces_unpaid_sums(self, open_store, tmp_path):
        source = open_store([
            make_expense("Santander", "1500.50", 12, 2025),
            make_expense("Santander", "0.25", 4, 2025),
            make_expense("Santander", "10", 4, 2026),
            make_expense("Inter", "300", 12, 2025, paid=True),
            make_expense("Inter", "12.345", 2, 2026),
            make_expense("Pai", "75", 9, 2025),
        ])
        target = open_store()
        importer, path = self.export_then_import(source, target, tmp_path)

        assert run_async(importer.import_file(path, 2025)) == 5

        imported = fiscal_year_expenses(target)
        assert {(e.origin, e.month, e.year): e.amount for e in imported} == {
            ("Santander", 12, 2025): Decimal("1500.50"),
            ("Santander", 4, 2025): Decimal("0.25"),
            ("Santander", 4, 2026): Decimal("10.00"),
            ("Inter", 2, 2026): Decimal("12.35"),
            ("Pai", 9, 2025): Decimal("75.00"),
        }
        assert all(not e.paid for e in imported)

    def test_reimport_inserts_nothing(self, open_store, tmp_path):
        source = open_store([
            make_expense("Santander", "100", 5, 2025),
            make_expense("Inter", "200", 2, 2026),
        ])
        target = open_store()
        importer, path = self.export_then_import(source, target, tmp_path)

        assert run_async(importer.import_file(path, 2025)) == 2
        assert run_async(importer.import_file(path, 2025)) == 0
        assert len(fiscal_year_expenses(target)) == 2

    def test_reimport_into_source_inserts_nothing(self, open_store, tmp_path):
        source = open_store([make_expense("Santander", "100", 5, 2025)])
        importer, path = self.export_then_import(source, source, tmp_path)

        assert run_async(importer.import_file(path, 2025)) == 0
        assert len(fiscal_year_expenses(source)) == 1

    def test_word_like_number_origins_survive(self, open_store, tmp_path):
        source = open_store([
            make_expense("Nan", "10", 5, 2025),
            make_expense("Inf", "20", 6, 2025),
            make_expense("Infinity", "30", 7, 2025),
        ])
        target = open_store()
        importer, path = self.export_then_import(source, target, tmp_path)

        assert run_async(importer.import_file(path, 2025)) == 3
        assert sorted(e.origin for e in fiscal_year_expenses(target)) == ["Inf", "Infinity", "Nan"]

    def test_accented_origin_duplicates_match_any_case(self, open_store, tmp_path):
        target = open_store([make_expense("Itaú", "1", 4, 2025)])
        importer = SpreadsheetTranscoder(
            target,
            file_store=ExportFileStore(ExportSettings(directory=str(tmp_path))),
            title=TITLE,
        )
        content = ',,A quem:,Abril \n,,ITAÚ,"150,00"\n'

        assert run_async(importer.import_csv(content, 2025)) == 0
        [expense] = fiscal_year_expenses(target)
        assert expense.amount == Decimal("1")


class TestOriginCells:

    @pytest.mark.parametrize("cell", ["nan", "Nan", "Inf", "sNaN", "1_000", "١٢", "Itaú"])
    def test_non_numerals_can_be_origins(self, cell):
        content = f',,A quem:,Abril \n,,{cell},"5,00"\n'
        storage = InMemoryExpenseStorage()
        transcoder = SpreadsheetTranscoder(storage, title=TITLE)

        assert run_async(transcoder.import_csv(content, 2025)) == 1
        assert storage.expenses[0].origin == cell

    @pytest.mark.parametrize("cell", ["12", "-3", "1,5", "1e3", " 7 "])
    def test_numerals_are_not_origins(self, cell):
        content = f',,A quem:,Abril \n,,{cell},"5,00"\n'
        storage = InMemoryExpenseStorage()
        transcoder = SpreadsheetTranscoder(storage, title=TITLE)

        assert run_async(transcoder.import_csv(content, 2025)) == 0
