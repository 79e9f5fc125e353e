"""
Spreadsheet CSV Transcoder

Converts expenses to and from the CSV layout of the user's own
spreadsheet, so the file can be pasted straight into it:

    <9 placeholder lines>
    ,,<Title>,,,,,,,,,,,,,
    ,,A quem:,Abril ,Maio ,...,Março ,Abril
    ,,Santander,"0","1500,50",...
    ,,Total,"0","1500,50",...

Columns follow the fiscal year: April of the reference year through
March of the next, plus April of the next year again as a 13th column.
The two "Abril" columns share a label but hold different months.

DESIGN DECISION: Import is forgiving, export is exact.
Unreadable cells import as nothing; the only hard failure is a file
without the "A quem:" header, because then nothing can be mapped.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

import structlog

from finantech.config import ExportSettings, get_settings
from finantech.models.expense import MONTH_NUMBERS, Expense
from finantech.services.storage import ExpenseStorageInterface
from finantech.utils.currency import format_csv_amount


DELIMITER = ","
QUOTE = '"'

HEADER_MARKER = "A quem:"
TOTAL_LABEL = "Total"

PREAMBLE_LINES = 9
ROW_WIDTH = 16
BLANK_LINE = DELIMITER * (ROW_WIDTH - 1)

FISCAL_MONTHS = (
    "Abril",
    "Maio",
    "Junho",
    "Julho",
    "Agosto",
    "Setembro",
    "Outubro",
    "Novembro",
    "Dezembro",
    "Janeiro",
    "Fevereiro",
    "Março",
    "Abril",
)

# Columns from this position on belong to the following calendar year
NEXT_YEAR_POSITION = 9

ZERO = Decimal("0")

NUMBER_PATTERN = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\Z", re.ASCII)

logger = structlog.get_logger(__name__)


class CsvFormatError(ValueError):
    """The document is not in the spreadsheet layout (no header line)."""
    pass


def parse_delimited_line(line: str) -> list[str]:
    """
    Split one CSV line into cells.

    A quote toggles quoted mode and is dropped; a comma only separates
    cells outside quotes. The last cell is always emitted. Doubled
    quotes are not treated as escapes.

    Example:
        ',,Santander,"1500,50"' -> ['', '', 'Santander', '1500,50']
    """
    cells = []
    current = []
    in_quotes = False

    for char in line:
        if char == QUOTE:
            in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            cells.append("".join(current))
            current = []
        else:
            current.append(char)

    cells.append("".join(current))
    return cells


def fiscal_calendar(year: int) -> list[tuple[int, int]]:
    """(calendar month, calendar year) of each of the 13 fiscal columns."""
    return [
        (MONTH_NUMBERS[name], year if position < NEXT_YEAR_POSITION else year + 1)
        for position, name in enumerate(FISCAL_MONTHS)
    ]


def resolve_import_year(month: int, position: int, year: int) -> int:
    """
    Calendar year for a month read from column `position` of an import.

    January-April found after December belong to the next year, and
    January-March always do.
    """
    if 1 <= month <= 4 and position >= NEXT_YEAR_POSITION:
        return year + 1
    if 1 <= month <= 3:
        return year + 1
    return year


def _parse_number(text: str) -> Optional[Decimal]:
    """
    Parse a cell as a number with a decimal comma. None if it isn't one.

    Only plain ASCII numerals count: "nan", "Inf", "1_000" or non-ASCII
    digits are text, so such cells can still be origins.
    """
    candidate = text.strip().replace(",", ".")
    if not NUMBER_PATTERN.match(candidate):
        return None
    try:
        return Decimal(candidate)
    except InvalidOperation:
        return None


def _parse_amount(text: str) -> Decimal:
    """Cell amount; anything unreadable counts as zero."""
    value = _parse_number(text)
    if value is None or not value.is_finite():
        return ZERO
    return value


def _is_origin_cell(cell: str) -> bool:
    return bool(cell.strip()) and DELIMITER not in cell and _parse_number(cell) is None


class ExportMatrix:
    """
    Unpaid totals per origin and fiscal column, built for one export.

    Columns are positional, so the two April columns never mix.
    """

    def __init__(self, origins: list[str]):
        self.origins = list(origins)
        self._cells: dict[str, list[Decimal]] = {
            origin: [ZERO] * len(FISCAL_MONTHS) for origin in self.origins
        }

    def add(self, origin: str, position: int, amount: Decimal) -> None:
        row = self._cells.setdefault(origin, [ZERO] * len(FISCAL_MONTHS))
        row[position] += amount

    def row(self, origin: str) -> list[Decimal]:
        return list(self._cells.get(origin, [ZERO] * len(FISCAL_MONTHS)))

    def totals(self) -> list[Decimal]:
        """Column sums over the listed origins."""
        totals = [ZERO] * len(FISCAL_MONTHS)
        for origin in self.origins:
            for position, amount in enumerate(self.row(origin)):
                totals[position] += amount
        return totals


class ExportFileStore:
    """Reads and writes CSV documents on the local filesystem (UTF-8)."""

    def __init__(self, settings: Optional[ExportSettings] = None):
        self._settings = settings or get_settings().export

    def new_export_path(self) -> Path:
        timestamp = int(datetime.now().timestamp() * 1000)
        return self._settings.directory_path / f"{self._settings.file_prefix}_{timestamp}.csv"

    def write(self, content: str) -> str:
        """Write a new export file and return its absolute path."""
        path = self.new_export_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return str(path.resolve())

    def read(self, path: Union[str, Path]) -> str:
        return Path(path).read_text(encoding="utf-8")


class SpreadsheetTranscoder:
    """
    Exports unpaid expenses to the spreadsheet CSV and imports them back.

    The storage handle is passed in by the caller; the transcoder keeps no
    state between calls. Storage and file errors propagate unchanged, and
    rows inserted before a failure stay inserted.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        file_store: Optional[ExportFileStore] = None,
        title: Optional[str] = None,
    ):
        self._storage = storage
        self._file_store = file_store or ExportFileStore()
        self._title = title if title is not None else get_settings().export.title

    @property
    def file_store(self) -> ExportFileStore:
        return self._file_store

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def build_matrix(self, year: int) -> ExportMatrix:
        """Collect unpaid amounts of the fiscal year starting in April of `year`."""
        matrix = ExportMatrix(await self._storage.distinct_origins())

        for position, (month, calendar_year) in enumerate(fiscal_calendar(year)):
            for expense in await self._storage.list_expenses(month, calendar_year):
                if expense.paid:
                    continue
                matrix.add(expense.origin, position, expense.amount)

        return matrix

    def render(self, matrix: ExportMatrix) -> str:
        lines = [BLANK_LINE] * PREAMBLE_LINES
        lines.append(f"{DELIMITER}{DELIMITER}{self._title}" + DELIMITER * (ROW_WIDTH - 3))

        header = f"{DELIMITER}{DELIMITER}{HEADER_MARKER}"
        header += "".join(f"{DELIMITER}{name} " for name in FISCAL_MONTHS)
        lines.append(header)

        for origin in matrix.origins:
            lines.append(self._render_row(origin, matrix.row(origin)))
        lines.append(self._render_row(TOTAL_LABEL, matrix.totals()))

        return "\n".join(lines) + "\n"

    def _render_row(self, label: str, amounts: list[Decimal]) -> str:
        cells = "".join(
            f"{DELIMITER}{QUOTE}{format_csv_amount(amount)}{QUOTE}" for amount in amounts
        )
        return f"{DELIMITER}{DELIMITER}{label}{cells}"

    async def render_export(self, year: Optional[int] = None) -> str:
        """Build the CSV document without writing it anywhere."""
        if year is None:
            year = date.today().year
        return self.render(await self.build_matrix(year))

    async def export_csv(self, year: Optional[int] = None) -> str:
        """
        Export unpaid expenses of the fiscal year starting in April of `year`.

        Args:
            year: Reference year (defaults to the current year)

        Returns:
            Absolute path of the written file
        """
        if year is None:
            year = date.today().year
        matrix = await self.build_matrix(year)
        path = self._file_store.write(self.render(matrix))

        logger.info("csv_exported", path=path, year=year, origins=len(matrix.origins))
        return path

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_csv(self, content: str, year: Optional[int] = None) -> int:
        """
        Import expenses from a spreadsheet CSV document.

        Every positive cell becomes an unpaid expense unless the origin
        already has one in that month. Blank, zero and unreadable cells
        are skipped.

        Args:
            content: The CSV text
            year: Reference year of the first April column
                  (defaults to the current year)

        Returns:
            Number of expenses inserted

        Raises:
            CsvFormatError: If there is no "A quem:" header line
        """
        if year is None:
            year = date.today().year
        lines = content.split("\n")

        header_index = next(
            (index for index, line in enumerate(lines) if HEADER_MARKER in line),
            None,
        )
        if header_index is None:
            raise CsvFormatError(
                f"Invalid CSV format: header line with '{HEADER_MARKER}' not found"
            )

        month_names = self._read_month_names(lines[header_index])

        imported = 0
        skipped = 0
        for raw_line in lines[header_index + 1:]:
            line = raw_line.strip()
            if not line:
                continue
            if TOTAL_LABEL.lower() in line.lower():
                break

            added, duplicates = await self._import_row(line, month_names, year)
            imported += added
            skipped += duplicates

        logger.info(
            "csv_imported",
            year=year,
            imported=imported,
            skipped_duplicates=skipped,
            months=len(month_names),
        )
        return imported

    async def import_file(self, path: Union[str, Path], year: Optional[int] = None) -> int:
        """Read a CSV document from disk and import it."""
        return await self.import_csv(self._file_store.read(path), year)

    def _read_month_names(self, header_line: str) -> list[str]:
        marker = HEADER_MARKER.rstrip(":").lower()
        month_names = []
        found_marker = False

        for cell in parse_delimited_line(header_line):
            name = cell.strip()
            if marker in name.lower():
                found_marker = True
                continue
            if found_marker and name:
                month_names.append(name)

        return month_names

    async def _import_row(
        self,
        line: str,
        month_names: list[str],
        year: int,
    ) -> tuple[int, int]:
        """Import one data line. Returns (inserted, skipped duplicates)."""
        cells = parse_delimited_line(line)

        origin_index = next(
            (index for index, cell in enumerate(cells) if _is_origin_cell(cell)),
            None,
        )
        if origin_index is None:
            return 0, 0
        origin = cells[origin_index].strip()
        if origin.lower() == TOTAL_LABEL.lower():
            return 0, 0

        inserted = 0
        duplicates = 0
        position = 0
        for cell in cells[origin_index + 1:]:
            if position >= len(month_names):
                break

            text = cell.strip()
            if not text:
                position += 1
                continue

            amount = _parse_amount(text)
            if amount > 0:
                month = MONTH_NUMBERS.get(month_names[position], 1)
                expense_year = resolve_import_year(month, position, year)

                if await self._storage.expense_exists(origin, month, expense_year):
                    duplicates += 1
                    logger.debug(
                        "csv_import_duplicate_skipped",
                        origin=origin,
                        month=month,
                        year=expense_year,
                    )
                else:
                    await self._storage.insert_expense(
                        Expense(
                            origin=origin,
                            amount=amount,
                            paid=False,
                            month=month,
                            year=expense_year,
                            created_at=datetime.now(),
                        )
                    )
                    inserted += 1
            position += 1

        return inserted, duplicates
