"""
Tabular store adapter

Holds the catalog spreadsheet as a pandas DataFrame. The first sheet of an
.xlsx workbook (read with openpyxl) or a utf-8 .csv file is loaded with every
cell as text; the header row holds the column names.

Saving a table that was loaded from a workbook writes only the changed cells
and added columns back into that workbook, so other sheets, formulas, number
formats and cell types survive the round trip.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import pandas as pd
from openpyxl import load_workbook

from .errors import StructureError
from .models import EXPORT_COLUMNS, REQUIRED_COLUMNS, CatalogRecord

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
DEFAULT_SHEET_NAME = "Products"

# The header occupies spreadsheet row 1, so data row 0 is spreadsheet row 2
FIRST_DATA_ROW = 2


def _is_excel(path: Path) -> bool:
    return path.suffix.lower() in EXCEL_SUFFIXES


def _cell_text(value) -> str:
    """Cell value as text, empty for missing cells"""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value)


def _read_first_sheet(path: Path) -> Tuple[str, pd.DataFrame]:
    """First worksheet as text, one DataFrame row per sheet row below the header"""
    workbook = load_workbook(path, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        sheet_name = sheet.title
        rows = [list(values) for values in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()

    header = rows[0] if rows else []
    while header and _cell_text(header[-1]) == "":
        header.pop()
    columns = [_cell_text(value) or f"Unnamed: {i}" for i, value in enumerate(header)]
    width = len(columns)

    # Blank rows inside the data are kept so row_index maps onto the sheet row
    data = [[_cell_text(value) for value in (row + [None] * width)[:width]] for row in rows[1:]]
    while data and not any(data[-1]):
        data.pop()
    return sheet_name, pd.DataFrame(data, columns=columns, dtype=str)


@dataclass(frozen=True)
class ColumnMap:
    """Column name -> position mapping, built once after the structure check"""
    positions: Dict[str, int]

    def __getitem__(self, name: str) -> int:
        return self.positions[name]

    def __contains__(self, name: str) -> bool:
        return name in self.positions

    @property
    def names(self) -> List[str]:
        return list(self.positions)


class CatalogTable:
    """In-memory catalog table with row access and whole-file persistence"""

    def __init__(
        self,
        df: pd.DataFrame,
        sheet_name: str = DEFAULT_SHEET_NAME,
        source_path: Optional[Path] = None,
    ):
        self._df = df
        self.sheet_name = sheet_name
        self.source_path = source_path
        self.column_map: Optional[ColumnMap] = None
        self._added_columns: List[str] = []
        self._changed_cells: Dict[Tuple[int, str], str] = {}

    @classmethod
    def load(cls, path: Path) -> "CatalogTable":
        """Load the first sheet (or the CSV file) with every cell as text"""
        path = Path(path)
        if _is_excel(path):
            sheet_name, df = _read_first_sheet(path)
        else:
            sheet_name = DEFAULT_SHEET_NAME
            df = pd.read_csv(
                path, dtype=str, keep_default_na=False, skip_blank_lines=False, encoding="utf-8"
            )

        df = df.fillna("")
        df.columns = [_cell_text(column) for column in df.columns]
        logger.info(f"Loaded {len(df)} rows from {path}")
        return cls(df, sheet_name=sheet_name, source_path=path)

    @property
    def columns(self) -> List[str]:
        return list(self._df.columns)

    def __len__(self) -> int:
        return len(self._df)

    def missing_columns(self, required: Iterable[str] = REQUIRED_COLUMNS) -> List[str]:
        present = set(self.columns)
        return [column for column in required if column not in present]

    def validate_structure(self, required: Iterable[str] = REQUIRED_COLUMNS) -> ColumnMap:
        """Check every required column exists by exact name, reporting all absent ones"""
        required = list(required)
        missing = self.missing_columns(required)
        if missing:
            raise StructureError(missing)
        self.column_map = self._build_column_map()
        return self.column_map

    def _build_column_map(self) -> ColumnMap:
        return ColumnMap({name: position for position, name in enumerate(self.columns)})

    def add_column(self, name: str) -> None:
        """Append an empty trailing column, leaving existing columns in place"""
        if name in self.columns:
            return
        self._df[name] = ""
        self._added_columns.append(name)
        if self.column_map is not None:
            self.column_map = self._build_column_map()

    def _position(self, column: str) -> int:
        if self.column_map is not None:
            return self.column_map[column]
        return self.columns.index(column)

    def get_value(self, row_index: int, column: str) -> str:
        return _cell_text(self._df.iat[row_index, self._position(column)])

    def set_value(self, row_index: int, column: str, value: str) -> None:
        self._df.iat[row_index, self._position(column)] = value
        self._changed_cells[(row_index, column)] = value

    def rows(self) -> Iterator[Tuple[int, int, Dict[str, str]]]:
        """Yield (row_index, spreadsheet_row_number, {column: text}) in file order"""
        columns = self.columns
        for row_index, values in enumerate(self._df.itertuples(index=False, name=None)):
            row = {column: _cell_text(value) for column, value in zip(columns, values)}
            yield row_index, row_index + FIRST_DATA_ROW, row

    def save(self, path: Path) -> Path:
        """Write the whole table, replacing any existing file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if _is_excel(path) and self._has_source_workbook():
            self._save_into_workbook(path)
        elif _is_excel(path):
            with pd.ExcelWriter(path, engine="openpyxl") as writer:
                self._df.to_excel(writer, sheet_name=self.sheet_name, index=False)
        else:
            self._df.to_csv(path, index=False, encoding="utf-8")
        logger.info(f"Saved {len(self._df)} rows to {path}")
        return path

    def _has_source_workbook(self) -> bool:
        return (
            self.source_path is not None
            and _is_excel(self.source_path)
            and self.source_path.is_file()
        )

    def _save_into_workbook(self, path: Path) -> None:
        """Patch added columns and changed cells into the source workbook, saved as path"""
        workbook = load_workbook(
            self.source_path, keep_vba=self.source_path.suffix.lower() == ".xlsm"
        )
        try:
            sheet = workbook[self.sheet_name]
            for column in self._added_columns:
                sheet.cell(row=FIRST_DATA_ROW - 1, column=self._position(column) + 1, value=column)
            for (row_index, column), value in self._changed_cells.items():
                sheet.cell(
                    row=row_index + FIRST_DATA_ROW,
                    column=self._position(column) + 1,
                    value=value,
                )
            workbook.save(path)
        finally:
            workbook.close()


def write_catalog(path: Path, records: List[CatalogRecord]) -> Path:
    """Create a fresh catalog file holding the seven export columns in fixed order"""
    df = pd.DataFrame([record.to_row() for record in records], columns=EXPORT_COLUMNS)
    return CatalogTable(df).save(path)
