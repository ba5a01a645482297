from __future__ import annotations
import csv
import logging
import zipfile
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
from xml.sax import SAXException
import xlrd
from odf import teletype
from odf.namespaces import OFFICENS, TABLENS
from odf.opendocument import load as load_ods
from odf.table import Table, TableRow
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from .errors import SourceUnreadable
from .identity import decode_unit_code
from .layout import LayoutConfig, DEFAULT_LAYOUT
from .model import Grid, MergeSpan, SourceUnit, UNIT_CONFIGS, SUBJECT_CODES

logger = logging.getLogger(__name__)

# What a broken / mislabelled source raises while being opened or read
READ_ERRORS = (
    OSError, ValueError, KeyError, ImportError, zipfile.BadZipFile,
    InvalidFileException, xlrd.XLRDError, SAXException,
)

SheetReader = Callable[[str], Grid]


def _percent_text(v: Any) -> str:
    # 1.0 formatted "0.0%" shows as "100.0 %": keep what the sheet displays
    return f"{float(v) * 100!r} %"
# =========================

# Excel (.xlsx): raw values + merged ranges
# =========================
def _xlsx_value(cell) -> Any:
    v = cell.value
    if isinstance(v, (int, float)) and not isinstance(v, bool) and "%" in (getattr(cell, "number_format", None) or ""):
        return _percent_text(v)
    return v


def _open_xlsx(data: bytes) -> Tuple[List[str], SheetReader]:
    wb = load_workbook(BytesIO(data), read_only=False, data_only=True)

    def read(sheet_name: str) -> Grid:
        # merged cells are NOT filled: the title text stays in the anchor cell only
        ws = wb[sheet_name]
        merges = []
        for r in ws.merged_cells.ranges:
            min_col, min_row, max_col, max_row = r.bounds
            merges.append(MergeSpan(min_row - 1, max_row - 1, min_col - 1, max_col - 1))
        rows = [[_xlsx_value(c) for c in row] for row in ws.iter_rows()]
        return Grid.from_rows(rows, merges=merges)

    return list(wb.sheetnames), read
# =========================

# OpenDocument (.ods): odfpy, spans carried by the anchor cell
# =========================
_ODS_CELLS = {(TABLENS, "table-cell"), (TABLENS, "covered-table-cell")}


def _ods_int(el, attr: str) -> int:
    v = el.getAttrNS(TABLENS, attr)
    return int(v) if v else 1


def _ods_value(cell) -> Any:
    vtype = cell.getAttrNS(OFFICENS, "value-type")
    if vtype == "percentage":
        return _percent_text(cell.getAttrNS(OFFICENS, "value"))
    if vtype == "float":
        return float(cell.getAttrNS(OFFICENS, "value"))
    return teletype.extractText(cell)


def _ods_table_to_grid(table) -> Grid:
    """
    Repeated rows / cells are expanded, except trailing blank ones
    (LibreOffice pads sheets with a row repeated a million times).
    """
    rows: List[List[Any]] = []
    merges: List[MergeSpan] = []
    blank_rows = 0
    for row in table.getElementsByType(TableRow):
        values: List[Any] = []
        spans: List[Tuple[int, int, int]] = []
        blank_cells = 0
        for cell in row.childNodes:
            if getattr(cell, "qname", None) not in _ODS_CELLS:
                continue
            repeat = _ods_int(cell, "number-columns-repeated")
            col = len(values) + blank_cells
            col_span = _ods_int(cell, "number-columns-spanned")
            row_span = _ods_int(cell, "number-rows-spanned")
            if col_span > 1 or row_span > 1:
                spans.append((col, col_span, row_span))
            value = _ods_value(cell)
            if value == "":
                blank_cells += repeat
                continue
            values.extend([""] * blank_cells)
            blank_cells = 0
            values.extend([value] * repeat)

        row_repeat = _ods_int(row, "number-rows-repeated")
        if not values:
            blank_rows += row_repeat
            continue
        rows.extend([[] for _ in range(blank_rows)])
        blank_rows = 0
        for _ in range(row_repeat):
            r = len(rows)
            rows.append(list(values))
            for col, col_span, row_span in spans:
                merges.append(MergeSpan(r, r + row_span - 1, col, col + col_span - 1))

    return Grid.from_rows(rows, merges=merges)


def _open_ods(data: bytes) -> Tuple[List[str], SheetReader]:
    doc = load_ods(BytesIO(data))
    tables = {t.getAttrNS(TABLENS, "name"): t for t in doc.spreadsheet.getElementsByType(Table)}

    def read(sheet_name: str) -> Grid:
        return _ods_table_to_grid(tables[sheet_name])

    return list(tables), read
# =========================

# Legacy Excel (.xls): xlrd with formatting info (merges + number formats)
# =========================
def _open_xls(data: bytes) -> Tuple[List[str], SheetReader]:
    book = xlrd.open_workbook(file_contents=data, formatting_info=True)

    def cell_value(cell) -> Any:
        if cell.ctype == xlrd.XL_CELL_NUMBER:
            fmt = book.format_map.get(book.xf_list[cell.xf_index].format_key)
            if fmt is not None and "%" in fmt.format_str:
                return _percent_text(cell.value)
        return cell.value

    def read(sheet_name: str) -> Grid:
        sh = book.sheet_by_name(sheet_name)
        rows = [[cell_value(c) for c in sh.row(r)] for r in range(sh.nrows)]
        # (row_lo, row_hi, col_lo, col_hi), upper bounds exclusive
        merges = [MergeSpan(rlo, rhi - 1, clo, chi - 1) for rlo, rhi, clo, chi in sh.merged_cells]
        return Grid.from_rows(rows, merges=merges)

    return list(book.sheet_names()), read


_OPENERS = {".xlsx": _open_xlsx, ".xlsm": _open_xlsx, ".ods": _open_ods, ".xls": _open_xls}
WORKBOOK_FORMATS = set(_OPENERS)


def open_workbook(data: bytes, suffix: str) -> Tuple[List[str], SheetReader]:
    """
    Parses the workbook once. Returns its sheet names and a reader turning
    one sheet into a Grid; every sheet unit of the workbook shares it.
    """
    opener = _OPENERS.get(suffix.lower())
    if opener is None:
        raise ValueError(f"unsupported workbook format {suffix!r}")
    return opener(data)
# =========================

# CSV: ';' export, ragged rows
# =========================
def _guess_delimiter(sample_text: str) -> str:
    try:
        dialect = csv.Sniffer().sniff(sample_text, delimiters=";,\t|")
        if dialect.delimiter:
            return dialect.delimiter
    except csv.Error:
        pass

    # fallback: average count per line
    candidates = [";", ",", "\t", "|"]
    lines = [ln for ln in sample_text.splitlines() if ln.strip()][:20]
    if not lines:
        return ";"
    scores = {d: sum(ln.count(d) for ln in lines) / len(lines) for d in candidates}
    best = max(scores.items(), key=lambda x: x[1])[0]
    return best if scores.get(best, 0) > 0 else ";"


def _decode(data: bytes, encodings: Sequence[str]) -> str:
    last_err: Optional[UnicodeDecodeError] = None
    for enc in encodings:
        try:
            return data.decode(enc)
        except UnicodeDecodeError as e:
            last_err = e
            continue
    raise ValueError(f"cannot decode CSV with {', '.join(encodings)}: {last_err}")


def read_csv_grid(data: bytes, layout: LayoutConfig = DEFAULT_LAYOUT) -> Grid:
    """
    CSV bytes -> Grid. Read with csv, not pandas.read_csv: the export has
    rows of different lengths (row 1 holds a single cell, merged titles
    leave empty runs) and the python engine refuses lines longer than the
    first one.
    """
    text = _decode(data, layout.csv_encodings)
    rows = list(csv.reader(StringIO(text), delimiter=layout.csv_delimiter))

    # read as a single column -> the file was saved with another separator
    if rows and max(len(r) for r in rows) <= 1:
        delim = _guess_delimiter(text[:65536])
        if delim != layout.csv_delimiter:
            logger.info("CSV: %r gives one column, re-reading with %r", layout.csv_delimiter, delim)
            rows = list(csv.reader(StringIO(text), delimiter=delim))

    return Grid.from_rows(rows)
# =========================

# Units
# =========================
def csv_filename(level: str, subject: str, stem: str = "CIRCO_ecoles") -> str:
    # CIRCO_ecoles_CE1FR.csv
    return f"{stem}_{level.upper()}{SUBJECT_CODES[subject].upper()}.csv"


def _file_reader(path: Path, layout: LayoutConfig):
    def read() -> Grid:
        return read_csv_grid(path.read_bytes(), layout)
    return read


def load_units_from_dir(
    directory: Union[str, Path],
    stem: str = "CIRCO_ecoles",
    layout: LayoutConfig = DEFAULT_LAYOUT,
) -> List[SourceUnit]:
    """
    One unit per configured (level, subject). Missing files are not filtered
    out here: they fail at read time and are reported as unreadable units.
    """
    directory = Path(directory)
    units = []
    for level, subject in UNIT_CONFIGS:
        path = directory / csv_filename(level, subject, stem)
        units.append(SourceUnit(level, subject, path.name, _file_reader(path, layout), check_identity=True))
    return units


def _unreadable_reader(source_name: str, message: str) -> Callable[[], Grid]:
    def read() -> Grid:
        raise SourceUnreadable(source_name, message)
    return read


def load_units_from_workbook(
    source: Union[str, Path, bytes],
    name: Optional[str] = None,
    layout: LayoutConfig = DEFAULT_LAYOUT,
) -> List[SourceUnit]:
    """
    One unit per sheet, after the leading metadata sheet(s). Sheet names
    encode level + subject ("CPFR", "CE1MA"); a name that does not is kept as
    a unit without identity so that the pipeline reports it.
    A workbook that cannot be opened gives a single unit failing at read time.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        name = name or path.name
    else:
        path = None
        name = name or "workbook.xlsx"

    try:
        data = path.read_bytes() if path is not None else source
        sheet_names, read_sheet = open_workbook(data, Path(name).suffix)
    except FileNotFoundError:
        logger.warning("%s: file not found", name)
        return [SourceUnit(None, None, name, _unreadable_reader(name, "file not found"))]
    except READ_ERRORS as e:
        logger.warning("%s: cannot open workbook (%s: %s)", name, type(e).__name__, e)
        return [SourceUnit(None, None, name, _unreadable_reader(name, f"{type(e).__name__}: {e}"))]

    skipped = sheet_names[: layout.skipped_leading_sheets]
    if skipped:
        logger.info("%s: skipping metadata sheet(s) %s", name, ", ".join(skipped))

    units = []
    for sheet in sheet_names[layout.skipped_leading_sheets:]:
        decoded = decode_unit_code(sheet)
        level, subject = decoded if decoded else (None, None)
        units.append(SourceUnit(
            level,
            subject,
            f"{name}[{sheet}]",
            (lambda s=sheet: read_sheet(s)),
            check_identity=False,
        ))
    return units


def load_units_from_uploads(uploads: Sequence[Any], layout: LayoutConfig = DEFAULT_LAYOUT) -> List[SourceUnit]:
    """
    Streamlit uploads (anything with ``.name`` and ``.getvalue()``).
    CSV names carry the unit code (CIRCO_ecoles_CM1MA.csv); workbooks expand
    to one unit per sheet.
    """
    units: List[SourceUnit] = []
    for up in uploads:
        name = up.name
        data = up.getvalue()
        suffix = Path(name).suffix.lower()

        if suffix in WORKBOOK_FORMATS:
            units.extend(load_units_from_workbook(data, name=name, layout=layout))
            continue

        decoded = decode_unit_code(Path(name).stem)
        level, subject = decoded if decoded else (None, None)
        units.append(SourceUnit(
            level,
            subject,
            name,
            (lambda d=data: read_csv_grid(d, layout)),
            check_identity=True,
        ))

    return units
