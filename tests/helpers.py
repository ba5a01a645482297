"""Builders for ORACE-like export grids used across the test modules."""
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from odf.opendocument import OpenDocumentSpreadsheet
from odf.table import CoveredTableCell, Table, TableCell, TableRow
from odf.text import P
from openpyxl import Workbook

from orace.model import Grid, MergeSpan, SUBJECT_CODES

WIDTH = 6
FIRST_BLOCK = 2
GROUPS = ["Groupe à besoins", "", "Groupe fragile", "", "Groupe satisfaisant", ""]
LABELS = ["Nombre d'élèves", "%", "Nombre d'élèves", "%", "Nombre d'élèves", "%"]

COMPETENCIES = [
    "Lecture de mots (10 points)",
    "Compréhension de phrases lues par l'enseignant",
]

SCHOOLS = [
    ("0070116N", "Ecole Test", ["62,5", "40 %"]),
    ("0070200A", "Ecole des Tilleuls", ["0.5", "75"]),
    ("0070300B", "Ecole du Pont", ["", "n.c."]),
]


def export_rows(
    level: str = "CE1",
    subject: str = "francais",
    competencies: Sequence[str] = COMPETENCIES,
    schools: Sequence[Tuple[str, str, Sequence[str]]] = SCHOOLS,
    identity: Optional[str] = None,
) -> List[List[str]]:
    """
    Row 1 identity, row 3 titles, row 7 groups, row 8 count/% labels,
    schools from row 11, trailer row last.
    """
    n_cols = FIRST_BLOCK + WIDTH * len(competencies)
    rows = [[""] * n_cols for _ in range(10)]
    rows[0][0] = identity if identity is not None else f"Evaluation {level}{SUBJECT_CODES[subject].upper()} - Repères 2025"
    rows[1][0] = "Circonscription de Privas"
    rows[2][0] = "UAI"
    rows[2][1] = "Ecole"
    for i, title in enumerate(competencies):
        start = FIRST_BLOCK + WIDTH * i
        rows[2][start] = title
        rows[6][start:start + WIDTH] = GROUPS
        rows[7][start:start + WIDTH] = LABELS
    for uai, name, values in schools:
        row = [uai, name]
        for v in values:
            row += ["3", "10,0", "5", "20,0", "12", v]
        rows.append(row)
    rows.append(["Total circonscription", ""] + ["99"] * (n_cols - 2))
    return rows


def export_merges(n_competencies: int = len(COMPETENCIES)) -> List[MergeSpan]:
    merges = [MergeSpan(0, 0, 0, 5)]
    for i in range(n_competencies):
        start = FIRST_BLOCK + WIDTH * i
        merges.append(MergeSpan(2, 2, start, start + WIDTH - 1))
        for g in range(0, WIDTH, 2):
            merges.append(MergeSpan(6, 6, start + g, start + g + 1))
    return merges


def export_grid(with_merges: bool = False, **kwargs) -> Grid:
    rows = export_rows(**kwargs)
    merges = export_merges(len(kwargs.get("competencies", COMPETENCIES))) if with_merges else None
    return Grid.from_rows(rows, merges=merges)


def scenario_grid(with_merges: bool = False) -> Grid:
    """The 12-row example: one competency over columns 2-5."""
    rows = [[""] * 6 for _ in range(11)]
    rows[2][2] = "Lecture de mots (10 points)"
    rows[6][4] = "Groupe satisfaisant"
    rows[7][5] = "%"
    rows.append(["0070116N", "Ecole Test", "12", "3", "5,5", "62,5"])
    merges = [MergeSpan(2, 2, 2, 5)] if with_merges else None
    return Grid.from_rows(rows, merges=merges)


def write_csv(directory: Path, rows: List[List[str]], filename: str) -> Path:
    path = Path(directory) / filename
    text = "\n".join(";".join(r) for r in rows) + "\n"
    path.write_text(text, encoding="utf-8")
    return path


def write_workbook(path: Path, sheets: Sequence[Tuple[str, List[List[str]]]], with_merges: bool = True) -> Path:
    wb = Workbook()
    meta = wb.active
    meta.title = "Aide à la lecture"
    meta.append(["Ce classeur contient une feuille par niveau et matière."])
    for title, rows in sheets:
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append([v if v != "" else None for v in row])
        if with_merges:
            n = (len(rows[2]) - FIRST_BLOCK) // WIDTH
            for m in export_merges(n):
                ws.merge_cells(
                    start_row=m.row_start + 1, end_row=m.row_end + 1,
                    start_column=m.col_start + 1, end_column=m.col_end + 1,
                )
    wb.save(path)
    return path


def _ods_cell(value, merge: Optional[MergeSpan]):
    attrs = {}
    if merge is not None:
        attrs["numbercolumnsspanned"] = str(merge.col_end - merge.col_start + 1)
        attrs["numberrowsspanned"] = str(merge.row_end - merge.row_start + 1)
    # floats are written as percentage cells, the way LibreOffice stores "62,5 %"
    if isinstance(value, float):
        cell = TableCell(valuetype="percentage", value=str(value), **attrs)
        cell.addElement(P(text=f"{value * 100:.1f} %"))
    elif value:
        cell = TableCell(valuetype="string", **attrs)
        cell.addElement(P(text=value))
    else:
        cell = TableCell(**attrs)
    return cell


def write_ods(path: Path, sheets: Sequence[Tuple[str, List[list]]], with_merges: bool = True) -> Path:
    doc = OpenDocumentSpreadsheet()
    meta = Table(name="Aide à la lecture")
    tr = TableRow()
    tr.addElement(_ods_cell("Ce classeur contient une feuille par niveau et matière.", None))
    meta.addElement(tr)
    doc.spreadsheet.addElement(meta)

    for title, rows in sheets:
        merges = export_merges((len(rows[2]) - FIRST_BLOCK) // WIDTH) if with_merges else []
        anchors = {(m.row_start, m.col_start): m for m in merges}
        covered = {
            (r, c)
            for m in merges
            for r in range(m.row_start, m.row_end + 1)
            for c in range(m.col_start, m.col_end + 1)
        } - set(anchors)

        table = Table(name=title)
        for r, row in enumerate(rows):
            tr = TableRow()
            for c, value in enumerate(row):
                if (r, c) in covered:
                    tr.addElement(CoveredTableCell())
                else:
                    tr.addElement(_ods_cell(value, anchors.get((r, c))))
            table.addElement(tr)
        doc.spreadsheet.addElement(table)

    doc.save(str(path))
    return path
