from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence
import pandas as pd
from .utils import cell_text, strip_accents

LEVELS = ("CP", "CE1", "CE2", "CM1", "CM2")
SUBJECTS = ("francais", "maths")
SUBJECT_CODES = {"francais": "fr", "maths": "ma"}

# Every (level, subject) pair the export campaign produces, in processing order
UNIT_CONFIGS = [(lvl, subj) for lvl in LEVELS for subj in SUBJECTS]


@dataclass(frozen=True)
class MergeSpan:
    # 0-based, bounds inclusive
    row_start: int
    row_end: int
    col_start: int
    col_end: int

    @property
    def is_horizontal(self) -> bool:
        return self.col_end > self.col_start


class Grid:
    """
    Raw cell text of one sheet / CSV file.
    Cells are strings ("" when empty); ``merges`` is None when the source
    format does not carry merge metadata (CSV, ODS, XLS).
    """

    def __init__(self, cells: pd.DataFrame, merges: Optional[Sequence[MergeSpan]] = None):
        self.cells = cells.apply(lambda col: col.map(cell_text)) if not cells.empty else cells
        self.merges = list(merges) if merges is not None else None

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]], merges: Optional[Sequence[MergeSpan]] = None) -> "Grid":
        # ragged rows are padded with None by pandas
        return cls(pd.DataFrame([list(r) for r in rows], dtype=object), merges=merges)

    @property
    def n_rows(self) -> int:
        return int(self.cells.shape[0])

    @property
    def n_cols(self) -> int:
        return int(self.cells.shape[1])

    @property
    def has_merges(self) -> bool:
        return bool(self.merges)

    def cell(self, r: int, c: int) -> str:
        if r < 0 or c < 0 or r >= self.n_rows or c >= self.n_cols:
            return ""
        return self.cells.iat[r, c]

    def row(self, r: int) -> List[str]:
        if r < 0 or r >= self.n_rows:
            return []
        return self.cells.iloc[r].tolist()


@dataclass(frozen=True)
class CompetencySpan:
    name: str
    column_start: int
    column_end: int
    resolved_value_column: int
    # False when the value column is the column_end guess, not a keyword hit
    confident: bool = True

    @property
    def offset(self) -> int:
        return self.resolved_value_column - self.column_start


_PUNCT_RE = re.compile(r"[^\w\s]")


def normalize_competency_name(name: str, max_length: int = 100) -> str:
    """
    "Lecture de mots (10 points)" -> "Lecture_de_mots_10_points"
    Accents stripped, punctuation dropped, whitespace runs -> "_", bounded length.
    """
    s = strip_accents(cell_text(name))
    s = _PUNCT_RE.sub("", s)
    s = re.sub(r"\s+", "_", s.strip())
    return s[:max_length]


class CompetencyKey(NamedTuple):
    level: str
    subject: str
    name: str

    def __str__(self) -> str:
        return f"{self.level}_{self.subject}_{self.name}"

    @property
    def label(self) -> str:
        return self.name.replace("_", " ")


class RowRecord(NamedTuple):
    id: str
    name: str
    results: Dict[CompetencyKey, float]


@dataclass(frozen=True)
class SchoolRecord:
    id: str
    display_name: str
    results: Mapping[CompetencyKey, float] = field(default_factory=dict)


@dataclass
class SourceUnit:
    """
    One (level, subject) worth of raw data: one CSV file or one workbook sheet.
    ``read`` does the bulk read; it runs inside the unit pipeline so that a
    broken file only takes its own unit down.
    """
    level: Optional[str]
    subject: Optional[str]
    source_name: str
    read: Callable[[], Grid]
    check_identity: bool = False
