from __future__ import annotations
import logging
from typing import Dict, List, Optional, Sequence
from .layout import LayoutConfig, DEFAULT_LAYOUT
from .model import CompetencyKey, CompetencySpan, Grid, RowRecord, normalize_competency_name
from .numeric import parse_percentage
from .utils import cell_text, contains_any

logger = logging.getLogger(__name__)


def _looks_like_school(row: Sequence[str], layout: LayoutConfig) -> bool:
    # UAI codes are 8 characters ("0070116N"); header and trailer rows are not schools
    uai = cell_text(row[0]) if len(row) > 0 else ""
    name = cell_text(row[1]) if len(row) > 1 else ""
    if len(uai) < layout.min_id_length or not name:
        return False
    return not contains_any(uai, layout.header_id_markers)


def locate_first_data_row(grid: Grid, after_row: int, layout: LayoutConfig = DEFAULT_LAYOUT) -> int:
    for r in range(after_row + 1, grid.n_rows):
        if _looks_like_school(grid.row(r), layout):
            return r
    logger.warning(
        "no school row after header row %d, defaulting to row index %d",
        after_row, layout.default_data_row,
    )
    return layout.default_data_row


def map_row(
    row: Sequence[str],
    spans: List[CompetencySpan],
    level: str,
    subject: str,
    layout: LayoutConfig = DEFAULT_LAYOUT,
    unparsable: Optional[List[CompetencyKey]] = None,
) -> Optional[RowRecord]:
    """
    One school row -> RowRecord(id, name, results).
    None for blank / "Total" / "Circonscription" rows. Cells that do not parse
    are left out of ``results``; non-blank ones are appended to ``unparsable``
    when given.
    """
    uai = cell_text(row[0]) if len(row) > 0 else ""
    name = cell_text(row[1]) if len(row) > 1 else ""
    if not uai or contains_any(uai, layout.trailer_markers):
        return None

    results: Dict[CompetencyKey, float] = {}
    for span in spans:
        key = CompetencyKey(level, subject, normalize_competency_name(span.name, layout.key_max_length))
        raw = row[span.resolved_value_column] if span.resolved_value_column < len(row) else None
        value = parse_percentage(raw)
        if value is None:
            # blank cells are missing data, not unparsable data
            if unparsable is not None and cell_text(raw):
                unparsable.append(key)
            continue
        results[key] = value

    return RowRecord(uai, name, results)
