from __future__ import annotations
import logging
from typing import Optional, Sequence
from .layout import LayoutConfig, DEFAULT_LAYOUT
from .model import Grid
from .utils import norm_text, contains_any

logger = logging.getLogger(__name__)


def _row_has_keyword(row: Sequence[str], keywords: Sequence[str]) -> bool:
    return any(contains_any(v, keywords) for v in row)


def is_competency_title(text: str, layout: LayoutConfig = DEFAULT_LAYOUT) -> bool:
    # Column-category headers ("Compétences", "Exercice", "Scores"...) are not competencies
    t = norm_text(text)
    if len(t) < layout.min_title_length:
        return False
    return not any(m in t for m in layout.structural_markers)


def find_group_row(grid: Grid, layout: LayoutConfig = DEFAULT_LAYOUT) -> Optional[int]:
    """
    Row carrying the group classification labels ("Groupe à besoins",
    "Groupe fragile", "Groupe satisfaisant"). Only the header window is
    scanned: school names deeper in the body may contain anything.
    """
    start, end = layout.group_search_window
    for r in range(max(0, start), min(end, grid.n_rows)):
        if _row_has_keyword(grid.row(r), layout.group_keywords):
            logger.debug("group row found at index %d", r)
            return r
    return None


def find_percentage_row(grid: Grid, group_row: int, layout: LayoutConfig = DEFAULT_LAYOUT) -> Optional[int]:
    # "%" / "nombre d'élèves répondants" labels right under the group row
    end = min(group_row + 1 + layout.percentage_search_depth, grid.n_rows)
    for r in range(group_row + 1, end):
        if _row_has_keyword(grid.row(r), layout.percentage_keywords):
            logger.debug("percentage row found at index %d", r)
            return r
    return None
