"""
Competency span resolution.

A competency occupies a block of columns under its title (row 3). Inside the
block the export repeats the same sub-table: one or two columns per group
("besoins", "fragile", "satisfaisant"), each split into a count and a
percentage. What we want is the single column holding the percentage of the
satisfactory group.

Two ways to find the blocks:
  - MergeAwareResolver: the title cell is merged across its block (xlsx only)
  - AnchorScanResolver: no merge metadata, a block runs from one title cell
    to the next one

Both share the offset search inside a block (``resolve_value_column``).
"""
from __future__ import annotations
import logging
from typing import List, Tuple
from .header_detect import is_competency_title
from .layout import LayoutConfig, DEFAULT_LAYOUT
from .model import CompetencySpan, Grid
from .utils import contains_any

logger = logging.getLogger(__name__)

MODE_MERGE = "merge"
MODE_ANCHOR = "anchor"


def resolve_value_column(
    grid: Grid,
    name: str,
    column_start: int,
    column_end: int,
    group_row: int,
    percentage_row: int,
    layout: LayoutConfig = DEFAULT_LAYOUT,
) -> CompetencySpan:
    group_col = None
    for c in range(column_start, column_end + 1):
        if contains_any(grid.cell(group_row, c), layout.group_keywords):
            group_col = c
            break

    if group_col is not None:
        last = min(group_col + layout.percentage_lookahead, column_end)
        for c in range(group_col, last + 1):
            if contains_any(grid.cell(percentage_row, c), layout.percentage_keywords):
                return CompetencySpan(name, column_start, column_end, c, confident=True)
        reason = f"no percentage marker in columns {group_col}-{last}"
    else:
        reason = f"no group label in columns {column_start}-{column_end}"

    # Blind guess: last column of the block
    logger.warning(
        "span %r: %s, falling back to column %d (last of the span)",
        name[:40], reason, column_end,
    )
    return CompetencySpan(name, column_start, column_end, column_end, confident=False)


class SpanResolver:
    """Finds competency blocks on the title row, then their value column."""

    mode = ""

    def __init__(self, layout: LayoutConfig = DEFAULT_LAYOUT):
        self.layout = layout

    def candidate_spans(self, grid: Grid) -> List[Tuple[str, int, int]]:
        raise NotImplementedError

    def resolve(self, grid: Grid, group_row: int, percentage_row: int) -> List[CompetencySpan]:
        spans = []
        for name, start, end in self.candidate_spans(grid):
            span = resolve_value_column(grid, name, start, end, group_row, percentage_row, self.layout)
            logger.debug(
                "%s span %r: columns %d-%d, value column %d%s",
                self.mode, name[:40], start, end, span.resolved_value_column,
                "" if span.confident else " (guessed)",
            )
            spans.append(span)
        return spans


class MergeAwareResolver(SpanResolver):
    mode = MODE_MERGE

    def candidate_spans(self, grid: Grid) -> List[Tuple[str, int, int]]:
        title_row = self.layout.title_row
        merges = sorted(
            (m for m in (grid.merges or []) if m.row_start == title_row and m.is_horizontal),
            key=lambda m: m.col_start,
        )
        out = []
        for m in merges:
            text = grid.cell(title_row, m.col_start)
            if is_competency_title(text, self.layout):
                out.append((text, m.col_start, m.col_end))
            else:
                logger.debug("merge %d-%d skipped (%r)", m.col_start, m.col_end, text[:30])
        return out


class AnchorScanResolver(SpanResolver):
    mode = MODE_ANCHOR

    def candidate_spans(self, grid: Grid) -> List[Tuple[str, int, int]]:
        row = grid.row(self.layout.title_row)
        anchors = [c for c, v in enumerate(row) if v and is_competency_title(v, self.layout)]
        out = []
        for i, c in enumerate(anchors):
            end = anchors[i + 1] - 1 if i + 1 < len(anchors) else len(row) - 1
            out.append((row[c], c, end))
        return out


def select_resolver(grid: Grid, layout: LayoutConfig = DEFAULT_LAYOUT) -> SpanResolver:
    if grid.has_merges:
        return MergeAwareResolver(layout)
    return AnchorScanResolver(layout)


def resolve_spans(
    grid: Grid,
    group_row: int,
    percentage_row: int,
    layout: LayoutConfig = DEFAULT_LAYOUT,
) -> Tuple[List[CompetencySpan], str]:
    """Spans plus the mode that produced them; merge-aware degrades to anchor scan."""
    resolver = select_resolver(grid, layout)
    spans = resolver.resolve(grid, group_row, percentage_row)
    if not spans and resolver.mode == MODE_MERGE:
        logger.warning("no competency among the title-row merges, scanning title cells instead")
        resolver = AnchorScanResolver(layout)
        spans = resolver.resolve(grid, group_row, percentage_row)
    return spans, resolver.mode


def check_offsets(spans: List[CompetencySpan]) -> bool:
    """
    All competencies of a unit share one sub-table layout, so their value
    offsets should match. A mismatch is reported, not corrected.
    """
    offsets = {s.offset for s in spans}
    if len(offsets) <= 1:
        return True
    logger.warning(
        "irregular structure: value offsets differ between competencies (%s)",
        ", ".join(f"{s.name[:25]!r}=+{s.offset}" for s in spans),
    )
    return False
