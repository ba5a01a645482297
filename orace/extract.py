from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from .errors import EmptyExtractionError, IdentityMismatch, SourceUnreadable, StructureUndetectable, UnitRejected
from .header_detect import find_group_row, find_percentage_row
from .identity import identity_token, validate_identity
from .ingest import READ_ERRORS, load_units_from_dir
from .layout import LayoutConfig, DEFAULT_LAYOUT
from .model import CompetencyKey, CompetencySpan, Grid, RowRecord, SourceUnit
from .registry import SchoolRegistry
from .rows import locate_first_data_row, map_row
from .spans import check_offsets, resolve_spans

logger = logging.getLogger(__name__)

SAMPLE_KEYS = 5


@dataclass
class UnitOutcome:
    source_name: str
    level: Optional[str]
    subject: Optional[str]
    status: str = "ok"
    message: str = ""
    mode: str = ""
    group_row: Optional[int] = None
    percentage_row: Optional[int] = None
    first_data_row: Optional[int] = None
    spans: List[CompetencySpan] = field(default_factory=list)
    regular_offsets: bool = True
    rows_mapped: int = 0
    records: List[RowRecord] = field(default_factory=list)
    unparsable: List[CompetencyKey] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def schools_contributed(self) -> int:
        return sum(1 for r in self.records if r.results)

    @property
    def heuristic_spans(self) -> List[str]:
        return [s.name for s in self.spans if not s.confident]


@dataclass
class ExtractionReport:
    outcomes: List[UnitOutcome] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        out = []
        for o in self.outcomes:
            if not o.ok:
                out.append(f"[{o.status}] {o.source_name}: {o.message}")
                continue
            for name in o.heuristic_spans:
                out.append(f"[heuristic_offset] {o.source_name}: {name[:60]}")
            if not o.regular_offsets:
                out.append(f"[irregular_offsets] {o.source_name}: value offsets differ between competencies")
        return out

    def summary(self) -> Dict[str, Any]:
        by_status: Dict[str, int] = {}
        for o in self.outcomes:
            by_status[o.status] = by_status.get(o.status, 0) + 1

        unparsable: List[CompetencyKey] = []
        for o in self.outcomes:
            unparsable.extend(o.unparsable)
        sample: List[str] = []
        for k in unparsable:
            if str(k) not in sample:
                sample.append(str(k))
            if len(sample) >= SAMPLE_KEYS:
                break

        return {
            "units": len(self.outcomes),
            "units_ok": by_status.get("ok", 0),
            "units_by_status": by_status,
            "competencies": sum(len(o.spans) for o in self.outcomes if o.ok),
            "heuristic_spans": sum(len(o.heuristic_spans) for o in self.outcomes if o.ok),
            "irregular_units": sum(1 for o in self.outcomes if o.ok and not o.regular_offsets),
            "rows_mapped": sum(o.rows_mapped for o in self.outcomes),
            "unparsable_values": len(unparsable),
            "unparsable_sample": sample,
        }


def _read_grid(unit: SourceUnit) -> Grid:
    try:
        return unit.read()
    except FileNotFoundError as e:
        raise SourceUnreadable(unit.source_name, "file not found") from e
    except UnitRejected:
        raise
    except READ_ERRORS as e:
        raise SourceUnreadable(unit.source_name, f"{type(e).__name__}: {e}") from e
    except Exception as e:
        # a sheet the readers do not expect (chart sheet, odd cell types...)
        logger.exception("%s: unexpected error while reading", unit.source_name)
        raise SourceUnreadable(unit.source_name, f"unexpected {type(e).__name__}: {e}") from e


def _run_unit(unit: SourceUnit, layout: LayoutConfig, outcome: UnitOutcome) -> None:
    name = unit.source_name
    grid = _read_grid(unit)

    if not unit.level or not unit.subject:
        raise IdentityMismatch(name, "level/subject cannot be decoded from the source name")

    if unit.check_identity and not validate_identity(grid.row(0), unit.level, unit.subject):
        raise IdentityMismatch(
            name, f"row 1 does not mention {identity_token(unit.level, unit.subject)!r}"
        )

    group_row = find_group_row(grid, layout)
    if group_row is None:
        start, end = layout.group_search_window
        raise StructureUndetectable(name, f"no group row ('satisfaisant') in row indices {start}-{end - 1}")
    outcome.group_row = group_row

    percentage_row = find_percentage_row(grid, group_row, layout)
    if percentage_row is None:
        raise StructureUndetectable(name, f"no percentage row ('%' / 'répondants') after row index {group_row}")
    outcome.percentage_row = percentage_row

    spans, mode = resolve_spans(grid, group_row, percentage_row, layout)
    outcome.mode = mode
    if not spans:
        raise StructureUndetectable(name, "no competency found on the title row")
    outcome.spans = spans
    outcome.regular_offsets = check_offsets(spans)

    first = locate_first_data_row(grid, percentage_row, layout)
    outcome.first_data_row = first

    for r in range(first, grid.n_rows):
        rec = map_row(grid.row(r), spans, unit.level, unit.subject, layout, unparsable=outcome.unparsable)
        if rec is None:
            continue
        outcome.rows_mapped += 1
        outcome.records.append(rec)


def extract_unit(unit: SourceUnit, layout: LayoutConfig = DEFAULT_LAYOUT) -> UnitOutcome:
    """
    Full pipeline for one unit. Never raises for unit-level problems: they are
    logged and recorded in the outcome status.
    """
    outcome = UnitOutcome(unit.source_name, unit.level, unit.subject)
    try:
        _run_unit(unit, layout, outcome)
    except UnitRejected as e:
        outcome.status = e.status
        outcome.message = e.message
        outcome.spans = []
        outcome.records = []
        logger.warning("%s skipped (%s): %s", unit.source_name, e.status, e.message)
        return outcome

    logger.info(
        "%s: %d competencies (%s), %d rows from index %d, %d schools with results",
        unit.source_name, len(outcome.spans), outcome.mode, outcome.rows_mapped,
        outcome.first_data_row, outcome.schools_contributed,
    )
    return outcome


def extract_registry(
    units: Sequence[SourceUnit],
    layout: LayoutConfig = DEFAULT_LAYOUT,
    max_workers: int = 1,
    registry: Optional[SchoolRegistry] = None,
) -> Tuple[SchoolRegistry, ExtractionReport]:
    """
    Runs every unit (optionally on a thread pool), then folds their records
    into a registry in unit order. Raises EmptyExtractionError when nothing
    came out: nothing downstream makes sense on an empty registry.
    """
    if max_workers > 1 and len(units) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            outcomes = list(pool.map(lambda u: extract_unit(u, layout), units))
    else:
        outcomes = [extract_unit(u, layout) for u in units]

    # single writer
    reg = registry if registry is not None else SchoolRegistry()
    for o in outcomes:
        reg = reg.merge(o.records)

    report = ExtractionReport(outcomes)
    s = report.summary()
    logger.info(
        "%d/%d units extracted, %d schools, %d unparsable value(s)",
        s["units_ok"], s["units"], len(reg), s["unparsable_values"],
    )
    if len(reg) == 0:
        raise EmptyExtractionError(report)
    return reg, report


def extract_from_dir(
    directory: Union[str, Path],
    stem: str = "CIRCO_ecoles",
    layout: LayoutConfig = DEFAULT_LAYOUT,
    max_workers: int = 1,
) -> Tuple[SchoolRegistry, ExtractionReport]:
    return extract_registry(load_units_from_dir(directory, stem, layout), layout, max_workers)
