"""
Named search windows and keyword sets for the ORACE export template.

The export has no formal schema: competency titles sit on a fixed row, the
group labels ("Groupe satisfaisant") and percentage labels ("%", "nombre
d'élèves répondants") drift by a couple of rows between campaigns. Every
tolerance the extraction relies on lives here so that it can be tested and
overridden (``layout.json`` in the data directory).
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from .utils import layout_path, load_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    # row 3 of the sheet
    title_row: int = 2
    # rows 3..10, end exclusive
    group_search_window: Tuple[int, int] = (2, 10)
    percentage_search_depth: int = 3
    percentage_lookahead: int = 2
    # row 11 of the sheet
    default_data_row: int = 10

    min_title_length: int = 10
    min_id_length: int = 7
    key_max_length: int = 100

    group_keywords: Tuple[str, ...] = ("satisfaisant",)
    percentage_keywords: Tuple[str, ...] = ("%", "répondants", "repondants")
    structural_markers: Tuple[str, ...] = ("compétence", "exercice", "participation", "scores")
    header_id_markers: Tuple[str, ...] = ("uai", "total", "circonscription")
    trailer_markers: Tuple[str, ...] = ("total", "circonscription")

    csv_delimiter: str = ";"
    csv_encodings: Tuple[str, ...] = field(default=("utf-8-sig", "utf-8", "cp1252"))
    # metadata sheets at the head of a workbook ("Aide à la lecture")
    skipped_leading_sheets: int = 1


DEFAULT_LAYOUT = LayoutConfig()


def layout_from_dict(overrides: Dict[str, Any], base: LayoutConfig = DEFAULT_LAYOUT) -> LayoutConfig:
    known = {f.name: f for f in fields(LayoutConfig)}
    clean: Dict[str, Any] = {}
    for key, value in (overrides or {}).items():
        if key not in known:
            logger.warning("layout: unknown key %r ignored", key)
            continue
        # JSON has no tuples
        if isinstance(value, list):
            value = tuple(value)
        clean[key] = value
    return replace(base, **clean)


def load_layout(path: Optional[Path] = None) -> LayoutConfig:
    # Default template, patched by layout.json if present
    p = path or layout_path()
    overrides = load_json(p, {})
    if not isinstance(overrides, dict):
        logger.warning("layout: %s is not a JSON object, defaults used", p)
        return DEFAULT_LAYOUT
    if overrides:
        logger.info("layout: %d override(s) loaded from %s", len(overrides), p)
    return layout_from_dict(overrides)
