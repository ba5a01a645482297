"""
Extraction of the ORACE "évaluations Repères" exports:
- reading the sources (per-unit CSV files, multi-sheet workbooks)
- locating the header anchors (group row, percentage row)
- resolving each competency's "% satisfaisant" column (merge-aware / anchor scan)
- mapping school rows and merging them into a per-school registry
- summary views and Excel export
"""
from .errors import (ExtractionError, SourceUnreadable, IdentityMismatch, StructureUndetectable, EmptyExtractionError)
from .layout import LayoutConfig, DEFAULT_LAYOUT, load_layout
from .model import Grid, MergeSpan, CompetencySpan, CompetencyKey, SchoolRecord, SourceUnit, normalize_competency_name
from .numeric import parse_percentage
from .identity import validate_identity, decode_unit_code
from .header_detect import find_group_row, find_percentage_row
from .spans import MergeAwareResolver, AnchorScanResolver, resolve_spans
from .rows import locate_first_data_row, map_row
from .registry import SchoolRegistry
from .ingest import load_units_from_dir, load_units_from_workbook, load_units_from_uploads
from .extract import extract_unit, extract_registry, extract_from_dir, ExtractionReport
from .summary import competency_summary_frame, schools_frame, school_detail_frame, registry_wide_frame
from .export import export_to_excel_bytes

__all__ = [
    "ExtractionError",
    "SourceUnreadable",
    "IdentityMismatch",
    "StructureUndetectable",
    "EmptyExtractionError",
    "LayoutConfig",
    "DEFAULT_LAYOUT",
    "load_layout",
    "Grid",
    "MergeSpan",
    "CompetencySpan",
    "CompetencyKey",
    "SchoolRecord",
    "SourceUnit",
    "normalize_competency_name",
    "parse_percentage",
    "validate_identity",
    "decode_unit_code",
    "find_group_row",
    "find_percentage_row",
    "MergeAwareResolver",
    "AnchorScanResolver",
    "resolve_spans",
    "locate_first_data_row",
    "map_row",
    "SchoolRegistry",
    "load_units_from_dir",
    "load_units_from_workbook",
    "load_units_from_uploads",
    "extract_unit",
    "extract_registry",
    "extract_from_dir",
    "ExtractionReport",
    "competency_summary_frame",
    "schools_frame",
    "school_detail_frame",
    "registry_wide_frame",
    "export_to_excel_bytes",
]
