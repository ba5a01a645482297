from __future__ import annotations
from typing import Any


class ExtractionError(Exception):
    """Base class for every failure raised by the extraction pipeline."""


class UnitRejected(ExtractionError):
    # A whole source unit is dropped; siblings keep going
    status = "rejected"

    def __init__(self, source_name: str, message: str):
        super().__init__(f"{source_name}: {message}")
        self.source_name = source_name
        self.message = message


class SourceUnreadable(UnitRejected):
    status = "source_unreadable"


class IdentityMismatch(UnitRejected):
    status = "identity_mismatch"


class StructureUndetectable(UnitRejected):
    status = "structure_undetectable"


class EmptyExtractionError(ExtractionError):
    """No school at all came out of the configured units."""

    def __init__(self, report: Any):
        super().__init__(
            f"no school extracted from {len(report.outcomes)} source unit(s)"
        )
        self.report = report
