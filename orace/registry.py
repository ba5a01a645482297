from __future__ import annotations
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple
from .model import CompetencyKey, RowRecord, SchoolRecord


class SchoolRegistry:
    """
    Schools keyed by UAI, in first-seen order.
    Immutable: ``merge`` returns a new registry, so the extraction is a reduce
    over per-unit record lists instead of a list mutated across calls.
    """

    def __init__(self, schools: Optional[Dict[str, SchoolRecord]] = None):
        self._schools: Dict[str, SchoolRecord] = dict(schools or {})

    def merge(self, records: Iterable[RowRecord]) -> "SchoolRegistry":
        schools = dict(self._schools)
        for rec in records:
            # a row without any parsed value does not create or touch a school
            if not rec.results:
                continue
            current = schools.get(rec.id)
            if current is None:
                schools[rec.id] = SchoolRecord(rec.id, rec.name, MappingProxyType(dict(rec.results)))
                continue
            union = dict(current.results)
            union.update(rec.results)  # last write wins
            schools[rec.id] = SchoolRecord(current.id, current.display_name, MappingProxyType(union))
        return SchoolRegistry(schools)

    def all(self) -> List[SchoolRecord]:
        return list(self._schools.values())

    def get(self, school_id: str) -> Optional[SchoolRecord]:
        return self._schools.get(school_id)

    def ids(self) -> List[str]:
        return list(self._schools.keys())

    def by_level_subject(self) -> Dict[Tuple[str, str], Set[CompetencyKey]]:
        # computed on each call, never cached
        out: Dict[Tuple[str, str], Set[CompetencyKey]] = {}
        for school in self._schools.values():
            for key in school.results:
                out.setdefault((key.level, key.subject), set()).add(key)
        return out

    def __len__(self) -> int:
        return len(self._schools)

    def __contains__(self, school_id: object) -> bool:
        return school_id in self._schools

    def __iter__(self) -> Iterator[SchoolRecord]:
        return iter(self._schools.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchoolRegistry):
            return NotImplemented
        return [
            (s.id, s.display_name, dict(s.results)) for s in self._schools.values()
        ] == [
            (s.id, s.display_name, dict(s.results)) for s in other._schools.values()
        ]

    def __repr__(self) -> str:
        return f"SchoolRegistry({len(self)} schools)"
