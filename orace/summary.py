from __future__ import annotations
import numpy as np
import pandas as pd
from .model import LEVELS, SUBJECTS
from .registry import SchoolRegistry

SUBJECT_LABELS = {"francais": "Français", "maths": "Maths"}


def _sort_key(level: str, subject: str):
    lvl = LEVELS.index(level) if level in LEVELS else len(LEVELS)
    subj = SUBJECTS.index(subject) if subject in SUBJECTS else len(SUBJECTS)
    return lvl, subj


def competency_summary_frame(registry: SchoolRegistry) -> pd.DataFrame:
    # one row per (level, subject): how many competencies, one example
    groups = registry.by_level_subject()
    rows = []
    for level, subject in sorted(groups, key=lambda k: _sort_key(*k)):
        keys = sorted(groups[(level, subject)], key=str)
        rows.append({
            "Niveau": level,
            "Matière": SUBJECT_LABELS.get(subject, subject),
            "Compétences": len(keys),
            "Exemple": keys[0].label[:60] if keys else "",
        })
    return pd.DataFrame(rows, columns=["Niveau", "Matière", "Compétences", "Exemple"])


def schools_frame(registry: SchoolRegistry) -> pd.DataFrame:
    rows = [
        {"UAI": s.id, "École": s.display_name, "Résultats": len(s.results)}
        for s in registry.all()
    ]
    return pd.DataFrame(rows, columns=["UAI", "École", "Résultats"])


def school_detail_frame(registry: SchoolRegistry, school_id: str) -> pd.DataFrame:
    """
    Every result of one school, grouped by level / subject, as read from the
    export (% of pupils in the satisfactory group). Unknown UAI -> empty frame.
    """
    cols = ["Niveau", "Matière", "Compétence", "% satisfaisant"]
    school = registry.get(school_id)
    if school is None:
        return pd.DataFrame(columns=cols)

    rows = []
    for key, value in school.results.items():
        rows.append({
            "Niveau": key.level,
            "Matière": SUBJECT_LABELS.get(key.subject, key.subject),
            "Compétence": key.label,
            "% satisfaisant": float(value),
            "__lvl": _sort_key(key.level, key.subject)[0],
            "__subj": _sort_key(key.level, key.subject)[1],
        })
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=cols)
    # stable: keeps file order inside a level/subject
    df = df.sort_values(["__lvl", "__subj"], kind="stable").drop(columns=["__lvl", "__subj"]).reset_index(drop=True)
    return df[cols]


def registry_wide_frame(registry: SchoolRegistry) -> pd.DataFrame:
    """One row per school, one column per competency key (NaN when absent)."""
    keys = []
    seen = set()
    for school in registry.all():
        for k in school.results:
            if k not in seen:
                seen.add(k)
                keys.append(k)

    data = {
        "UAI": [s.id for s in registry.all()],
        "École": [s.display_name for s in registry.all()],
    }
    for k in keys:
        data[str(k)] = [float(s.results.get(k, np.nan)) for s in registry.all()]
    return pd.DataFrame(data)
