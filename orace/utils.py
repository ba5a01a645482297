import os
import re
import json
import math
import unicodedata
from pathlib import Path
from typing import Any, Iterable

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

ORACE_DATA_DIR = os.environ.get("ORACE_DATA_DIR")
if ORACE_DATA_DIR:
    USER_DATA_DIR = Path(ORACE_DATA_DIR)
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

_NBSP_RE = re.compile(r"[\u00A0\u2007\u202F]")  # NBSP variants (French number formatting)


def cell_text(v: Any) -> str:
    """
    Raw cell value -> trimmed text.
    None / NaN / "nan" -> "", integral floats lose their ".0" so that
    identifiers read from workbooks stay intact.
    """
    if v is None:
        return ""
    if isinstance(v, float):
        if math.isnan(v):
            return ""
        if v.is_integer():
            return str(int(v))
    s = str(v)
    s = s.replace("\ufeff", "")
    s = _NBSP_RE.sub(" ", s).strip()
    if s.lower() == "nan":
        return ""
    return s


def norm_text(s: Any) -> str:
    """
    Normalization for keyword matching:
    - BOM / non-breaking spaces
    - outer quotes
    - lower
    - collapsed whitespace
    """
    s = cell_text(s)
    if not s:
        return ""
    if len(s) >= 2 and s[0] == s[-1] and s[0] in ('"', "'"):
        s = s[1:-1].strip()
    s = s.lower()
    s = re.sub(r"\s+", " ", s).strip()
    return s


def contains_any(s: Any, keywords: Iterable[str]) -> bool:
    t = norm_text(s)
    if not t:
        return False
    return any(k in t for k in keywords)


def strip_accents(s: str) -> str:
    # "Compréhension" -> "Comprehension"
    decomposed = unicodedata.normalize("NFKD", s)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def layout_path() -> Path:
    return USER_DATA_DIR / "layout.json"
