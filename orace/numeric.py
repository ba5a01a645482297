from __future__ import annotations
import math
import re
from typing import Any, Optional
from .utils import cell_text

_NUM_RE = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?$")


def parse_percentage(raw: Any) -> Optional[float]:
    """
    Locale-formatted cell -> percentage, or None.
      "50 %" -> 50.0, "50,5 %" -> 50.5, "0.5" -> 50.0 (fraction), "105" -> 105.0
    No rounding; never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        s = cell_text(raw)
        if not s:
            return None
        s = s.replace("%", "").strip()
        # decimal comma (French export)
        s = s.replace(",", ".", 1).replace(" ", "")
        if not _NUM_RE.match(s):
            return None
        try:
            value = float(s)
        except ValueError:
            return None

    if math.isnan(value) or math.isinf(value):
        return None

    # a fraction: 0.5 means 50 %, not 0.5 %
    if 0 < value < 1:
        return value * 100
    return value
