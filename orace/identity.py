from __future__ import annotations
import logging
import re
from typing import Optional, Sequence, Tuple
from .model import LEVELS, SUBJECT_CODES
from .utils import norm_text

logger = logging.getLogger(__name__)

_CODE_TO_SUBJECT = {code: subj for subj, code in SUBJECT_CODES.items()}

# "CE1FR", "cpma", "CIRCO_ecoles_CM2FR" (code at the end of a stem)
_UNIT_CODE_RE = re.compile(
    r"(?:^|[^a-z0-9])(" + "|".join(l.lower() for l in LEVELS) + r")(fr|ma)$"
)
# Sheet names start with the level: "CPFR", "CE1 MA"
_SHEET_CODE_RE = re.compile(
    r"^(" + "|".join(l.lower() for l in LEVELS) + r")\s*[-_ ]?\s*(fr|ma)"
)


def subject_code(subject: str) -> str:
    return SUBJECT_CODES[subject]


def identity_token(level: str, subject: str) -> str:
    # "evaluation cm2fr"
    return f"evaluation {level.lower()}{subject_code(subject)}"


def validate_identity(first_row: Sequence[str], expected_level: str, expected_subject: str) -> bool:
    """Row 1 must name the evaluation the unit claims to be ("Evaluation CM2FR - ...")."""
    if not first_row:
        return False
    token = identity_token(expected_level, expected_subject)
    found = any(token in norm_text(cell) for cell in first_row)
    if not found:
        logger.debug("identity: expected %r, row 1 starts with %s", token, list(first_row)[:3])
    return found


def decode_unit_code(name: str) -> Optional[Tuple[str, str]]:
    """
    File stem or sheet name -> (level, subject), None when it does not encode one.
      "CIRCO_ecoles_CE1FR" -> ("CE1", "francais"); "CPMA" -> ("CP", "maths")
    """
    t = norm_text(name)
    if not t:
        return None
    t = re.sub(r"\.(csv|txt)$", "", t)
    m = _SHEET_CODE_RE.match(t) or _UNIT_CODE_RE.search(t)
    if not m:
        return None
    return m.group(1).upper(), _CODE_TO_SUBJECT[m.group(2)]
