"""Cell coercion for tabular sources."""
import re
from typing import Any

import pandas as pd

NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?([eE][-+]?\d+)?$")
ABSENT = object()


def coerce_cell(v: Any) -> Any:
    """Coerce a raw cell to bool, int, float or str.

    Empty and missing cells return ``ABSENT``.
    """
    if v is None or (isinstance(v, float) and pd.isna(v)):
        return ABSENT
    s = str(v).strip()
    if s == "":
        return ABSENT
    if s == "true":
        return True
    if s == "false":
        return False
    if NUMBER_RE.match(s):
        if "." in s or "e" in s or "E" in s:
            return float(s)
        return int(s)
    return s


def normalize_row(row: dict) -> dict[str, Any]:
    """Build a record from a tabular row, dropping absent cells."""
    out = {}
    for k, v in row.items():
        value = coerce_cell(v)
        if value is not ABSENT:
            out[str(k).strip()] = value
    return out
