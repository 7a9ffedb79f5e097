# eln_core/lifecycle/identifiers.py
from __future__ import annotations

import re
from typing import Iterable

from .kinds import get_kind

SEQUENCE_WIDTH = 3


def next_business_id(kind, existing_ids: Iterable[str], year: int) -> str:
    """
    Human-facing code in the form PREFIX-YYYY-NNN, e.g. PROJ-2025-001.

    The sequence continues after the highest existing code for the same
    prefix and year. Codes that do not follow the pattern are ignored.
    """
    k = get_kind(kind)
    pattern = re.compile(rf"^{re.escape(k.prefix)}-{year}-(\d+)$")

    highest = 0
    for code in existing_ids:
        m = pattern.match(str(code or "").strip())
        if m:
            highest = max(highest, int(m.group(1)))

    return f"{k.prefix}-{year}-{highest + 1:0{SEQUENCE_WIDTH}d}"
