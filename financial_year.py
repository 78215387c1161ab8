# financial_year.py
"""Indian financial year helpers.

A financial year runs from April 1 to March 31 and is labelled by its two
calendar years, e.g. a bill dated May 2025 or January 2026 belongs to
"2025-2026".
"""
import re
from datetime import date, datetime
from typing import List, Optional, Tuple

from errors import ValidationError

FY_START_MONTH = 4
_LABEL_RE = re.compile(r"^(\d{4})-(\d{4})$")


def fiscal_year(d: date) -> str:
    """Return the financial year label containing ``d``."""
    if d.month >= FY_START_MONTH:
        return f"{d.year}-{d.year + 1}"
    return f"{d.year - 1}-{d.year}"


def current_financial_year(today: Optional[date] = None) -> str:
    return fiscal_year(today or date.today())


def _start_year(label: str) -> int:
    m = _LABEL_RE.match(label or "")
    if not m or int(m.group(2)) != int(m.group(1)) + 1:
        raise ValidationError(f"Invalid financial year: {label!r}", field="financial_year")
    return int(m.group(1))


def fiscal_year_range(label: str) -> Tuple[datetime, datetime]:
    """Return (start, end) of a label: Apr 1 00:00:00.000 to Mar 31 23:59:59.999."""
    start_year = _start_year(label)
    start = datetime(start_year, 4, 1, 0, 0, 0, 0)
    end = datetime(start_year + 1, 3, 31, 23, 59, 59, 999000)
    return start, end


def fiscal_years_since(from_year: int = 2020, today: Optional[date] = None) -> List[str]:
    """Every label from ``from_year`` up to the current one, most recent first."""
    current_start = _start_year(current_financial_year(today))
    return [f"{y}-{y + 1}" for y in range(current_start, from_year - 1, -1)]
