import re
from typing import Iterable, Optional, Tuple

# "$101K/yr - $120.4K/yr", "$100,000 - $150,000", "$45/yr"
SALARY_RE = re.compile(
    r"\$\d+[.,]?\d*[KkMm]?(?:/yr)?(?:\s*-\s*\$\d+[.,]?\d*[KkMm]?(?:/yr)?)?"
)

_AMOUNT_RE = re.compile(r"\$\s*(\d[\d,]*(?:\.\d+)?)\s*([KkMm])?")

_MULTIPLIERS = {"k": 1_000.0, "m": 1_000_000.0}


def find_salary(text: Optional[str]) -> Optional[str]:
    """Return the first salary-looking substring of text, or None."""
    if not text:
        return None
    m = SALARY_RE.search(text)
    return m.group(0) if m else None


def clean_salary(text: str) -> str:
    """Strip trailing benefit/separator text ("· 401k") from a matched salary line."""
    m = SALARY_RE.search(text or "")
    return m.group(0) if m else (text or "").strip()


def first_salary(texts: Iterable[str]) -> Optional[str]:
    for text in texts:
        if find_salary(text):
            return clean_salary(text)
    return None


def parse_salary_bounds(text: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """
    Parse a free-text salary into (min, max) dollar amounts.

    "$101K/yr - $120.4K/yr" -> (101000.0, 120400.0)
    "$85,000"               -> (85000.0, 85000.0)
    "Not listed"            -> (None, None)
    """
    amounts = []
    for num, suffix in _AMOUNT_RE.findall(text or ""):
        try:
            value = float(num.replace(",", ""))
        except ValueError:
            continue
        if suffix:
            value *= _MULTIPLIERS[suffix.lower()]
        amounts.append(value)
        if len(amounts) == 2:
            break

    if not amounts:
        return None, None
    if len(amounts) == 1:
        return amounts[0], amounts[0]
    lo, hi = amounts
    return (lo, hi) if lo <= hi else (hi, lo)
