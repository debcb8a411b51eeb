import math
import re
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def to_num(value: Any) -> float:
    """Lenient float parse: accepts a decimal comma, falls back to 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    text = str(value if value is not None else "").strip().replace(",", ".", 1)
    if not text:
        return 0.0
    try:
        n = float(text)
    except ValueError:
        return 0.0
    return n if math.isfinite(n) else 0.0


def to_int(value: Any) -> int:
    """Leading integer of the text ("3.9" -> 3, "abc" -> 0)."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    m = _LEADING_INT.match(str(value if value is not None else ""))
    return int(m.group(1)) if m else 0


def format_number(value: Any) -> str:
    n = to_num(value)
    if n.is_integer():
        return str(int(n))
    return repr(n)


def format_eur(value: Any) -> str:
    # de-DE style: 1.234,50 €
    n = to_num(value)
    grouped = f"{abs(n):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    sign = "-" if n < 0 else ""
    return f"{sign}{grouped} €"
