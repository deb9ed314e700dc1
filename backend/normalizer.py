import re

# Matches: DEPT NNN, DEPT-NNN, DEPTNNN, MATH 251A, ICS 111, BIOL 171L, etc.
CANONICAL = re.compile(r'^([A-Za-z]{2,6})\s*[-]?\s*(\d{3,4}[A-Za-z]?)$')


def normalize_code(raw: str) -> str | None:
    """
    Normalizes a course code to canonical 'DEPT NNN' format.
    Handles: 'ics111', 'ICS-111', 'ICS 111', 'math 251a', 'FINA 3001'
    Returns None if the string cannot be parsed as a course code.
    """
    if not raw or not str(raw).strip():
        return None
    m = CANONICAL.match(str(raw).strip())
    if m:
        dept = m.group(1).upper()
        num = m.group(2).upper()
        return f"{dept} {num}"
    return None


def split_code(code: str) -> tuple[str, str]:
    """'MATH 251A' -> ('MATH', '251A'). Unparseable codes return (code, '')."""
    normalized = normalize_code(code)
    if normalized is None:
        return str(code or "").strip().upper(), ""
    dept, num = normalized.split(" ", 1)
    return dept, num


def course_level(code: str) -> int | None:
    """'ICS 314' -> 300, 'FINA 3001' -> 3000, 'MATH 251A' -> 200."""
    _, num = split_code(code)
    digits = re.match(r'\d+', num or "")
    if not digits:
        return None
    value = digits.group()
    scale = 10 ** (len(value) - 1)
    return (int(value) // scale) * scale


CREDIT_RE = re.compile(r'(\d+(?:\.\d+)?)')


def parse_credits(raw, default: float | None = None) -> float | None:
    """
    Normalizes a credit value: 3 -> 3, '3' -> 3, '3-4' -> 3, '1.5 cr' -> 1.5.
    Variable-credit ranges take their lower bound. Returns default if no
    number is present.
    """
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        if raw != raw:  # NaN
            return default
        value = float(raw)
    else:
        m = CREDIT_RE.search(str(raw))
        if not m:
            return default
        value = float(m.group(1))
    return int(value) if value.is_integer() else value
