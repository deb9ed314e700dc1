import re
import pandas as pd
from normalizer import normalize_code

# Case-insensitive OR / AND splitters - preserve token casing before normalize_code()
OR_SPLIT = re.compile(r'\s+or\s+', re.IGNORECASE)
AND_SPLIT = re.compile(r'\s*;\s*|\s*,\s*|\s+and\s+', re.IGNORECASE)
CHOOSE_N_FROM_RE = re.compile(
    r'^(?:any\s+)?(?P<count>\d+|one|two|three|four|five)\s+courses?\s+from\s*:?\s*(?P<options>.+)$',
    re.IGNORECASE,
)
CHOOSE_N_SHORT_RE = re.compile(
    r'^choose\s+(?P<count>\d+|one|two|three|four|five)\s+from\s*:?\s*(?P<options>.+)$',
    re.IGNORECASE,
)

# Regex to strip parenthetical annotation clauses, e.g. "(or concurrent)"
ANNOTATION_RE = re.compile(r'\s*\([^)]*\)')

# Grade qualifiers, e.g. "with a minimum grade of B", "C- or better"
GRADE_QUALIFIER_RE = re.compile(
    r'\s*,?\s*with\s+(?:a\s+)?(?:minimum\s+)?grade\s+of\s+[A-D][+-]?(?:\s+or\s+(?:better|higher))?'
    r'|\s+[A-D][+-]?\s+or\s+(?:better|higher)\b',
    re.IGNORECASE,
)

# Course codes written inside free text (uppercase subject only)
CODE_IN_TEXT_RE = re.compile(r'\b([A-Z]{2,6})\s*-?\s*(\d{3,4}[A-Z]?)\b')

# Prerequisite clause inside free-form catalog metadata:
#   "Pre: ICS 211 and MATH 241; Lecture hours: 3"
METADATA_PREREQ_RE = re.compile(
    r'\b(?:pre|prereqs?|prerequisites?)\b\s*[:\-]\s*(?P<body>[^;.]+)',
    re.IGNORECASE,
)

# Signals that the prerequisite string contains unsupported grammar.
UNSUPPORTED_SIGNALS = [
    "permission",
    "concurrent",
    "minimum grade",
    "standing",
    "instructor",
    "co-req",
    "coreq",
    "admitted",
    "enrollment",
    "consent",
    "placement",
]

NONE_VALUES = {"none", "none listed", "n/a", ""}
COUNT_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
}


def _parse_count_token(token: str) -> int | None:
    raw = str(token or "").strip().lower()
    if raw.isdigit():
        return int(raw)
    return COUNT_WORDS.get(raw)


def _parse_choose_n_from(s: str) -> dict | None:
    for pattern in (CHOOSE_N_FROM_RE, CHOOSE_N_SHORT_RE):
        match = pattern.match(s)
        if not match:
            continue
        count = _parse_count_token(match.group("count"))
        options_raw = str(match.group("options") or "").strip().rstrip(".")
        tokens = [normalize_code(c.strip()) or c.strip() for c in re.split(r'\s+or\s+|,', options_raw, flags=re.IGNORECASE)]
        tokens = [t for t in tokens if t]
        if count is None or count <= 0 or len(tokens) < count:
            return {"type": "unsupported", "raw": s}
        if count == 1 and len(tokens) == 1:
            return {"type": "single", "course": tokens[0]}
        return {"type": "choose_n", "count": count, "courses": tokens}
    return None


def _is_waiver_alternative(token: str) -> bool:
    """'consent of instructor', 'placement exam': not a course, just a waiver."""
    low = token.lower()
    return not codes_in_text(token) and any(sig in low for sig in UNSUPPORTED_SIGNALS)


def codes_in_text(text) -> list[str]:
    """Course codes named anywhere in free text, first mention order."""
    result = []
    for subject, number in CODE_IN_TEXT_RE.findall(str(text or "")):
        code = normalize_code(f"{subject} {number}")
        if code and code not in result:
            result.append(code)
    return result


def ordering_requirement(parsed_prereq) -> dict:
    """
    The requirement used for semester ordering.

    Parsed expressions are returned as-is. For unsupported text every course
    code it names must come first, like an AND; text naming no course
    imposes no ordering.
    """
    if isinstance(parsed_prereq, str) or parsed_prereq.get("type") != "unsupported":
        return parsed_prereq
    codes = codes_in_text(parsed_prereq.get("raw"))
    if not codes:
        return {"type": "none"}
    if len(codes) == 1:
        return {"type": "single", "course": codes[0]}
    return {"type": "and", "courses": codes}


def prereq_course_codes(parsed_prereq: dict) -> list[str]:
    t = parsed_prereq.get("type")
    if t == "unsupported":
        return codes_in_text(parsed_prereq.get("raw"))
    if t == "single":
        course = parsed_prereq.get("course")
        return [course] if course else []
    if t in {"and", "or", "choose_n"}:
        result = []
        for c in parsed_prereq.get("courses", []):
            if isinstance(c, dict):
                result.extend(prereq_course_codes(c))
            elif c and c not in result:
                result.append(c)
        return result
    return []


def _strip_annotations(s: str) -> str:
    """Remove parenthetical annotation clauses, e.g. '(or concurrent)'."""
    return ANNOTATION_RE.sub('', s).strip()


def extract_prereq_text(metadata) -> str:
    """
    Pull the prerequisite clause out of free-form course metadata.

    'Pre: ICS 211 or consent. Repeatable one time.' -> 'ICS 211 or consent'
    Returns '' when no clause is present.
    """
    if metadata is None or (isinstance(metadata, float) and pd.isna(metadata)):
        return ""
    text = re.sub(r'\s+', ' ', str(metadata)).strip()
    m = METADATA_PREREQ_RE.search(text)
    if not m:
        return ""
    return m.group("body").strip().rstrip(".")


def _parse_or_clause(tok: str):
    parts = [p.strip() for p in OR_SPLIT.split(tok) if p.strip()]
    courses = [p for p in parts if not _is_waiver_alternative(p)]
    if not courses:
        return None
    normalized = [normalize_code(p) or p for p in courses]
    if any(normalize_code(p) is None for p in normalized):
        return {"type": "unsupported", "raw": tok}
    if len(normalized) == 1:
        return normalized[0]
    return {"type": "or", "courses": normalized}


def parse_prereqs(prereq_str) -> dict:
    """
    Parses a prerequisite string (machine-parsable grammar only).

    Supported grammar:
      none / none listed       → {"type": "none"}
      CODE                     → {"type": "single", "course": "DEPT NNN"}
      CODE;CODE / CODE and CODE → {"type": "and", "courses": [...]}
      CODE or CODE             → {"type": "or", "courses": [...]}
      Two courses from: ...    → {"type": "choose_n", "count": 2, "courses": [...]}

    Parenthetical annotations and grade qualifiers ("with a minimum grade
    of B") are stripped before parsing. Waiver clauses ("ICS 211 or
    consent", "ICS 211 and consent") are dropped so the course part is what
    gets planned; a string made only of waivers stays unsupported.

    Anything else →            {"type": "unsupported", "raw": "<original string>"}
    """
    if prereq_str is None or (isinstance(prereq_str, float) and pd.isna(prereq_str)):
        return {"type": "none"}
    if isinstance(prereq_str, dict):
        return prereq_str

    s = str(prereq_str).strip().rstrip(".")

    if s.lower() in NONE_VALUES:
        return {"type": "none"}

    s = GRADE_QUALIFIER_RE.sub("", s).strip()

    if "(" in s:
        stripped = _strip_annotations(s)
        if stripped and stripped != s:
            return parse_prereqs(stripped)
        return {"type": "unsupported", "raw": s}

    choose_n = _parse_choose_n_from(s)
    if choose_n is not None:
        return choose_n

    clauses = []
    for tok in AND_SPLIT.split(s):
        tok = tok.strip()
        if not tok:
            continue
        if OR_SPLIT.search(tok):
            clause = _parse_or_clause(tok)
            if clause is None:
                continue
            if isinstance(clause, dict) and clause["type"] == "unsupported":
                return {"type": "unsupported", "raw": s}
            clauses.append(clause)
            continue
        if _is_waiver_alternative(tok):
            continue
        code = normalize_code(tok)
        if code is None:
            return {"type": "unsupported", "raw": s}
        clauses.append(code)

    if not clauses:
        return {"type": "unsupported", "raw": s}
    if len(clauses) == 1:
        if isinstance(clauses[0], dict):
            return clauses[0]
        return {"type": "single", "course": clauses[0]}
    return {"type": "and", "courses": clauses}


def prereqs_satisfied(parsed_prereq, satisfied_codes: set) -> bool:
    """
    Returns True if the parsed prerequisite is satisfied by the given set of codes.
    Plain string clauses are treated as single-course requirements.
    """
    if isinstance(parsed_prereq, str):
        return parsed_prereq in satisfied_codes
    t = parsed_prereq["type"]
    if t == "none":
        return True
    if t == "single":
        return parsed_prereq["course"] in satisfied_codes
    if t == "and":
        return all(prereqs_satisfied(c, satisfied_codes) for c in parsed_prereq["courses"])
    if t == "or":
        return any(prereqs_satisfied(c, satisfied_codes) for c in parsed_prereq["courses"])
    if t == "choose_n":
        met = sum(1 for c in parsed_prereq["courses"] if prereqs_satisfied(c, satisfied_codes))
        return met >= parsed_prereq["count"]
    # unsupported → never auto-satisfied
    return False


def earliest_ready_index(parsed_prereq, ready_at: dict) -> int | None:
    """
    Earliest semester index at which the prerequisite is met.

    ready_at maps a course code to the first semester index where it counts
    (0 for completed coursework, planned semester + 1 for planned courses).
    Returns None when the prerequisite can never be met from ready_at, and
    0 for "none". Unsupported text is evaluated through ordering_requirement().
    """
    parsed_prereq = ordering_requirement(parsed_prereq)
    if isinstance(parsed_prereq, str):
        return ready_at.get(parsed_prereq)
    t = parsed_prereq["type"]
    if t == "single":
        return ready_at.get(parsed_prereq["course"])
    if t in {"and", "or", "choose_n"}:
        children = [earliest_ready_index(c, ready_at) for c in parsed_prereq["courses"]]
        if t == "and":
            if any(c is None for c in children):
                return None
            return max(children, default=0)
        reachable = sorted(c for c in children if c is not None)
        needed = 1 if t == "or" else parsed_prereq["count"]
        if len(reachable) < needed:
            return None
        return reachable[needed - 1]
    return 0


def build_prereq_check_string(
    parsed_prereq: dict,
    completed: set,
    planned: set,
) -> str:
    """
    Returns a human-readable string showing which prereqs are satisfied and how.
    Examples:
      "ICS 211 ✓"
      "ICS 211 ✓; MATH 241 (planned) ✓"
      "MATH 241 or MATH 251A ✓"
    """
    def label_code(code: str) -> str:
        if code in completed:
            return f"{code} ✓"
        if code in planned:
            return f"{code} (planned) ✓"
        return f"{code} ✗"

    if isinstance(parsed_prereq, str):
        return label_code(parsed_prereq)
    t = parsed_prereq["type"]
    if t == "none":
        return "No prerequisites"
    if t == "single":
        return label_code(parsed_prereq["course"])
    if t == "and":
        return "; ".join(build_prereq_check_string(c, completed, planned) for c in parsed_prereq["courses"])
    if t == "or":
        parts = [build_prereq_check_string(c, completed, planned) for c in parsed_prereq["courses"]]
        return " or ".join(parts)
    if t == "choose_n":
        codes = prereq_course_codes(parsed_prereq)
        count = parsed_prereq["count"]
        met = sum(1 for c in codes if c in completed or c in planned)
        return f"{met}/{count} required: " + "; ".join(label_code(c) for c in codes)
    return "Manual review required"
