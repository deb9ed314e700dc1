import os

# General-education requirement codes. Template slots naming these are
# placeholders, never fixed courses, even though they look like prefixes.
GEN_ED_CODES = {
    "FW",   # Foundations: written communication
    "FQ",   # Foundations: quantitative reasoning
    "FG",   # Foundations: global multicultural perspectives
    "DS",   # Diversification: social sciences
    "DA",   # Diversification: arts
    "DH",   # Diversification: humanities
    "DL",   # Diversification: literatures
    "DB",   # Diversification: biological sciences
    "DP",   # Diversification: physical sciences
    "DY",   # Diversification: science lab
    "HSL",  # Hawaiian or second language
}

# Long-form category names seen in templates, mapped to their codes.
GEN_ED_NAMES = {
    "written communication": "FW",
    "quantitative reasoning": "FQ",
    "global multicultural": "FG",
    "diversification-social": "DS",
    "diversification social": "DS",
    "social sciences": "DS",
    "diversification-arts": "DA",
    "arts": "DA",
    "diversification-humanities": "DH",
    "humanities": "DH",
    "diversification-literatures": "DL",
    "literatures": "DL",
    "diversification-biological": "DB",
    "biological sciences": "DB",
    "diversification-physical": "DP",
    "physical sciences": "DP",
    "science lab": "DY",
    "second language": "HSL",
    "hawaiian or second language": "HSL",
}

# Placeholder categories that are not tags in the catalog.
FREE_ELECTIVE = "ELECTIVE"
MAJOR_ELECTIVE = "MAJOR_ELECTIVE"

# Declared program length per degree: (semesters, credits).
DEGREE_PROGRAM_LENGTHS = {
    "BA": (8, 120),
    "BS": (8, 120),
    "BFA": (8, 120),
    "BBA": (8, 120),
    "BMUS": (8, 120),
    "BED": (8, 120),
    "BSN": (8, 120),
    "AA": (4, 60),
    "AS": (4, 60),
    "AAS": (4, 60),
}

# Slot kinds.
FIXED = "fixed"
CHOICE = "choice"
PLACEHOLDER = "placeholder"

# Resolution reasons carried on each resolved slot.
EXACT_MATCH = "exact-match"
CHOICE_SELECTED = "choice-selected"
SUBSTITUTED = "substituted"
ALREADY_COMPLETED = "already-completed"
UNRESOLVED = "unresolved"
PREREQUISITE_VIOLATION = "prerequisite-violation"

# Reason codes for unresolved slots and informational diagnostics.
NO_MATCHING_COURSE = "no-matching-course"
ALL_CANDIDATES_EXHAUSTED = "all-candidates-exhausted"
DUPLICATE_AVOIDED = "duplicate-avoided"
PREREQUISITE_UNREACHABLE = "prerequisite-unreachable"
PREREQUISITE_ORDER = "prerequisite-order"
PREREQUISITE_MANUAL_REVIEW = "prerequisite-manual-review"
RELOCATED_FOR_PREREQUISITE = "relocated-for-prerequisite"
CREDIT_OVERFLOW_MOVED = "credit-overflow-moved"
CREDIT_OVERFLOW_EXTENDED = "credit-overflow-extended"

# Which slot yields first when a semester is over the credit cap.
OVERFLOW_POLICIES = {"placeholder-first", "last-slot-first"}
# placeholder-first: placeholders yield before choices, choices before fixed.
OVERFLOW_KIND_ORDER = {PLACEHOLDER: 0, CHOICE: 1, FIXED: 2}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


def _env_choice(name: str, default: str, allowed: set[str]) -> str:
    raw = os.environ.get(name, "").strip().lower()
    return raw if raw in allowed else default


# Institutional full-time maximum per semester.
DEFAULT_CREDIT_CAP: int = _env_int("ROADMAP_CREDIT_CAP", 18, minimum=1)
DEFAULT_OVERFLOW_POLICY: str = _env_choice(
    "ROADMAP_OVERFLOW_POLICY", "placeholder-first", OVERFLOW_POLICIES
)
# Template validation tolerances against the declared program length.
CREDIT_TOLERANCE: int = _env_int("ROADMAP_CREDIT_TOLERANCE", 6)
SEMESTER_TOLERANCE: int = _env_int("ROADMAP_SEMESTER_TOLERANCE", 1)
