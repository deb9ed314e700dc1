import re
from collections import Counter

from errors import MalformedTemplate
from normalizer import normalize_code, parse_credits, split_code
from requirements import (
    CHOICE,
    CREDIT_TOLERANCE,
    DEGREE_PROGRAM_LENGTHS,
    FIXED,
    FREE_ELECTIVE,
    GEN_ED_CODES,
    GEN_ED_NAMES,
    MAJOR_ELECTIVE,
    PLACEHOLDER,
    SEMESTER_TOLERANCE,
)

CHOICE_SPLIT = re.compile(r'\s+(?:or|and)\s+|\s*/\s*|\s*,\s*', re.IGNORECASE)
ANNOTATION_RE = re.compile(r'\s*\([^)]*\)')
BRACKETED_RE = re.compile(r'^\[(?P<inner>.+)\]$')
GEN_ED_PREFIX_RE = re.compile(r'^gen[\s-]?ed\s*[:\-]\s*(?P<rest>.+)$', re.IGNORECASE)
LEVEL_RE = re.compile(r'\b(?P<level>\d{3,4})\s*\+')
SUBJECT_ELECTIVE_RE = re.compile(
    r'^(?P<subject>[A-Za-z]{2,6})\s+(?P<level>\d{3,4})\s*\+?\s*(?:level\s+)?elective',
    re.IGNORECASE,
)
DEGREE_TOKEN_RE = re.compile(r'^[A-Za-z.\s]{2,12}$')
TERM_NAMES = ("fall", "spring", "summer", "winter")


def _degree_code(token: str) -> str:
    """'B.S.' -> 'BS', 'B.A.' -> 'BA', 'A.A.S.' -> 'AAS'."""
    return re.sub(r'[^A-Za-z]', '', token or "").upper()


def infer_major_and_degree(program_name: str) -> tuple[str, str]:
    """
    'Computer Science, B.S.' -> ('Computer Science', 'BS')
    Names without a trailing degree token return (name, '').
    """
    name = str(program_name or "").strip()
    if "," in name:
        head, tail = name.rsplit(",", 1)
        tail = tail.strip()
        if DEGREE_TOKEN_RE.match(tail) and _degree_code(tail) in DEGREE_PROGRAM_LENGTHS:
            return head.strip(), _degree_code(tail)
    return name, ""


def _term_of(semester_name: str) -> str:
    low = str(semester_name or "").lower()
    for term in TERM_NAMES:
        if term in low:
            return term.capitalize()
    return ""


def _gen_ed_categories(text: str) -> list[str]:
    tokens = [t for t in re.split(r'[\s/,()\-:+]+', text.upper()) if t]
    # "FG (A/B/C)" -> FG; the lettered subgroups are not separate codes.
    return list(dict.fromkeys(t for t in tokens if t in GEN_ED_CODES))


def _gen_ed_from_names(text: str) -> list[str]:
    low = text.lower()
    found = []
    for name in sorted(GEN_ED_NAMES, key=len, reverse=True):
        if re.search(r'\b' + re.escape(name) + r'\b', low):
            code = GEN_ED_NAMES[name]
            if code not in found:
                found.append(code)
            low = low.replace(name, " ")
    return found


def _placeholder(text: str, major_subject: str) -> dict:
    """
    Classify placeholder text into categories.

      'DS'                -> categories ['DS']
      'DA/DH/DL 300+'     -> categories ['DA', 'DH', 'DL'], min_level 300
      'ICS 400+ Elective' -> categories ['ICS'], subject 'ICS', min_level 400
      'Major Elective'    -> categories [<major subject>]
      'Elective'          -> categories ['ELECTIVE']
      'Calculus'          -> categories [], keywords 'Calculus'
    """
    level_m = LEVEL_RE.search(text)
    min_level = int(level_m.group("level")) if level_m else None
    out = {"categories": [], "subject": "", "min_level": min_level, "keywords": ""}

    gen_ed = _gen_ed_categories(text)
    if gen_ed:
        out["categories"] = gen_ed
        return out

    subject_m = SUBJECT_ELECTIVE_RE.match(text)
    if subject_m:
        subject = subject_m.group("subject").upper()
        out["categories"] = [subject]
        out["subject"] = subject
        out["min_level"] = int(subject_m.group("level"))
        return out

    low = text.lower()
    if re.search(r'\bmajor\b.*\belective\b', low):
        if major_subject:
            out["categories"] = [major_subject]
            out["subject"] = major_subject
        else:
            out["categories"] = [MAJOR_ELECTIVE]
        return out

    named = _gen_ed_from_names(text)
    if named:
        out["categories"] = named
        return out

    if re.search(r'\belectives?\b', low):
        out["categories"] = [FREE_ELECTIVE]
        return out

    out["keywords"] = ANNOTATION_RE.sub("", text).strip()
    return out


def _choice_options(text: str) -> list[str] | None:
    """'MATH 241 or MATH 251A' / 'ICS 211/212' / 'ICS 141 and ICS 241' -> codes, else None."""
    parts = [p.strip() for p in CHOICE_SPLIT.split(text) if p.strip()]
    if len(parts) < 2:
        return None
    options: list[str] = []
    last_subject = ""
    for part in parts:
        code = normalize_code(part)
        if code is None and last_subject and re.fullmatch(r'\d{3,4}[A-Za-z]?', part):
            code = normalize_code(f"{last_subject} {part}")
        if code is None:
            return None
        last_subject = split_code(code)[0]
        if code not in options:
            options.append(code)
    return options if len(options) >= 2 else None


def classify_slot(name: str, major_subject: str = "") -> dict:
    """
    Classify one template slot descriptor by lexical pattern.

    Returns {"kind": fixed|choice|placeholder, ...kind-specific fields}.
    """
    text = str(name or "").strip()
    if not text:
        raise MalformedTemplate("Template contains a course slot with no name.")

    bracketed = BRACKETED_RE.match(text)
    if bracketed:
        return {"kind": PLACEHOLDER, **_placeholder(bracketed.group("inner").strip(), major_subject)}
    gen_ed_prefixed = GEN_ED_PREFIX_RE.match(text)
    if gen_ed_prefixed:
        return {"kind": PLACEHOLDER, **_placeholder(gen_ed_prefixed.group("rest").strip(), major_subject)}

    base = ANNOTATION_RE.sub("", text).strip()
    code = normalize_code(base)
    if code is not None and split_code(code)[0] not in GEN_ED_CODES:
        return {"kind": FIXED, "course": code}

    options = _choice_options(base)
    if options is not None:
        return {"kind": CHOICE, "options": options}

    return {"kind": PLACEHOLDER, **_placeholder(text, major_subject)}


def infer_major_subject(raw_template: dict) -> str:
    """
    Most common course prefix among the template's concrete course slots,
    skipping Gen-Ed codes. Ties resolve alphabetically.
    """
    explicit = str(raw_template.get("major_subject", "") or "").strip().upper()
    if explicit:
        return explicit
    counts: Counter = Counter()
    for sem in _raw_semesters(raw_template):
        for course in sem.get("courses", []) or []:
            base = ANNOTATION_RE.sub("", str(course.get("name", "") or "")).strip()
            codes = [normalize_code(base)] if normalize_code(base) else (_choice_options(base) or [])
            for code in codes:
                subject = split_code(code)[0]
                if subject not in GEN_ED_CODES:
                    counts[subject] += 1
    if not counts:
        return ""
    best = max(counts.values())
    return sorted(s for s, n in counts.items() if n == best)[0]


def _raw_semesters(raw_template: dict) -> list[dict]:
    """Flatten years -> semesters (or accept a flat semesters list)."""
    if isinstance(raw_template.get("semesters"), list):
        return [dict(s, year_number=s.get("year_number")) for s in raw_template["semesters"] if isinstance(s, dict)]
    out = []
    for year in raw_template.get("years", []) or []:
        if not isinstance(year, dict):
            raise MalformedTemplate("Template year entries must be objects.")
        for sem in year.get("semesters", []) or []:
            if not isinstance(sem, dict):
                raise MalformedTemplate("Template semester entries must be objects.")
            out.append(dict(sem, year_number=year.get("year_number")))
    return out


def _check_program_length(
    template: dict,
    declared_total,
    credit_tolerance: int,
    semester_tolerance: int,
) -> None:
    n_semesters = len(template["semesters"])
    total = template["total_credits"]
    expected = DEGREE_PROGRAM_LENGTHS.get(template["degree"])
    if expected is not None:
        expected_semesters, expected_credits = expected
        if abs(n_semesters - expected_semesters) > semester_tolerance:
            raise MalformedTemplate(
                f"{template['program_name']}: {n_semesters} semesters, expected "
                f"{expected_semesters} (±{semester_tolerance}) for a {template['degree']}."
            )
        if abs(total - expected_credits) > credit_tolerance:
            raise MalformedTemplate(
                f"{template['program_name']}: {total} credits, expected "
                f"{expected_credits} (±{credit_tolerance}) for a {template['degree']}."
            )
    if declared_total is not None and abs(total - declared_total) > credit_tolerance:
        raise MalformedTemplate(
            f"{template['program_name']}: slots add up to {total} credits but the "
            f"template declares {declared_total} (±{credit_tolerance})."
        )


def parse_template(
    raw_template: dict,
    *,
    credit_tolerance: int | None = None,
    semester_tolerance: int | None = None,
) -> dict:
    """
    Normalize a raw pathway template into the semester/slot structure.

    Accepts the pathway collection shape
      {program_name, institution, total_credits,
       years: [{year_number, semesters: [{semester_name, credits,
                                          courses: [{name, credits}]}]}]}
    with optional campus/degree/major/track keys. Semesters with no courses
    are dropped and the rest numbered 1..N.

    Returns:
    {
      "program_name": str, "campus": str, "degree": str, "major": str,
      "track": str, "major_subject": str, "total_credits": number,
      "semesters": [
        {"index": 1, "name": "fall_semester", "year": 1, "term": "Fall",
         "credits": 15, "slots": [slot, ...]},
      ],
    }

    Each slot:
    {
      "slot_id": "S1-2", "semester": 1, "position": 2, "raw": "MATH 241 or MATH 251A",
      "kind": "choice", "credits": 4,
      "course": str (fixed), "options": [str] (choice),
      "categories": [str], "subject": str, "min_level": int|None,
      "keywords": str (placeholder),
    }

    Pure function. Raises MalformedTemplate on structural problems or when the
    program length is off from the degree's declared length beyond tolerance.
    """
    if not isinstance(raw_template, dict):
        raise MalformedTemplate("Template must be an object.")
    credit_tolerance = CREDIT_TOLERANCE if credit_tolerance is None else credit_tolerance
    semester_tolerance = SEMESTER_TOLERANCE if semester_tolerance is None else semester_tolerance

    program_name = str(raw_template.get("program_name", "") or "").strip()
    inferred_major, inferred_degree = infer_major_and_degree(program_name)
    degree = _degree_code(raw_template.get("degree", "")) or inferred_degree
    major = str(raw_template.get("major", "") or "").strip() or inferred_major
    if not major:
        raise MalformedTemplate("Template names no major or program_name.")
    major_subject = infer_major_subject(raw_template)

    semesters = []
    for raw_sem in _raw_semesters(raw_template):
        courses = raw_sem.get("courses", []) or []
        if not courses:
            continue
        index = len(semesters) + 1
        slots = []
        for position, raw_course in enumerate(courses, start=1):
            if isinstance(raw_course, str):
                raw_course = {"name": raw_course}
            if not isinstance(raw_course, dict):
                raise MalformedTemplate(f"Semester {index} has a non-object course entry.")
            name = str(raw_course.get("name", "") or "").strip()
            credits = parse_credits(raw_course.get("credits"))
            if credits is None:
                raise MalformedTemplate(f"Slot '{name}' in semester {index} has no usable credit value.")
            slot = {
                "slot_id": f"S{index}-{position}",
                "semester": index,
                "position": position,
                "raw": name,
                "credits": credits,
                "course": None,
                "options": [],
                "categories": [],
                "subject": "",
                "min_level": None,
                "keywords": "",
            }
            slot.update(classify_slot(name, major_subject))
            slots.append(slot)
        year = raw_sem.get("year_number")
        semesters.append({
            "index": index,
            "name": str(raw_sem.get("semester_name", "") or f"semester_{index}"),
            "year": int(year) if isinstance(year, (int, float)) or str(year or "").isdigit() else (index + 1) // 2,
            "term": _term_of(raw_sem.get("semester_name", "")),
            "credits": sum(s["credits"] for s in slots),
            "slots": slots,
        })

    if not semesters:
        raise MalformedTemplate(f"{program_name or major}: template has no semesters with courses.")

    template = {
        "program_name": program_name or major,
        "campus": str(raw_template.get("campus", "") or raw_template.get("institution", "") or "").strip(),
        "degree": degree,
        "major": major,
        "track": str(raw_template.get("track", "") or "").strip(),
        "major_subject": major_subject,
        "total_credits": sum(s["credits"] for s in semesters),
        "semesters": semesters,
    }
    _check_program_length(
        template,
        parse_credits(raw_template.get("total_credits")),
        credit_tolerance,
        semester_tolerance,
    )
    return template


def find_matching_template(program_name: str, templates: list[dict]) -> dict | None:
    """
    Find the raw template for a program name: exact (case-insensitive) match,
    then template name containing the query, then query containing the
    template name.
    """
    normalized = str(program_name or "").lower().strip()
    if not normalized:
        return None
    names = [(str(t.get("program_name", "") or "").lower().strip(), t) for t in templates]
    for name, template in names:
        if name == normalized:
            return template
    for name, template in names:
        if name and normalized in name:
            return template
    for name, template in names:
        if name and name in normalized:
            return template
    return None


def iter_slots(template: dict):
    for semester in template["semesters"]:
        for slot in semester["slots"]:
            yield slot
