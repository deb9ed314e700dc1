from errors import UnknownCourse
from prereq_parser import ordering_requirement, prereqs_satisfied
from relevance import lexical_relevance
from requirements import (
    ALL_CANDIDATES_EXHAUSTED,
    ALREADY_COMPLETED,
    CHOICE,
    CHOICE_SELECTED,
    DUPLICATE_AVOIDED,
    EXACT_MATCH,
    FIXED,
    FREE_ELECTIVE,
    MAJOR_ELECTIVE,
    NO_MATCHING_COURSE,
    PLACEHOLDER,
    SUBSTITUTED,
    UNRESOLVED,
)
from template_parser import iter_slots
from unlocks import get_direct_unlocks


def _new_resolved(slot: dict) -> dict:
    return {
        "slot_id": slot["slot_id"],
        "kind": slot["kind"],
        "raw": slot["raw"],
        "slot_credits": slot["credits"],
        "credits": slot["credits"],
        "course_code": None,
        "course_title": None,
        "resolution": UNRESOLVED,
        "selected_by": UNRESOLVED,
        "reason_code": None,
        "template_semester": slot["semester"],
        "semester": slot["semester"],
        "position": slot["position"],
        "candidates_considered": 0,
    }


def _assign(resolved: dict, course: dict, resolution: str) -> None:
    resolved["course_code"] = course["course_code"]
    resolved["course_title"] = course["course_title"]
    resolved["credits"] = course["credits"]
    resolved["resolution"] = resolution
    resolved["selected_by"] = resolution


def _diag(code: str, slot_id: str, course_code: str | None, message: str) -> dict:
    return {"code": code, "slot_id": slot_id, "course_code": course_code, "message": message}


class _Draft:
    """Mutable per-run bookkeeping: which codes are used and where."""

    def __init__(self, completed: set[str]):
        self.completed = completed
        self.used: dict[str, str] = {}            # course_code -> first slot_id using it
        self.by_semester: dict[int, set[str]] = {}

    def claim(self, code: str, slot_id: str, semester: int) -> None:
        self.used.setdefault(code, slot_id)
        self.by_semester.setdefault(semester, set()).add(code)

    def satisfied_before(self, semester: int) -> set[str]:
        codes = set(self.completed)
        for sem, sem_codes in self.by_semester.items():
            if sem < semester:
                codes |= sem_codes
        return codes


def _placeholder_pool(slot: dict, catalog) -> list[dict]:
    """Catalog courses matching the placeholder's categories / keywords."""
    pool: dict[str, dict] = {}
    for category in slot.get("categories", []):
        if category in {FREE_ELECTIVE, MAJOR_ELECTIVE}:
            courses = catalog.all_courses()
        else:
            courses = catalog.find_by_subject_tag(category)
        for course in courses:
            pool.setdefault(course["course_code"], course)
    if slot.get("keywords"):
        for course in catalog.find_by_title_keywords(slot["keywords"]):
            pool.setdefault(course["course_code"], course)

    min_level = slot.get("min_level")
    subject = slot.get("subject")
    out = []
    for code in sorted(pool):
        course = pool[code]
        if min_level is not None and (course["level"] is None or course["level"] < min_level):
            continue
        if subject and course["subject"] != subject:
            continue
        out.append(course)
    return out


def resolve_slots(
    template: dict,
    profile: dict,
    catalog,
    scorer=None,
    reverse_map: dict | None = None,
    debug: bool = False,
) -> dict:
    """
    Resolve every template slot to a concrete course (or mark it unresolved).

    Order of work:
      1. Fixed slots claim their course (UnknownCourse if absent from catalog).
      2. Choice slots, in template order.
      3. Placeholder slots, in template order.

    Choice ranking (best first):
      not used elsewhere -> prerequisites met by completed + earlier-semester
      courses -> relevance score desc -> course code asc
    Placeholder ranking:
      prerequisites met -> closest credit value to the slot -> relevance
      score desc -> course code asc
    (used / excluded / already-completed courses are filtered out)

    Returns:
    {
      "assignments": [resolved slot, ...],   # template order
      "diagnostics": [{"code", "slot_id", "course_code", "message"}, ...],
      "debug": [...]                         # only when debug=True
    }
    """
    scorer = scorer or lexical_relevance
    interests = list(profile.get("interests", []))
    completed = set(profile.get("completed", {}))
    exclusions = set(profile.get("exclusions", set()))
    reverse_map = reverse_map or {}

    draft = _Draft(completed)
    diagnostics: list[dict] = []
    trace: list[dict] = []
    score_cache: dict[str, float] = {}

    def score(course: dict) -> float:
        code = course["course_code"]
        if code not in score_cache:
            score_cache[code] = float(scorer(course, interests))
        return score_cache[code]

    def ready(course: dict, satisfied: set[str]) -> bool:
        return prereqs_satisfied(ordering_requirement(course["prereq"]), satisfied)

    def record_trace(slot: dict, ranked: list[tuple], chosen: str | None) -> None:
        if not debug:
            return
        trace.append({
            "slot_id": slot["slot_id"],
            "raw": slot["raw"],
            "chosen": chosen,
            "candidates": [
                {
                    "rank": i,
                    "course_code": c["course_code"],
                    "score": score(c),
                    "prereqs_ready": is_ready,
                    "used_elsewhere": c["course_code"] in draft.used and c["course_code"] != chosen,
                    "unlocks": get_direct_unlocks(c["course_code"], reverse_map),
                }
                for i, (c, is_ready) in enumerate(ranked[:30], start=1)
            ],
        })

    slots = list(iter_slots(template))
    resolved_by_id = {slot["slot_id"]: _new_resolved(slot) for slot in slots}

    # 1. Fixed
    for slot in slots:
        if slot["kind"] != FIXED:
            continue
        course = catalog.get_course(slot["course"])
        if course is None:
            raise UnknownCourse(slot["course"], slot["slot_id"])
        resolved = resolved_by_id[slot["slot_id"]]
        resolution = ALREADY_COMPLETED if course["course_code"] in completed else EXACT_MATCH
        _assign(resolved, course, resolution)
        resolved["candidates_considered"] = 1
        draft.claim(course["course_code"], slot["slot_id"], slot["semester"])

    # 2. Choice
    for slot in slots:
        if slot["kind"] != CHOICE:
            continue
        resolved = resolved_by_id[slot["slot_id"]]
        options = [catalog.get_course(o) for o in slot["options"]]
        options = [c for c in options if c is not None]
        resolved["candidates_considered"] = len(options)
        if not options:
            resolved["reason_code"] = NO_MATCHING_COURSE
            diagnostics.append(_diag(
                NO_MATCHING_COURSE, slot["slot_id"], None,
                f"None of {', '.join(slot['options'])} is in the catalog.",
            ))
            record_trace(slot, [], None)
            continue

        done = [c for c in options if c["course_code"] in completed and c["course_code"] not in draft.used]
        if done:
            course = min(done, key=lambda c: c["course_code"])
            _assign(resolved, course, ALREADY_COMPLETED)
            draft.claim(course["course_code"], slot["slot_id"], slot["semester"])
            record_trace(slot, [(course, True)], course["course_code"])
            continue

        satisfied = draft.satisfied_before(slot["semester"])
        ranked = sorted(
            ((c, ready(c, satisfied)) for c in options),
            key=lambda pair: (
                0 if pair[1] else 1,
                -score(pair[0]),
                pair[0]["course_code"],
            ),
        )
        chosen = None
        for course, _ in ranked:
            if course["course_code"] in draft.used:
                diagnostics.append(_diag(
                    DUPLICATE_AVOIDED, slot["slot_id"], course["course_code"],
                    f"{course['course_code']} already counts toward "
                    f"{draft.used[course['course_code']]}.",
                ))
                continue
            chosen = course
            break
        if chosen is None:
            resolved["reason_code"] = ALL_CANDIDATES_EXHAUSTED
            diagnostics.append(_diag(
                ALL_CANDIDATES_EXHAUSTED, slot["slot_id"], None,
                f"Every option for '{slot['raw']}' is already used elsewhere in the plan.",
            ))
        else:
            _assign(resolved, chosen, CHOICE_SELECTED)
            draft.claim(chosen["course_code"], slot["slot_id"], slot["semester"])
        record_trace(slot, ranked, chosen["course_code"] if chosen else None)

    # 3. Placeholder
    for slot in slots:
        if slot["kind"] != PLACEHOLDER:
            continue
        resolved = resolved_by_id[slot["slot_id"]]
        pool = [
            c for c in _placeholder_pool(slot, catalog)
            if c["course_code"] not in completed and c["course_code"] not in exclusions
        ]
        resolved["candidates_considered"] = len(pool)
        if not pool:
            resolved["reason_code"] = NO_MATCHING_COURSE
            diagnostics.append(_diag(
                NO_MATCHING_COURSE, slot["slot_id"], None,
                f"No catalog course matches '{slot['raw']}'.",
            ))
            record_trace(slot, [], None)
            continue

        available = [c for c in pool if c["course_code"] not in draft.used]
        if not available:
            resolved["reason_code"] = ALL_CANDIDATES_EXHAUSTED
            diagnostics.append(_diag(
                ALL_CANDIDATES_EXHAUSTED, slot["slot_id"], None,
                f"Every course matching '{slot['raw']}' is already used elsewhere in the plan.",
            ))
            satisfied = draft.satisfied_before(slot["semester"])
            record_trace(slot, [(c, ready(c, satisfied)) for c in pool], None)
            continue

        satisfied = draft.satisfied_before(slot["semester"])
        ranked = sorted(
            ((c, ready(c, satisfied)) for c in available),
            key=lambda pair: (
                0 if pair[1] else 1,
                abs(float(pair[0]["credits"]) - float(slot["credits"])),
                -score(pair[0]),
                pair[0]["course_code"],
            ),
        )
        chosen = ranked[0][0]
        _assign(resolved, chosen, SUBSTITUTED)
        draft.claim(chosen["course_code"], slot["slot_id"], slot["semester"])
        record_trace(slot, ranked, chosen["course_code"])

    result = {
        "assignments": [resolved_by_id[slot["slot_id"]] for slot in slots],
        "diagnostics": diagnostics,
    }
    if debug:
        result["debug"] = trace
    return result
