from prereq_parser import build_prereq_check_string, earliest_ready_index, ordering_requirement
from requirements import (
    ALREADY_COMPLETED,
    PREREQUISITE_MANUAL_REVIEW,
    PREREQUISITE_ORDER,
    PREREQUISITE_UNREACHABLE,
    PREREQUISITE_VIOLATION,
    RELOCATED_FOR_PREREQUISITE,
    UNRESOLVED,
)


def is_planned(resolved: dict) -> bool:
    """True for slots that put a course on the student's schedule."""
    return resolved["resolution"] not in {UNRESOLVED, ALREADY_COMPLETED}


def slot_load(resolved: dict) -> float:
    """Credits a slot adds to its semester's load. Prior coursework adds none."""
    if resolved["resolution"] == ALREADY_COMPLETED:
        return 0
    return resolved["credits"]


def semester_loads(assignments: list[dict]) -> dict[int, float]:
    loads: dict[int, float] = {}
    for resolved in assignments:
        loads[resolved["semester"]] = loads.get(resolved["semester"], 0) + slot_load(resolved)
    return loads


def build_ready_at(assignments: list[dict], completed) -> dict[str, int]:
    """
    First semester index at which each course counts as satisfied:
    0 for completed coursework, planned semester + 1 for planned courses.
    """
    ready_at = {code: 0 for code in completed}
    for resolved in assignments:
        if not is_planned(resolved):
            continue
        code = resolved["course_code"]
        ready = resolved["semester"] + 1
        if code not in ready_at or ready < ready_at[code]:
            ready_at[code] = ready
    return ready_at


def _mark_violation(resolved: dict, reason_code: str, diagnostics: list, message: str) -> None:
    resolved["resolution"] = PREREQUISITE_VIOLATION
    resolved["reason_code"] = reason_code
    diagnostics.append({
        "code": reason_code,
        "slot_id": resolved["slot_id"],
        "course_code": resolved["course_code"],
        "message": message,
    })


def ready_at_excluding(resolved: dict, assignments: list[dict], completed) -> dict[str, int]:
    # A course never satisfies its own prerequisite.
    others = [r for r in assignments if r is not resolved]
    return build_ready_at(others, completed)


def schedule(
    assignments: list[dict],
    completed,
    catalog,
    credit_cap: int,
    n_semesters: int,
) -> list[dict]:
    """
    Verify and repair prerequisite ordering in place.

    Courses are visited once, in (template semester, position) order. For a
    course scheduled at or before a semester in which one of its
    prerequisites is still pending, a single repair is attempted: move it to
    the earliest semester at or after the one where the prerequisite is met
    that still has credit headroom under credit_cap, up to and including the
    final semester. If none fits, or the prerequisite can never be met from
    completed + planned courses, the slot is marked prerequisite-violation
    and left where it is. Nothing is retried.

    Prerequisite text the parser cannot read is reported for manual review
    and ordered after every course code it names.

    Returns the diagnostics produced.
    """
    diagnostics: list[dict] = []
    loads = semester_loads(assignments)

    for resolved in sorted(assignments, key=lambda r: (r["template_semester"], r["position"])):
        if not is_planned(resolved):
            continue
        code = resolved["course_code"]
        parsed = catalog.all_prerequisites_of(code)
        if parsed.get("type") == "unsupported":
            diagnostics.append({
                "code": PREREQUISITE_MANUAL_REVIEW,
                "slot_id": resolved["slot_id"],
                "course_code": code,
                "message": f"{code} has a prerequisite that needs manual review: {parsed.get('raw', '')}",
            })
        parsed = ordering_requirement(parsed)

        ready_at = ready_at_excluding(resolved, assignments, completed)
        ready_index = earliest_ready_index(parsed, ready_at)
        if ready_index is None:
            _mark_violation(
                resolved, PREREQUISITE_UNREACHABLE, diagnostics,
                f"{code} requires {build_prereq_check_string(parsed, set(completed), set(ready_at))}, "
                "which is neither completed nor in the plan.",
            )
            continue
        if ready_index <= resolved["semester"]:
            continue

        credits = slot_load(resolved)
        destination = None
        for semester in range(max(ready_index, 1), n_semesters + 1):
            if loads.get(semester, 0) + credits <= credit_cap:
                destination = semester
                break
        if destination is None:
            _mark_violation(
                resolved, PREREQUISITE_ORDER, diagnostics,
                f"{code} is planned before its prerequisites and no semester from "
                f"{ready_index} on has room for it.",
            )
            continue

        loads[resolved["semester"]] -= credits
        loads[destination] = loads.get(destination, 0) + credits
        diagnostics.append({
            "code": RELOCATED_FOR_PREREQUISITE,
            "slot_id": resolved["slot_id"],
            "course_code": code,
            "message": f"{code} moved from semester {resolved['semester']} to {destination} "
                       "to follow its prerequisites.",
        })
        resolved["semester"] = destination

    diagnostics.extend(verify_order(assignments, completed, catalog))
    return diagnostics


def verify_order(assignments: list[dict], completed, catalog) -> list[dict]:
    """
    Flag every planned course that still sits at or before a pending
    prerequisite. Used after any pass that moves courses.
    """
    diagnostics: list[dict] = []
    for resolved in sorted(assignments, key=lambda r: (r["semester"], r["template_semester"], r["position"])):
        if not is_planned(resolved) or resolved["resolution"] == PREREQUISITE_VIOLATION:
            continue
        parsed = ordering_requirement(catalog.all_prerequisites_of(resolved["course_code"]))
        ready_at = ready_at_excluding(resolved, assignments, completed)
        ready_index = earliest_ready_index(parsed, ready_at)
        if ready_index is None or ready_index > resolved["semester"]:
            in_time = {c for c, r in ready_at.items() if r <= resolved["semester"]}
            _mark_violation(
                resolved, PREREQUISITE_ORDER, diagnostics,
                f"{resolved['course_code']} in semester {resolved['semester']} is not preceded by "
                f"its prerequisites ({build_prereq_check_string(parsed, set(completed), in_time)}).",
            )
    return diagnostics
