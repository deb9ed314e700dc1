import math

from prereq_parser import earliest_ready_index, prereq_course_codes
from prereq_scheduler import (
    is_planned,
    ready_at_excluding,
    semester_loads,
    slot_load,
    verify_order,
)
from requirements import (
    ALREADY_COMPLETED,
    CREDIT_OVERFLOW_EXTENDED,
    CREDIT_OVERFLOW_MOVED,
    OVERFLOW_KIND_ORDER,
    PREREQUISITE_VIOLATION,
    UNRESOLVED,
)
from timeline import extension_semester, semester_label


def _display_key(resolved: dict) -> tuple:
    # Slots native to a semester keep template order; slots moved in follow them.
    native = resolved["semester"] == resolved["template_semester"]
    return (0 if native else 1, resolved["template_semester"], resolved["position"])


def _yield_order(occupants: list[dict], policy: str) -> list[dict]:
    """Order in which slots give up their place when a semester is over the cap."""
    ordered = sorted(occupants, key=_display_key)
    if policy == "last-slot-first":
        return list(reversed(ordered))
    # placeholder-first: placeholders, then choices, then fixed; last slot first within a kind
    return [
        r for _, r in sorted(
            enumerate(ordered),
            key=lambda pair: (OVERFLOW_KIND_ORDER.get(pair[1]["kind"], 99), -pair[0]),
        )
    ]


def _first_dependent_semester(resolved: dict, assignments: list[dict], catalog) -> float:
    if not is_planned(resolved):
        return math.inf
    code = resolved["course_code"]
    semesters = [
        r["semester"] for r in assignments
        if r is not resolved and is_planned(r)
        and code in prereq_course_codes(catalog.all_prerequisites_of(r["course_code"]))
    ]
    return min(semesters, default=math.inf)


def _find_destination(
    resolved: dict,
    assignments: list[dict],
    loads: dict,
    n_semesters: int,
    completed,
    catalog,
    credit_cap: int,
) -> int | None:
    """
    Nearest later semester with headroom that stays before the slot's
    dependents; failing that, the nearest earlier semester with headroom
    that is after its prerequisites.
    """
    here = resolved["semester"]
    credits = slot_load(resolved)
    before = _first_dependent_semester(resolved, assignments, catalog)

    for semester in range(here + 1, n_semesters + 1):
        if semester >= before:
            break
        if loads.get(semester, 0) + credits <= credit_cap:
            return semester

    if is_planned(resolved):
        ready_index = earliest_ready_index(
            catalog.all_prerequisites_of(resolved["course_code"]),
            ready_at_excluding(resolved, assignments, completed),
        )
        if ready_index is None:
            return None
    else:
        ready_index = 1
    for semester in range(here - 1, max(ready_index, 1) - 1, -1):
        if semester < before and loads.get(semester, 0) + credits <= credit_cap:
            return semester
    return None


def _move(resolved: dict, destination: int, loads: dict) -> int:
    origin = resolved["semester"]
    credits = slot_load(resolved)
    loads[origin] -= credits
    loads[destination] = loads.get(destination, 0) + credits
    resolved["semester"] = destination
    return origin


def redistribute_overflow(
    assignments: list[dict],
    semesters_meta: list[dict],
    completed,
    catalog,
    credit_cap: int,
    overflow_policy: str,
) -> list[dict]:
    """
    Bring every semester under credit_cap by moving slots out of it.

    The yielding slot is picked by overflow_policy. It goes to the nearest
    semester that keeps prerequisite order (see _find_destination); when no
    semester has room, a new semester is appended after the last one. A lone
    slot heavier than the cap stays where it is.

    Mutates assignments and semesters_meta; returns diagnostics.
    """
    diagnostics: list[dict] = []
    loads = semester_loads(assignments)

    index = 1
    while index <= len(semesters_meta):
        while loads.get(index, 0) > credit_cap:
            occupants = [r for r in assignments if r["semester"] == index and slot_load(r) > 0]
            if len(occupants) <= 1:
                break
            order = _yield_order(occupants, overflow_policy)

            moved = False
            for resolved in order:
                destination = _find_destination(
                    resolved, assignments, loads, len(semesters_meta), completed, catalog, credit_cap,
                )
                if destination is None:
                    continue
                origin = _move(resolved, destination, loads)
                diagnostics.append({
                    "code": CREDIT_OVERFLOW_MOVED,
                    "slot_id": resolved["slot_id"],
                    "course_code": resolved["course_code"],
                    "message": f"Semester {origin} was over the {credit_cap}-credit cap; "
                               f"'{resolved['raw']}' moved to semester {destination}.",
                })
                moved = True
                break
            if moved:
                continue

            free = [r for r in order if _first_dependent_semester(r, assignments, catalog) == math.inf]
            resolved = free[0] if free else order[0]
            semesters_meta.append(extension_semester(semesters_meta[-1]))
            destination = len(semesters_meta)
            origin = _move(resolved, destination, loads)
            diagnostics.append({
                "code": CREDIT_OVERFLOW_EXTENDED,
                "slot_id": resolved["slot_id"],
                "course_code": resolved["course_code"],
                "message": f"Semester {origin} was over the {credit_cap}-credit cap and no semester "
                           f"had room; '{resolved['raw']}' moved to added semester {destination}.",
            })
        index += 1
    return diagnostics


def _public_slot(resolved: dict) -> dict:
    return {k: v for k, v in resolved.items() if k != "position"}


def assemble(
    template: dict,
    assignments: list[dict],
    completed,
    catalog,
    diagnostics: list[dict],
    credit_cap: int,
    overflow_policy: str,
) -> dict:
    """
    Merge resolved slots into final semesters and compute totals.

    Runs the credit-cap redistribution, re-verifies prerequisite order after
    any moves, then builds:
    {
      "program_name", "campus", "degree", "major", "track", "credit_cap",
      "semesters": [{"index", "name", "label", "year", "term", "credits", "slots"}],
      "total_credits", "planned_credits", "completed_credits",
      "unresolved": [{"slot_id", "raw", "semester", "reason_code"}],
      "violations": [{"slot_id", "course_code", "semester", "reason_code"}],
      "diagnostics": [...],
    }
    """
    diagnostics = list(diagnostics)
    semesters_meta = [
        {"index": s["index"], "name": s["name"], "year": s["year"], "term": s["term"]}
        for s in template["semesters"]
    ]
    diagnostics.extend(redistribute_overflow(
        assignments, semesters_meta, completed, catalog, credit_cap, overflow_policy,
    ))
    diagnostics.extend(verify_order(assignments, completed, catalog))

    semesters = []
    for meta in semesters_meta:
        slots = sorted((r for r in assignments if r["semester"] == meta["index"]), key=_display_key)
        semester = {
            "index": meta["index"],
            "name": meta["name"],
            "label": semester_label(meta["index"], meta["year"], meta["term"]),
            "year": meta["year"],
            "term": meta["term"],
            "credits": sum(slot_load(r) for r in slots),
            "slots": [_public_slot(r) for r in slots],
        }
        if meta.get("extension"):
            semester["extension"] = True
        semesters.append(semester)

    planned_credits = sum(s["credits"] for s in semesters)
    completed_credits = sum(r["credits"] for r in assignments if r["resolution"] == ALREADY_COMPLETED)
    ordered = sorted(assignments, key=lambda r: (r["semester"],) + _display_key(r))

    return {
        "program_name": template["program_name"],
        "campus": template["campus"],
        "degree": template["degree"],
        "major": template["major"],
        "track": template["track"],
        "credit_cap": credit_cap,
        "semesters": semesters,
        "total_credits": planned_credits + completed_credits,
        "planned_credits": planned_credits,
        "completed_credits": completed_credits,
        "unresolved": [
            {"slot_id": r["slot_id"], "raw": r["raw"], "semester": r["semester"], "reason_code": r["reason_code"]}
            for r in ordered if r["resolution"] == UNRESOLVED
        ],
        "violations": [
            {"slot_id": r["slot_id"], "course_code": r["course_code"], "semester": r["semester"],
             "reason_code": r["reason_code"]}
            for r in ordered if r["resolution"] == PREREQUISITE_VIOLATION
        ],
        "diagnostics": diagnostics,
    }
