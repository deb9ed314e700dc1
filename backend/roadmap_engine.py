"""
Roadmap generation: template + student profile + catalog snapshot -> roadmap.

    roadmap = generate(raw_or_parsed_template, profile, catalog)

Runs the slot resolver, the prerequisite scheduler and the plan assembler in
that order. Bad inputs raise a RoadmapError subclass and no roadmap is
produced; plan-quality problems (unresolved slots, prerequisite violations)
come back as data on the roadmap. Pure and synchronous: no I/O, no shared
mutable state, so one catalog can serve many concurrent generations.
"""

import json
import re

from errors import ProfileTemplateMismatch
from plan_assembler import assemble
from prereq_scheduler import schedule
from relevance import lexical_relevance
from requirements import DEFAULT_CREDIT_CAP, DEFAULT_OVERFLOW_POLICY, OVERFLOW_POLICIES
from slot_resolver import resolve_slots
from template_parser import infer_major_and_degree, parse_template
from unlocks import build_reverse_prereq_map
from validators import normalize_profile


def _norm(text) -> str:
    return re.sub(r'[^a-z0-9]+', ' ', str(text or "").lower()).strip()


def _major_names(template: dict) -> set[str]:
    program = template["program_name"]
    names = {_norm(template["major"]), _norm(program), _norm(infer_major_and_degree(program)[0])}
    return {n for n in names if n}


def check_profile_matches(template: dict, profile: dict) -> None:
    """
    Raise ProfileTemplateMismatch unless the profile's major is the
    template's major or program name, ignoring case and punctuation. A
    fragment such as "Science" does not match "Computer Science". When both
    sides name a track, the tracks must be equal too.
    """
    wanted = _norm(profile.get("major"))
    if not wanted or wanted not in _major_names(template):
        raise ProfileTemplateMismatch(
            f"Profile major '{profile.get('major')}' does not match the "
            f"{template['program_name']} template."
        )
    profile_track, template_track = _norm(profile.get("track")), _norm(template.get("track"))
    if profile_track and template_track and profile_track != template_track:
        raise ProfileTemplateMismatch(
            f"Profile track '{profile.get('track')}' does not match the "
            f"template track '{template.get('track')}'."
        )


def _is_parsed_template(template) -> bool:
    semesters = template.get("semesters") if isinstance(template, dict) else None
    return bool(semesters) and all(isinstance(s, dict) and "slots" in s for s in semesters)


def _is_normalized_profile(profile) -> bool:
    return (
        isinstance(profile, dict)
        and isinstance(profile.get("completed"), dict)
        and isinstance(profile.get("exclusions"), (set, frozenset))
        and isinstance(profile.get("interests"), list)
    )


def generate(
    template: dict,
    profile: dict,
    catalog,
    scorer=None,
    *,
    credit_cap: int | None = None,
    overflow_policy: str | None = None,
    debug: bool = False,
) -> dict:
    """
    Build a roadmap.

    template: raw pathway template or the output of parse_template().
    profile:  raw profile dict or the output of validators.normalize_profile().
    catalog:  CourseCatalog (or anything with get_course / find_by_subject_tag /
              find_by_title_keywords / all_courses / all_prerequisites_of).
    scorer:   (course, interests) -> number, higher is better. Defaults to
              the lexical overlap score.

    Raises MalformedTemplate, UnknownCourse, ProfileTemplateMismatch, and
    ValueError for an invalid profile or overflow policy.
    """
    if not _is_parsed_template(template):
        template = parse_template(template)
    if not _is_normalized_profile(profile):
        profile = normalize_profile(profile)
    credit_cap = DEFAULT_CREDIT_CAP if credit_cap is None else int(credit_cap)
    if credit_cap < 1:
        raise ValueError("credit_cap must be a positive number of credits.")
    overflow_policy = overflow_policy or DEFAULT_OVERFLOW_POLICY
    if overflow_policy not in OVERFLOW_POLICIES:
        raise ValueError(
            f"Unknown overflow policy '{overflow_policy}'. "
            f"Expected one of: {', '.join(sorted(OVERFLOW_POLICIES))}."
        )

    check_profile_matches(template, profile)

    completed = set(profile["completed"])
    reverse_map = build_reverse_prereq_map(catalog) if debug else None
    resolution = resolve_slots(
        template, profile, catalog, scorer or lexical_relevance,
        reverse_map=reverse_map, debug=debug,
    )
    assignments = resolution["assignments"]
    diagnostics = list(resolution["diagnostics"])
    diagnostics.extend(schedule(
        assignments, completed, catalog, credit_cap, len(template["semesters"]),
    ))
    roadmap = assemble(
        template, assignments, completed, catalog, diagnostics, credit_cap, overflow_policy,
    )
    roadmap["career_goal"] = profile["career_goal"]
    roadmap["interests"] = list(profile["interests"])
    roadmap["skills"] = list(profile.get("skills", []))
    if debug:
        roadmap["debug"] = resolution["debug"]
    return roadmap


def roadmap_to_json(roadmap: dict) -> str:
    """Stable serialization: identical roadmaps give identical bytes."""
    return json.dumps(roadmap, sort_keys=True, indent=2, ensure_ascii=False)
