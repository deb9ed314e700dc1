"""
Generate a roadmap from catalog, pathway and profile files.

Importable for tests and runnable as a standalone CLI.

Usage:
    python scripts/generate_roadmap.py --program "Computer Science, B.S." \
        --major "Computer Science" --interests "data science" --completed "ICS 111"
    python scripts/generate_roadmap.py --program "Computer Science, B.S." --profile profile.json --format program
    python scripts/generate_roadmap.py --template my_pathway.json --profile profile.json --debug
"""

import argparse
import json
import os
import sys

from dotenv import load_dotenv

ROOT = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..")
DEFAULT_DATA = os.path.join(ROOT, "data", "courses.json")
DEFAULT_TEMPLATES = os.path.join(ROOT, "data", "pathways.json")


def _read_json(path: str):
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


def _profile_from_opts(opts) -> dict:
    if opts.profile:
        profile = _read_json(opts.profile)
    else:
        profile = {}
    if opts.major:
        profile["major"] = opts.major
    if opts.track:
        profile["track"] = opts.track
    if opts.completed:
        profile["completed"] = opts.completed
    if opts.interests:
        profile["interests"] = opts.interests
    if opts.career_goal:
        profile["career_goal"] = opts.career_goal
    if opts.skills:
        profile["skills"] = opts.skills
    if opts.exclude:
        profile["exclusions"] = opts.exclude
    return profile


def format_text(roadmap: dict) -> str:
    lines = [f"{roadmap['program_name']} ({roadmap['campus'] or 'campus not listed'})"]
    for semester in roadmap["semesters"]:
        lines.append("")
        lines.append(f"{semester['label']}  [{semester['credits']} cr]")
        for slot in semester["slots"]:
            course = slot["course_code"] or "-"
            title = slot["course_title"] or slot["raw"]
            lines.append(f"  {course:<10} {title:<45} {slot['credits']:>3}  {slot['resolution']}")
    lines.append("")
    lines.append(
        f"Planned {roadmap['planned_credits']} cr, completed {roadmap['completed_credits']} cr, "
        f"total {roadmap['total_credits']} cr."
    )
    for entry in roadmap["unresolved"]:
        lines.append(f"[WARN] Unresolved {entry['slot_id']} '{entry['raw']}': {entry['reason_code']}")
    for entry in roadmap["violations"]:
        lines.append(f"[WARN] Prerequisite violation {entry['slot_id']} {entry['course_code']}: {entry['reason_code']}")
    return "\n".join(lines)


def main(args=None):
    load_dotenv()
    parser = argparse.ArgumentParser(description="Generate a semester-by-semester roadmap.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--program", type=str, help="Program name to look up in the pathway collection.")
    source.add_argument("--template", type=str, help="Path to a single pathway template JSON file.")
    parser.add_argument("--profile", type=str, help="Path to a student profile JSON file.")
    parser.add_argument("--major", type=str, help="Declared major (overrides the profile file).")
    parser.add_argument("--track", type=str, help="Declared track.")
    parser.add_argument("--completed", type=str, help="Completed courses, comma-separated.")
    parser.add_argument("--interests", type=str, help="Career interests, comma-separated.")
    parser.add_argument("--career-goal", type=str, help="Career goal.")
    parser.add_argument("--skills", type=str, help="Skills to carry onto the roadmap, comma-separated.")
    parser.add_argument("--exclude", type=str, help="Courses to avoid, comma-separated.")
    parser.add_argument("--data", type=str, default=os.environ.get("DATA_PATH", DEFAULT_DATA),
                        help="Course catalog file (json, csv or xlsx).")
    parser.add_argument("--templates", type=str, default=os.environ.get("TEMPLATES_PATH", DEFAULT_TEMPLATES),
                        help="Pathway collection JSON file.")
    parser.add_argument("--credit-cap", type=int, help="Per-semester credit cap.")
    parser.add_argument("--overflow-policy", type=str, choices=["placeholder-first", "last-slot-first"])
    parser.add_argument("--scorer", type=str, choices=["lexical", "openai"], help="Relevance scorer.")
    parser.add_argument("--debug", action="store_true", help="Include the ranking trace.")
    parser.add_argument("--format", type=str, choices=["text", "json", "program"], default="text")
    parser.add_argument("--output", type=str, help="Write to this file instead of stdout.")
    opts = parser.parse_args(args)

    # Import backend modules (add backend/ to path)
    backend_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend")
    sys.path.insert(0, backend_dir)
    from catalog import CourseCatalog
    from data_loader import load_data, load_templates
    from errors import RoadmapError
    from llm_scorer import get_scorer
    from roadmap_engine import generate, roadmap_to_json
    from template_parser import find_matching_template
    from timeline import roadmap_to_program

    catalog = CourseCatalog.from_data(load_data(opts.data))
    if opts.template:
        template = _read_json(opts.template)
    else:
        template = find_matching_template(opts.program, load_templates(opts.templates))
        if template is None:
            print(f"[FATAL] No pathway found for '{opts.program}'.", file=sys.stderr)
            return 2

    profile = _profile_from_opts(opts)
    if not profile.get("major"):
        profile["major"] = template.get("major") or template.get("program_name", "")

    try:
        roadmap = generate(
            template,
            profile,
            catalog,
            get_scorer(opts.scorer),
            credit_cap=opts.credit_cap,
            overflow_policy=opts.overflow_policy,
            debug=opts.debug,
        )
    except RoadmapError as exc:
        print(f"[FATAL] Could not build a plan for this program: {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"[FATAL] Invalid input: {exc}", file=sys.stderr)
        return 2

    if opts.format == "json":
        rendered = roadmap_to_json(roadmap)
    elif opts.format == "program":
        rendered = json.dumps(roadmap_to_program(roadmap), indent=2, ensure_ascii=False)
    else:
        rendered = format_text(roadmap)

    if opts.output:
        with open(opts.output, "w", encoding="utf-8") as fh:
            fh.write(rendered + "\n")
        print(f"[OK] Wrote roadmap to {opts.output}")
    else:
        print(rendered)

    if roadmap["unresolved"] or roadmap["violations"]:
        print(
            f"[INFO] {len(roadmap['unresolved'])} unresolved slot(s), "
            f"{len(roadmap['violations'])} prerequisite violation(s) flagged for review.",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
