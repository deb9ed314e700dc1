"""
Shared builders for the roadmap test suites.

Provides:
- course() / make_catalog(): small in-memory catalogs
- raw_template(): pathway templates in the years -> semesters -> courses shape
- resolve(): parse + normalize + resolve in one call
- load_sample(): the catalog and pathways shipped in data/
"""

import os

import pandas as pd

from catalog import CourseCatalog
from data_loader import load_data, load_templates
from slot_resolver import resolve_slots
from template_parser import parse_template
from validators import normalize_profile

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")


def course(code, title="", credits=3, prereq="none", tags="", description=""):
    return {
        "course_code": code,
        "course_title": title or code,
        "credits": credits,
        "prereq": prereq,
        "tags": tags,
        "description": description,
    }


def make_catalog(rows) -> CourseCatalog:
    return CourseCatalog(pd.DataFrame(rows))


def raw_template(semesters, program_name="Computer Science", **extra):
    """
    semesters: [[("ICS 111", 4), ("DS", 3)], [...], ...]
    Two semesters per year, fall then spring.
    """
    years = {}
    for i, slots in enumerate(semesters):
        year = i // 2 + 1
        years.setdefault(year, []).append({
            "semester_name": "fall_semester" if i % 2 == 0 else "spring_semester",
            "credits": sum(c for _, c in slots),
            "courses": [{"name": name, "credits": credits} for name, credits in slots],
        })
    template = {
        "program_name": program_name,
        "institution": "University of Hawaii at Manoa",
        "years": [{"year_number": y, "semesters": sems} for y, sems in sorted(years.items())],
    }
    template.update(extra)
    return template


def resolve(semesters, catalog, scorer=None, debug=False, **profile):
    profile.setdefault("major", "Computer Science")
    template = parse_template(raw_template(semesters))
    return resolve_slots(template, normalize_profile(profile), catalog, scorer, debug=debug)


def slot(assignments, slot_id):
    return next(r for r in assignments if r["slot_id"] == slot_id)


def load_sample():
    data = load_data(os.path.join(DATA_DIR, "courses.json"))
    return CourseCatalog.from_data(data), load_templates(os.path.join(DATA_DIR, "pathways.json"))
