"""
Read-only view over the course catalog.

Built once from a normalized course table and then only queried, so a
single instance can be shared by any number of concurrent generations.
"""

import re
import pandas as pd

from data_loader import normalize_courses_df
from normalizer import course_level, normalize_code, parse_credits, split_code
from prereq_parser import parse_prereqs


class CourseCatalog:
    def __init__(self, courses_df: pd.DataFrame, prereq_map: dict | None = None):
        if "prereq_hard" not in courses_df.columns or "tags" not in courses_df.columns:
            courses_df = normalize_courses_df(courses_df)
        prereq_map = prereq_map or {}

        courses: dict[str, dict] = {}
        by_tag: dict[str, list[str]] = {}
        for _, row in courses_df.iterrows():
            code = str(row["course_code"]).strip()
            if not code or code in courses:
                continue
            subject, number = split_code(code)
            tags = sorted({t for t in str(row.get("tags", "") or "").split(";") if t})
            credits = parse_credits(row.get("credits"), default=3)
            courses[code] = {
                "course_code": code,
                "course_title": str(row.get("course_title", "") or ""),
                "credits": credits,
                "prereq": prereq_map.get(code) or parse_prereqs(row.get("prereq_hard", "none")),
                "tags": tags,
                "description": str(row.get("description", "") or ""),
                "subject": subject,
                "number": number,
                "level": course_level(code),
            }
            for tag in tags:
                by_tag.setdefault(tag, []).append(code)

        self._courses = courses
        self._by_tag = {tag: tuple(sorted(codes)) for tag, codes in by_tag.items()}
        self._codes = frozenset(courses)

    @classmethod
    def from_data(cls, data: dict) -> "CourseCatalog":
        """Build from the dict returned by data_loader.load_data()."""
        return cls(data["courses_df"], data.get("prereq_map"))

    def __len__(self) -> int:
        return len(self._courses)

    def __contains__(self, code) -> bool:
        return (normalize_code(code) or code) in self._codes

    @property
    def codes(self) -> frozenset:
        return self._codes

    def get_course(self, code: str) -> dict | None:
        return self._courses.get(normalize_code(code) or code)

    def find_by_subject_tag(self, tag: str) -> list[dict]:
        """Courses carrying the tag, ordered by course code."""
        codes = self._by_tag.get(str(tag or "").strip().upper(), ())
        return [self._courses[c] for c in codes]

    def find_by_title_keywords(self, text: str) -> list[dict]:
        """Courses whose title contains every word of text, ordered by code."""
        words = [w for w in re.findall(r'[a-z0-9]+', str(text or "").lower()) if len(w) > 2]
        if not words:
            return []
        matches = []
        for code in sorted(self._courses):
            title = self._courses[code]["course_title"].lower()
            if all(w in title for w in words):
                matches.append(self._courses[code])
        return matches

    def all_courses(self) -> list[dict]:
        return [self._courses[c] for c in sorted(self._courses)]

    def all_prerequisites_of(self, code: str) -> dict:
        course = self.get_course(code)
        if course is None:
            return {"type": "none"}
        return course["prereq"]
