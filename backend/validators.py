"""
Pure input-validation helpers for student profiles.
No Flask or data-loader imports.
"""

import re
from typing import Dict, List

from normalizer import normalize_code


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [p for p in re.split(r'[,\n;]+', value) if p.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    raise ValueError(f"Expected a list or delimited string, got {type(value).__name__}.")


def _normalize_completed(raw) -> Dict[str, str]:
    """
    Accepts:
      ["ICS 111", "MATH 241"]
      [{"code": "ICS 111", "term": "Fall 2025"}, ...]
      {"ICS 111": "Fall 2025", ...}
      "ICS 111, MATH 241"
    Returns {code: term} with '' for unknown terms.
    """
    if isinstance(raw, dict):
        items = [{"code": k, "term": v} for k, v in raw.items()]
    else:
        items = _as_list(raw)

    completed: Dict[str, str] = {}
    invalid: List[str] = []
    for item in items:
        if isinstance(item, dict):
            code_raw = item.get("code") or item.get("course_code") or ""
            term = str(item.get("term", "") or "").strip()
        else:
            code_raw, term = item, ""
        code = normalize_code(str(code_raw))
        if code is None:
            invalid.append(str(code_raw).strip())
            continue
        if code not in completed or (term and not completed[code]):
            completed[code] = term
    if invalid:
        raise ValueError(f"Invalid completed course code(s): {', '.join(invalid)}")
    return completed


def _normalize_phrases(raw, field: str) -> List[str]:
    phrases: List[str] = []
    for item in _as_list(raw):
        if not isinstance(item, str):
            raise ValueError(f"{field} must contain only strings.")
        phrase = item.strip()
        if phrase and phrase not in phrases:
            phrases.append(phrase)
    return phrases


def normalize_profile(raw_profile: dict) -> dict:
    """
    Validate and normalize a student profile.

    Returns:
    {
      "major": str,
      "track": str,
      "completed": {code: term},
      "interests": [str],          # career interests + career goal, deduped
      "career_goal": str,
      "skills": [str],             # carried onto the roadmap, not ranked on
      "exclusions": set[str],
    }
    Raises ValueError on malformed input.
    """
    if not isinstance(raw_profile, dict):
        raise ValueError("Profile must be an object.")

    major = str(raw_profile.get("major", "") or raw_profile.get("program", "") or "").strip()
    if not major:
        raise ValueError("Profile must declare a major.")

    career_goal = str(
        raw_profile.get("career_goal", "")
        or raw_profile.get("career", "")
        or raw_profile.get("dreamJob", "")
        or ""
    ).strip()
    interests = _normalize_phrases(raw_profile.get("interests"), "interests")
    if career_goal and career_goal not in interests:
        interests.append(career_goal)

    completed = _normalize_completed(
        raw_profile.get("completed", raw_profile.get("completed_courses"))
    )

    exclusions = set()
    for item in _as_list(raw_profile.get("exclusions")):
        code = normalize_code(str(item))
        if code is None:
            raise ValueError(f"Invalid excluded course code: {item}")
        exclusions.add(code)

    return {
        "major": major,
        "track": str(raw_profile.get("track", "") or "").strip(),
        "completed": completed,
        "interests": interests,
        "career_goal": career_goal,
        "skills": _normalize_phrases(raw_profile.get("skills"), "skills"),
        "exclusions": exclusions,
    }
