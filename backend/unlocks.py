from prereq_parser import prereq_course_codes


def build_reverse_prereq_map(catalog) -> dict[str, list[str]]:
    """
    Builds a reverse prerequisite map: for each course, which courses directly
    list it as a prerequisite.

    Returns: {"ICS 211": ["ICS 212", "ICS 311"], ...}

    Only direct prerequisites (one level deep). No transitive graph traversal.
    """
    reverse: dict[str, list[str]] = {}

    for course in catalog.all_courses():
        course_code = course["course_code"]
        for prereq_code in prereq_course_codes(course["prereq"]):
            reverse.setdefault(prereq_code, [])
            if course_code not in reverse[prereq_code]:
                reverse[prereq_code].append(course_code)

    return reverse


def get_direct_unlocks(
    course_code: str,
    reverse_map: dict[str, list[str]],
    limit: int = 3,
) -> list[str]:
    """
    Returns up to `limit` courses directly unlocked by completing `course_code`.
    A course is "unlocked" if it lists `course_code` as a direct prerequisite.
    """
    return reverse_map.get(course_code, [])[:limit]
