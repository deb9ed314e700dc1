TERM_ORDER = ("Fall", "Spring", "Summer")
TERM_TO_NAME = {
    "Fall": "fall_semester",
    "Spring": "spring_semester",
    "Summer": "summer_semester",
}


def semester_label(index: int, year: int | None, term: str) -> str:
    """'Year 1 - Fall Semester'; falls back to 'Semester N' without a term."""
    if term and year:
        return f"Year {year} - {term} Semester"
    if year:
        return f"Year {year} - Semester {index}"
    return f"Semester {index}"


def next_term(year: int, term: str) -> tuple[int, str]:
    """
    Term that follows (year, term) in an academic-year calendar:
    - Fall   -> Spring, same academic year
    - Spring -> Fall of the next year (skip Summer by default)
    - Summer -> Fall of the next year
    """
    if term == "Fall":
        return year, "Spring"
    return year + 1, "Fall"


def extension_semester(previous: dict) -> dict:
    """Metadata for a semester appended after `previous` to absorb overflow."""
    year, term = next_term(previous.get("year") or 0, previous.get("term", ""))
    index = previous["index"] + 1
    return {
        "index": index,
        "name": TERM_TO_NAME.get(term, f"semester_{index}"),
        "year": year,
        "term": term,
        "extension": True,
    }


def roadmap_to_program(roadmap: dict) -> dict:
    """
    Export a roadmap to the years -> semesters -> courses shape used by
    roadmap viewers:

        {
          "program_name": "Computer Science, B.S.",
          "institution": "University of Hawaii at Manoa",
          "total_credits": 120,
          "career_goal": "...", "interests": [...], "skills": [...],
          "years": [
            {"year_number": 1, "semesters": [
              {"semester_name": "fall_semester", "credits": 15,
               "courses": [{"name": "ICS 111", "credits": 4}, ...]},
            ]},
          ],
        }

    Unresolved slots keep their template text as the course name.
    """
    years: dict[int, list[dict]] = {}
    for semester in roadmap["semesters"]:
        courses = [
            {
                "name": slot["course_code"] or slot["raw"],
                "credits": slot["credits"],
            }
            for slot in semester["slots"]
        ]
        years.setdefault(semester["year"], []).append({
            "semester_name": semester["name"],
            "credits": semester["credits"],
            "courses": courses,
        })
    return {
        "program_name": roadmap["program_name"],
        "institution": roadmap["campus"],
        "total_credits": roadmap["total_credits"],
        "career_goal": roadmap.get("career_goal", ""),
        "interests": list(roadmap.get("interests", [])),
        "skills": list(roadmap.get("skills", [])),
        "years": [
            {"year_number": year, "semesters": years[year]}
            for year in sorted(years)
        ],
    }
