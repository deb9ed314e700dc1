import json

SYSTEM_PROMPT = """You are an academic advisor assistant scoring how well a single university course fits a student's career interests.
Prerequisites, requirement categories and scheduling have already been handled. You only judge relevance.

Scoring:
- 10 = directly builds skills for the stated interests
- 5 = related or broadly useful for them
- 0 = unrelated

Output ONLY a JSON object of the form {"score": <integer 0-10>}. No markdown. No prose."""


def build_prompt(course: dict, interests: list[str]) -> str:
    """
    Builds the user message for one course.
    The model only sees the course and the interests, never the plan.
    """
    context_lines = []
    if interests:
        context_lines.append(f"Career interests: {', '.join(interests)}")
    else:
        context_lines.append("Career interests: none stated")
    context_lines.append("")
    context_lines.append("Course:")
    context_lines.append(json.dumps({
        "course_code": course.get("course_code", ""),
        "course_title": course.get("course_title", ""),
        "tags": course.get("tags", []),
        "description": course.get("description", ""),
    }, indent=2))
    return "\n".join(context_lines)
