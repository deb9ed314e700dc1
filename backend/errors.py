"""
Hard failures of roadmap generation.

These mean the inputs are invalid and abort the whole run. Plan-quality
problems (unresolved slots, prerequisite violations) are never raised; they
are recorded on the returned roadmap instead.
"""


class RoadmapError(Exception):
    code = "ROADMAP_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error_code": self.code, "message": self.message}


class MalformedTemplate(RoadmapError):
    code = "MALFORMED_TEMPLATE"


class UnknownCourse(RoadmapError):
    code = "UNKNOWN_COURSE"

    def __init__(self, course_code: str, slot_id: str | None = None):
        where = f" (slot {slot_id})" if slot_id else ""
        super().__init__(f"{course_code} is not in the course catalog{where}.")
        self.course_code = course_code
        self.slot_id = slot_id

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["course_code"] = self.course_code
        out["slot_id"] = self.slot_id
        return out


class ProfileTemplateMismatch(RoadmapError):
    code = "PROFILE_TEMPLATE_MISMATCH"
