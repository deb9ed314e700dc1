import pytest
from plan_assembler import assemble
from prereq_scheduler import schedule
from roadmap_fixtures import course, make_catalog, raw_template
from slot_resolver import resolve_slots
from template_parser import parse_template
from validators import normalize_profile


@pytest.fixture
def catalog():
    return make_catalog([
        course("ICS 111", credits=4),
        course("ICS 211", credits=4, prereq="ICS 111"),
        course("ICS 311", prereq="ICS 211"),
        course("MATH 241", credits=4),
        course("MATH 251A", credits=4),
        course("ANTH 151", tags="DS"),
        course("ECON 130", tags="DS"),
    ])


def _assemble(semesters, catalog, credit_cap, policy="placeholder-first", completed=()):
    template = parse_template(raw_template(semesters))
    profile = normalize_profile({"major": "Computer Science", "completed": list(completed)})
    result = resolve_slots(template, profile, catalog)
    diagnostics = result["diagnostics"] + schedule(
        result["assignments"], set(completed), catalog, credit_cap, len(template["semesters"]),
    )
    return assemble(template, result["assignments"], set(completed), catalog, diagnostics, credit_cap, policy)


def _layout(roadmap):
    return [[s["slot_id"] for s in sem["slots"]] for sem in roadmap["semesters"]]


def _diags(roadmap, code):
    return [d["slot_id"] for d in roadmap["diagnostics"] if d["code"] == code]


class TestOverflow:
    SEMESTERS = [
        [("ICS 111", 4), ("DS", 3), ("MATH 241 or MATH 251A", 4)],
        [("ICS 211", 4)],
    ]

    def test_placeholder_yields_first(self, catalog):
        roadmap = _assemble(self.SEMESTERS, catalog, credit_cap=10)
        assert _layout(roadmap) == [["S1-1", "S1-3"], ["S2-1", "S1-2"]]
        assert [s["credits"] for s in roadmap["semesters"]] == [8, 7]
        assert _diags(roadmap, "credit-overflow-moved") == ["S1-2"]

    def test_last_slot_first(self, catalog):
        roadmap = _assemble(self.SEMESTERS, catalog, credit_cap=10, policy="last-slot-first")
        assert _layout(roadmap) == [["S1-1", "S1-2"], ["S2-1", "S1-3"]]
        assert _diags(roadmap, "credit-overflow-moved") == ["S1-3"]

    def test_moved_slot_keeps_template_semester(self, catalog):
        roadmap = _assemble(self.SEMESTERS, catalog, credit_cap=10)
        moved = roadmap["semesters"][1]["slots"][1]
        assert (moved["semester"], moved["template_semester"]) == (2, 1)
        assert "position" not in moved

    def test_under_cap_untouched(self, catalog):
        roadmap = _assemble(self.SEMESTERS, catalog, credit_cap=18)
        assert _layout(roadmap) == [["S1-1", "S1-2", "S1-3"], ["S2-1"]]
        assert roadmap["diagnostics"] == []

    def test_slot_with_dependent_stays_put(self, catalog):
        roadmap = _assemble(
            [[("ECON 130", 3), ("MATH 241", 4), ("ICS 111", 4)], [("ICS 211", 4)]],
            catalog,
            credit_cap=10,
            policy="last-slot-first",
        )
        # ICS 111 yields first but ICS 211 needs it in semester 1
        assert _layout(roadmap) == [["S1-1", "S1-3"], ["S2-1", "S1-2"]]
        assert roadmap["violations"] == []

    def test_moves_earlier_when_later_is_impossible(self, catalog):
        roadmap = _assemble(
            [[("ICS 111", 4)], [("ICS 211", 4), ("ECON 130", 3), ("MATH 241", 4)]],
            catalog,
            credit_cap=10,
        )
        assert _layout(roadmap) == [["S1-1", "S2-3"], ["S2-1", "S2-2"]]

    def test_extension_semester(self, catalog):
        roadmap = _assemble(
            [[("ICS 111", 4), ("MATH 241", 4), ("DS", 3)], [("ICS 211", 4), ("MATH 251A", 4)]],
            catalog,
            credit_cap=8,
        )
        assert len(roadmap["semesters"]) == 3
        added = roadmap["semesters"][2]
        assert added["extension"] is True
        assert added["label"] == "Year 2 - Fall Semester"
        assert added["name"] == "fall_semester"
        assert [s["slot_id"] for s in added["slots"]] == ["S1-3"]
        assert _diags(roadmap, "credit-overflow-extended") == ["S1-3"]
        assert "extension" not in roadmap["semesters"][0]
        assert all(s["credits"] <= 8 for s in roadmap["semesters"])

    def test_lone_heavy_slot_stays(self, catalog):
        roadmap = _assemble([[("ICS 111", 4)]], catalog, credit_cap=3)
        assert _layout(roadmap) == [["S1-1"]]
        assert roadmap["semesters"][0]["credits"] == 4
        assert roadmap["diagnostics"] == []


class TestAssemble:
    def test_roadmap_shape(self, catalog):
        roadmap = _assemble([[("ICS 111", 4)], [("ICS 211", 4)]], catalog, credit_cap=18)
        assert roadmap["program_name"] == "Computer Science"
        assert roadmap["campus"] == "University of Hawaii at Manoa"
        assert roadmap["credit_cap"] == 18
        first = roadmap["semesters"][0]
        assert (first["index"], first["label"], first["term"]) == (1, "Year 1 - Fall Semester", "Fall")
        assert roadmap["semesters"][1]["label"] == "Year 1 - Spring Semester"

    def test_completed_credits(self, catalog):
        roadmap = _assemble(
            [[("ICS 111", 4), ("MATH 241", 4)], [("ICS 211", 4)]],
            catalog,
            credit_cap=18,
            completed=["ICS 111"],
        )
        assert roadmap["semesters"][0]["credits"] == 4
        assert roadmap["planned_credits"] == 8
        assert roadmap["completed_credits"] == 4
        assert roadmap["total_credits"] == 12
        assert roadmap["semesters"][0]["slots"][0]["resolution"] == "already-completed"

    def test_unresolved_and_violations_listed(self, catalog):
        roadmap = _assemble([[("BIOL 171 or BIOL 172", 4), ("ICS 311", 3)]], catalog, credit_cap=18)
        assert roadmap["unresolved"] == [
            {"slot_id": "S1-1", "raw": "BIOL 171 or BIOL 172", "semester": 1, "reason_code": "no-matching-course"},
        ]
        assert roadmap["violations"] == [
            {"slot_id": "S1-2", "course_code": "ICS 311", "semester": 1, "reason_code": "prerequisite-unreachable"},
        ]
