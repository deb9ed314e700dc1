import pytest
from errors import MalformedTemplate
from roadmap_fixtures import load_sample, raw_template
from template_parser import (
    classify_slot,
    find_matching_template,
    infer_major_and_degree,
    infer_major_subject,
    iter_slots,
    parse_template,
)


class TestClassifySlot:
    def test_fixed(self):
        assert classify_slot("ICS 111") == {"kind": "fixed", "course": "ICS 111"}

    def test_fixed_normalized(self):
        assert classify_slot("ics-211")["course"] == "ICS 211"

    def test_fixed_with_annotation(self):
        assert classify_slot("ICS 314 (capstone prep)") == {"kind": "fixed", "course": "ICS 314"}

    def test_choice(self):
        result = classify_slot("MATH 241 or MATH 251A")
        assert result == {"kind": "choice", "options": ["MATH 241", "MATH 251A"]}

    def test_choice_shared_subject(self):
        result = classify_slot("ICS 211/212")
        assert result["options"] == ["ICS 211", "ICS 212"]

    def test_choice_joined_by_and(self):
        result = classify_slot("ICS 141 and ICS 241")
        assert result == {"kind": "choice", "options": ["ICS 141", "ICS 241"]}

    def test_words_joined_by_and_stay_placeholder(self):
        assert classify_slot("Writing and Communication")["kind"] == "placeholder"

    def test_gen_ed_code(self):
        result = classify_slot("DS")
        assert result["kind"] == "placeholder"
        assert result["categories"] == ["DS"]
        assert result["min_level"] is None

    def test_gen_ed_subgroups_fold(self):
        assert classify_slot("FG (A/B/C)")["categories"] == ["FG"]

    def test_multi_category_with_level(self):
        result = classify_slot("DA/DH/DL 300+")
        assert result["categories"] == ["DA", "DH", "DL"]
        assert result["min_level"] == 300

    def test_subject_elective(self):
        result = classify_slot("ICS 400+ Elective")
        assert result["kind"] == "placeholder"
        assert result["categories"] == ["ICS"]
        assert result["subject"] == "ICS"
        assert result["min_level"] == 400

    def test_major_elective_uses_major_subject(self):
        result = classify_slot("Major Elective", major_subject="ICS")
        assert result["categories"] == ["ICS"]
        assert result["subject"] == "ICS"

    def test_major_elective_without_subject(self):
        assert classify_slot("Major Elective")["categories"] == ["MAJOR_ELECTIVE"]

    def test_free_elective(self):
        assert classify_slot("Elective")["categories"] == ["ELECTIVE"]

    def test_gen_ed_prefixed_long_name(self):
        result = classify_slot("Gen-Ed: Hawaiian or Second Language")
        assert result["kind"] == "placeholder"
        assert result["categories"] == ["HSL"]

    def test_long_category_name(self):
        assert classify_slot("Diversification-Social")["categories"] == ["DS"]

    def test_bracketed_is_always_placeholder(self):
        result = classify_slot("[Writing Intensive Elective]")
        assert result["kind"] == "placeholder"
        assert result["categories"] == ["ELECTIVE"]

    def test_keywords(self):
        result = classify_slot("Calculus")
        assert result["categories"] == []
        assert result["keywords"] == "Calculus"

    def test_empty_name(self):
        with pytest.raises(MalformedTemplate):
            classify_slot("   ")


class TestInferMajorAndDegree:
    def test_bachelor(self):
        assert infer_major_and_degree("Computer Science, B.S.") == ("Computer Science", "BS")

    def test_associate(self):
        assert infer_major_and_degree("Liberal Arts, A.A.") == ("Liberal Arts", "AA")

    def test_no_degree(self):
        assert infer_major_and_degree("Computer Science") == ("Computer Science", "")

    def test_comma_without_degree(self):
        assert infer_major_and_degree("Art, History of") == ("Art, History of", "")


class TestInferMajorSubject:
    def test_most_common_prefix(self):
        raw = raw_template([[("ICS 111", 4), ("MATH 241", 4)], [("ICS 211", 4), ("DS", 3)]])
        assert infer_major_subject(raw) == "ICS"

    def test_explicit_wins(self):
        raw = raw_template([[("ICS 111", 4)]], major_subject="math")
        assert infer_major_subject(raw) == "MATH"

    def test_choice_options_counted(self):
        raw = raw_template([[("MATH 241 or MATH 251A", 4), ("ICS 111", 4)]])
        assert infer_major_subject(raw) == "MATH"


class TestParseTemplate:
    def test_structure(self):
        template = parse_template(raw_template([
            [("ICS 111", 4), ("MATH 241 or MATH 251A", 4), ("DS", 3)],
            [("ICS 211", 4), ("Elective", 3)],
        ]))
        assert template["major"] == "Computer Science"
        assert template["degree"] == ""
        assert template["campus"] == "University of Hawaii at Manoa"
        assert template["major_subject"] == "ICS"
        assert template["total_credits"] == 18
        first, second = template["semesters"]
        assert (first["index"], first["year"], first["term"], first["credits"]) == (1, 1, "Fall", 11)
        assert second["term"] == "Spring"
        assert [s["slot_id"] for s in first["slots"]] == ["S1-1", "S1-2", "S1-3"]
        assert [s["kind"] for s in first["slots"]] == ["fixed", "choice", "placeholder"]
        assert first["slots"][1]["position"] == 2

    def test_empty_semesters_dropped(self):
        raw = {
            "program_name": "Computer Science",
            "years": [{"year_number": 1, "semesters": [
                {"semester_name": "fall_semester", "courses": [{"name": "ICS 111", "credits": 4}]},
                {"semester_name": "summer_semester", "courses": []},
                {"semester_name": "spring_semester", "courses": [{"name": "ICS 211", "credits": 4}]},
            ]}],
        }
        template = parse_template(raw)
        assert [s["index"] for s in template["semesters"]] == [1, 2]
        assert template["semesters"][1]["slots"][0]["slot_id"] == "S2-1"

    def test_flat_semesters_and_string_courses(self):
        raw = {"program_name": "Computer Science", "semesters": [
            {"semester_name": "Fall", "courses": [{"name": "ICS 111", "credits": "4"}]},
        ]}
        assert parse_template(raw)["semesters"][0]["slots"][0]["credits"] == 4

    def test_explicit_fields_override_name(self):
        raw = raw_template([[("ICS 111", 4)]], program_name="CS Pathway", major="Computer Science", track="Data Science")
        template = parse_template(raw)
        assert template["major"] == "Computer Science"
        assert template["track"] == "Data Science"

    def test_not_an_object(self):
        with pytest.raises(MalformedTemplate):
            parse_template(["ICS 111"])

    def test_no_courses(self):
        with pytest.raises(MalformedTemplate):
            parse_template({"program_name": "Computer Science", "years": []})

    def test_missing_credits(self):
        with pytest.raises(MalformedTemplate):
            parse_template({"program_name": "Computer Science", "semesters": [
                {"semester_name": "Fall", "courses": [{"name": "ICS 111", "credits": "TBA"}]},
            ]})

    def test_bad_year_entry(self):
        with pytest.raises(MalformedTemplate):
            parse_template({"program_name": "Computer Science", "years": ["year one"]})

    def test_degree_length_mismatch(self):
        raw = raw_template([[("ICS 111", 4)], [("ICS 211", 4)]], program_name="Computer Science, B.S.")
        with pytest.raises(MalformedTemplate, match="semesters"):
            parse_template(raw)

    def test_declared_total_mismatch(self):
        raw = raw_template([[("ICS 111", 4)]], total_credits=60)
        with pytest.raises(MalformedTemplate, match="declares"):
            parse_template(raw)

    def test_tolerance_override(self):
        raw = raw_template([[("ICS 111", 4)]], total_credits=10)
        assert parse_template(raw, credit_tolerance=6)["total_credits"] == 4

    def test_input_not_mutated(self):
        raw = raw_template([[("ICS 111", 4)]])
        before = repr(raw)
        parse_template(raw)
        assert repr(raw) == before


class TestSamplePathways:
    def test_all_parse(self):
        _, templates = load_sample()
        parsed = [parse_template(t) for t in templates]
        cs = next(t for t in parsed if t["degree"] == "BS")
        assert len(cs["semesters"]) == 8
        assert cs["total_credits"] == 120

    def test_iter_slots_in_order(self):
        _, templates = load_sample()
        template = parse_template(templates[0])
        ids = [s["slot_id"] for s in iter_slots(template)]
        assert ids[0] == "S1-1"
        assert len(ids) == len(set(ids))


class TestFindMatchingTemplate:
    TEMPLATES = [
        {"program_name": "Computer Science, B.S."},
        {"program_name": "Liberal Arts, A.A."},
    ]

    def test_exact_case_insensitive(self):
        assert find_matching_template("computer science, b.s.", self.TEMPLATES) is self.TEMPLATES[0]

    def test_query_contained_in_name(self):
        assert find_matching_template("Liberal Arts", self.TEMPLATES) is self.TEMPLATES[1]

    def test_name_contained_in_query(self):
        found = find_matching_template("Computer Science, B.S. (2025 catalog)", self.TEMPLATES)
        assert found is self.TEMPLATES[0]

    def test_no_match(self):
        assert find_matching_template("Nursing", self.TEMPLATES) is None

    def test_blank(self):
        assert find_matching_template("  ", self.TEMPLATES) is None
