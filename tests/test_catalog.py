import pytest
from roadmap_fixtures import course, load_sample, make_catalog


@pytest.fixture
def catalog():
    return make_catalog([
        course("ICS 111", "Introduction to Computer Science I", credits=4),
        course("ICS 211", "Introduction to Computer Science II", credits=4, prereq="ICS 111"),
        course("ECON 131", "Principles of Macroeconomics", tags="DS"),
        course("ECON 130", "Principles of Microeconomics", tags="DS"),
        course("MATH 241", "Calculus I", credits=4),
        course("MATH 251A", "Accelerated Calculus I", credits=4, tags="DATA_SCIENCE"),
        course("PHYS 151L", "College Physics I Lab", credits="1"),
    ])


class TestLookup:
    def test_len(self, catalog):
        assert len(catalog) == 7

    def test_get_course_normalizes_code(self, catalog):
        found = catalog.get_course("ics111")
        assert found["course_code"] == "ICS 111"
        assert found["credits"] == 4
        assert found["level"] == 100

    def test_get_course_missing(self, catalog):
        assert catalog.get_course("ICS 999") is None

    def test_contains(self, catalog):
        assert "MATH-251A" in catalog
        assert "MATH 252A" not in catalog

    def test_string_credits_parsed(self, catalog):
        assert catalog.get_course("PHYS 151L")["credits"] == 1

    def test_subject_tag_always_present(self, catalog):
        assert "ICS" in catalog.get_course("ICS 211")["tags"]


class TestFindBySubjectTag:
    def test_ordered_by_code(self, catalog):
        codes = [c["course_code"] for c in catalog.find_by_subject_tag("DS")]
        assert codes == ["ECON 130", "ECON 131"]

    def test_case_insensitive(self, catalog):
        assert len(catalog.find_by_subject_tag("ds")) == 2

    def test_subject_prefix(self, catalog):
        codes = [c["course_code"] for c in catalog.find_by_subject_tag("MATH")]
        assert codes == ["MATH 241", "MATH 251A"]

    def test_unknown_tag(self, catalog):
        assert catalog.find_by_subject_tag("HSL") == []


class TestFindByTitleKeywords:
    def test_all_words_required(self, catalog):
        codes = [c["course_code"] for c in catalog.find_by_title_keywords("Accelerated Calculus")]
        assert codes == ["MATH 251A"]

    def test_single_word(self, catalog):
        codes = [c["course_code"] for c in catalog.find_by_title_keywords("calculus")]
        assert codes == ["MATH 241", "MATH 251A"]

    def test_short_words_ignored(self, catalog):
        assert catalog.find_by_title_keywords("I") == []


class TestPrerequisites:
    def test_parsed(self, catalog):
        assert catalog.all_prerequisites_of("ICS 211") == {"type": "single", "course": "ICS 111"}

    def test_unknown_course_has_none(self, catalog):
        assert catalog.all_prerequisites_of("ICS 999") == {"type": "none"}

    def test_all_courses_ordered(self, catalog):
        codes = [c["course_code"] for c in catalog.all_courses()]
        assert codes == sorted(codes)


class TestSampleCatalog:
    def test_loads(self):
        catalog, _ = load_sample()
        assert "ICS 314" in catalog
        assert catalog.get_course("ICS 211")["prereq"] == {"type": "single", "course": "ICS 111"}

    def test_foundations_subgroups_folded(self):
        catalog, _ = load_sample()
        codes = {c["course_code"] for c in catalog.find_by_subject_tag("FG")}
        assert {"HIST 151", "HIST 152", "GEOG 102"} <= codes

    def test_sample_prereqs_all_machine_parsable(self):
        catalog, _ = load_sample()
        unsupported = [c["course_code"] for c in catalog.all_courses() if c["prereq"]["type"] == "unsupported"]
        assert unsupported == []
