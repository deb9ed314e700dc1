import json

import pandas as pd
import pytest

from data_loader import load_data, load_templates, normalize_courses_df


@pytest.fixture
def export_rows():
    """Catalog-export layout: prefix/number split, prereqs inside metadata."""
    return [
        {"course_prefix": "ICS", "course_number": "211", "course_title": "Introduction to Computer Science II",
         "num_units": "4", "metadata": "Pre: ICS 111 or consent.", "course_desc": "Data structures."},
        {"course_prefix": "ECON", "course_number": "130", "course_title": "Principles of Microeconomics",
         "num_units": "3", "metadata": "(DS)", "course_desc": "Markets."},
        {"course_prefix": "HIST", "course_number": "151", "course_title": "World History to 1500",
         "num_units": "3-4", "metadata": "(FGA)", "course_desc": ""},
        {"course_prefix": "ENG", "course_number": "100", "course_title": "Composition I (FW)",
         "num_units": None, "metadata": "", "course_desc": ""},
    ]


class TestNormalizeCoursesDf:
    def test_export_layout_codes(self, export_rows):
        df = normalize_courses_df(pd.DataFrame(export_rows))
        assert df["course_code"].tolist() == ["ICS 211", "ECON 130", "HIST 151", "ENG 100"]

    def test_prereq_from_metadata(self, export_rows):
        df = normalize_courses_df(pd.DataFrame(export_rows)).set_index("course_code")
        assert df.loc["ICS 211", "prereq_hard"] == "ICS 111 or consent"
        assert df.loc["ECON 130", "prereq_hard"] == "none"

    def test_gen_ed_tags_from_designations(self, export_rows):
        df = normalize_courses_df(pd.DataFrame(export_rows)).set_index("course_code")
        assert df.loc["ECON 130", "tags"] == "DS;ECON"
        assert df.loc["HIST 151", "tags"] == "FG;HIST"
        assert df.loc["ENG 100", "tags"] == "ENG;FW"

    def test_credits(self, export_rows):
        df = normalize_courses_df(pd.DataFrame(export_rows)).set_index("course_code")
        assert df.loc["ICS 211", "credits"] == 4
        assert df.loc["HIST 151", "credits"] == 3
        assert df.loc["ENG 100", "credits"] == 3  # missing -> default

    def test_tabular_layout_with_tag_column(self):
        df = normalize_courses_df(pd.DataFrame([
            {"course_code": "math251a", "course_name": "Accelerated Calculus I", "credits": 4,
             "prereq": "none", "tags": "data_science, fq", "description": "Calculus."},
        ]))
        row = df.iloc[0]
        assert row["course_code"] == "MATH 251A"
        assert row["course_title"] == "Accelerated Calculus I"
        assert row["tags"] == "DATA_SCIENCE;FQ;MATH"

    def test_list_tags(self):
        df = normalize_courses_df(pd.DataFrame([
            {"course_code": "PSY 100", "tags": ["DS", "social"]},
        ]))
        assert df.iloc[0]["tags"] == "DS;PSY;SOCIAL"

    def test_empty(self):
        df = normalize_courses_df(pd.DataFrame())
        assert len(df) == 0
        assert "course_code" in df.columns


class TestLoadData:
    def test_json_catalog(self, tmp_path, export_rows):
        path = tmp_path / "courses.json"
        path.write_text(json.dumps(export_rows), encoding="utf-8")
        data = load_data(str(path))
        assert data["catalog_codes"] == {"ICS 211", "ECON 130", "HIST 151", "ENG 100"}
        assert data["prereq_map"]["ICS 211"] == {"type": "single", "course": "ICS 111"}

    def test_json_wrapped(self, tmp_path, export_rows):
        path = tmp_path / "courses.json"
        path.write_text(json.dumps({"courses": export_rows}), encoding="utf-8")
        assert len(load_data(str(path))["courses_df"]) == 4

    def test_csv_catalog(self, tmp_path):
        path = tmp_path / "courses.csv"
        pd.DataFrame([
            {"course_code": "ICS 111", "course_title": "Intro", "credits": "4", "prereq": "none"},
            {"course_code": "ICS 211", "course_title": "Intro II", "credits": "4", "prereq": "ICS 111"},
        ]).to_csv(path, index=False)
        data = load_data(str(path))
        assert data["catalog_codes"] == {"ICS 111", "ICS 211"}

    def test_xlsx_catalog_prefers_courses_sheet(self, tmp_path):
        path = tmp_path / "catalog.xlsx"
        with pd.ExcelWriter(path) as writer:
            pd.DataFrame([{"note": "readme"}]).to_excel(writer, sheet_name="about", index=False)
            pd.DataFrame([
                {"course_code": "ICS 111", "course_title": "Intro", "credits": 4, "prereq": "none"},
            ]).to_excel(writer, sheet_name="courses", index=False)
        data = load_data(str(path))
        assert data["catalog_codes"] == {"ICS 111"}

    def test_duplicates_dropped_with_warning(self, tmp_path, capsys):
        path = tmp_path / "courses.json"
        path.write_text(json.dumps([
            {"course_code": "ICS 111", "course_title": "First"},
            {"course_code": "ics-111", "course_title": "Second"},
        ]), encoding="utf-8")
        data = load_data(str(path))
        assert len(data["courses_df"]) == 1
        assert data["courses_df"].iloc[0]["course_title"] == "First"
        assert "[WARN]" in capsys.readouterr().out

    def test_unsupported_prereq_warns(self, tmp_path, capsys):
        path = tmp_path / "courses.json"
        path.write_text(json.dumps([
            {"course_code": "ICS 499", "prereq": "Senior standing"},
        ]), encoding="utf-8")
        data = load_data(str(path))
        assert data["prereq_map"]["ICS 499"]["type"] == "unsupported"
        assert "manual review" in capsys.readouterr().out

    def test_unsupported_file_type(self, tmp_path):
        path = tmp_path / "courses.txt"
        path.write_text("ICS 111", encoding="utf-8")
        with pytest.raises(ValueError):
            load_data(str(path))


class TestLoadTemplates:
    def test_list(self, tmp_path):
        path = tmp_path / "pathways.json"
        path.write_text(json.dumps([{"program_name": "A"}, {"program_name": "B"}]), encoding="utf-8")
        assert [t["program_name"] for t in load_templates(str(path))] == ["A", "B"]

    def test_wrapped(self, tmp_path):
        path = tmp_path / "pathways.json"
        path.write_text(json.dumps({"pathways": [{"program_name": "A"}]}), encoding="utf-8")
        assert len(load_templates(str(path))) == 1

    def test_single_object(self, tmp_path):
        path = tmp_path / "pathway.json"
        path.write_text(json.dumps({"program_name": "A", "years": []}), encoding="utf-8")
        assert load_templates(str(path))[0]["program_name"] == "A"

    def test_skips_non_objects(self, tmp_path, capsys):
        path = tmp_path / "pathways.json"
        path.write_text(json.dumps([{"program_name": "A"}, "junk"]), encoding="utf-8")
        assert len(load_templates(str(path))) == 1
        assert "[WARN]" in capsys.readouterr().out
