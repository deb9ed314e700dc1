import json
import os
import re
import pandas as pd

from normalizer import normalize_code, parse_credits, split_code
from prereq_parser import extract_prereq_text, parse_prereqs
from requirements import GEN_ED_CODES


COURSE_COLUMNS = ["course_code", "course_title", "credits", "prereq_hard", "tags", "description"]

# Parenthesised designation groups: "(DS)", "(DA, DH)", "(DP/DY)"
_DESIGNATION_RE = re.compile(r'\(([^)]*)\)')


def _clean_str(val) -> str:
    if val is None or (isinstance(val, float) and pd.isna(val)):
        return ""
    s = str(val).strip()
    return "" if s.lower() == "nan" else s


def _gen_ed_tags(*texts) -> list[str]:
    """Gen-Ed codes found in parenthesised designations of title/metadata."""
    found = []
    for text in texts:
        for group in _DESIGNATION_RE.findall(_clean_str(text)):
            for token in re.split(r'[\s,/]+', group.upper()):
                if re.fullmatch(r'FG[ABC]', token):
                    token = "FG"
                if token in GEN_ED_CODES and token not in found:
                    found.append(token)
    return found


def _split_tags(raw) -> list[str]:
    if isinstance(raw, (list, tuple, set)):
        raw = ";".join(str(t) for t in raw)
    return [t.strip().upper() for t in re.split(r'[;,]', _clean_str(raw)) if t.strip()]


def _pick(row: pd.Series, *cols):
    for col in cols:
        if col in row.index:
            val = _clean_str(row.get(col))
            if val:
                return val
    return ""


def normalize_courses_df(raw_df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize a raw course table to the runtime columns:
      course_code, course_title, credits, prereq_hard, tags, description

    Accepts either the tabular layout (course_code, course_title/course_name,
    credits, prereq/prereq_hard, tags, description) or the catalog-export
    layout (course_prefix, course_number, course_title, num_units,
    course_desc, metadata). Prerequisites missing from a dedicated column are
    extracted from metadata. Tags always include the subject prefix and any
    Gen-Ed designations found in the title or metadata.
    """
    if raw_df is None or len(raw_df) == 0:
        return pd.DataFrame(columns=COURSE_COLUMNS)

    rows = []
    for _, row in raw_df.iterrows():
        code_raw = _pick(row, "course_code", "code")
        if not code_raw:
            prefix = _pick(row, "course_prefix")
            number = _pick(row, "course_number")
            code_raw = f"{prefix} {number}".strip()
        code = normalize_code(code_raw) or code_raw.upper()
        if not code:
            continue

        metadata = _pick(row, "metadata")
        prereq_raw = _pick(row, "prereq_hard", "prereq", "prerequisites")
        if not prereq_raw:
            prereq_raw = extract_prereq_text(metadata) or "none"

        title = _pick(row, "course_title", "course_name", "title")
        subject, _ = split_code(code)
        tags = _split_tags(row.get("tags")) if "tags" in row.index else []
        tags += _split_tags(row.get("gen_ed")) if "gen_ed" in row.index else []
        tags += _gen_ed_tags(title, metadata)
        if subject:
            tags.append(subject)

        rows.append({
            "course_code": code,
            "course_title": title,
            "credits": parse_credits(_pick(row, "credits", "num_units", "units"), default=3),
            "prereq_hard": prereq_raw,
            "tags": ";".join(sorted(set(tags))),
            "description": _pick(row, "description", "course_desc"),
        })

    return pd.DataFrame(rows, columns=COURSE_COLUMNS)


def _read_course_table(data_path: str) -> pd.DataFrame:
    ext = os.path.splitext(data_path)[1].lower()
    if ext in {".xlsx", ".xls"}:
        xl = pd.ExcelFile(data_path)
        sheet = "courses" if "courses" in xl.sheet_names else xl.sheet_names[0]
        return xl.parse(sheet)
    if ext == ".csv":
        return pd.read_csv(data_path, dtype=str)
    if ext == ".json":
        with open(data_path, encoding="utf-8") as fh:
            payload = json.load(fh)
        if isinstance(payload, dict):
            payload = payload.get("courses", [])
        return pd.DataFrame(payload)
    raise ValueError(f"Unsupported catalog file type: {data_path}")


def load_data(data_path: str) -> dict:
    """Load and normalize the course catalog file. Raises on file/schema errors."""
    courses_df = normalize_courses_df(_read_course_table(data_path))

    dupes = courses_df[courses_df.duplicated(subset=["course_code"], keep="first")]
    if len(dupes) > 0:
        print(f"[WARN] {len(dupes)} duplicate course code(s) in catalog; keeping first: {sorted(set(dupes['course_code']))}")
        courses_df = courses_df.drop_duplicates(subset=["course_code"], keep="first").reset_index(drop=True)

    prereq_map: dict = {}
    for _, row in courses_df.iterrows():
        prereq_map[row["course_code"]] = parse_prereqs(row.get("prereq_hard", "none"))

    unsupported = [code for code, p in prereq_map.items() if p["type"] == "unsupported"]
    if unsupported:
        print(f"[WARN] {len(unsupported)} course(s) have unsupported prereq format (manual review required): {sorted(unsupported)}")

    return {
        "courses_df": courses_df,
        "catalog_codes": set(courses_df["course_code"].tolist()),
        "prereq_map": prereq_map,
    }


def load_templates(templates_path: str) -> list[dict]:
    """Load a pathway template collection (JSON list, or {"pathways": [...]})."""
    with open(templates_path, encoding="utf-8") as fh:
        payload = json.load(fh)
    if isinstance(payload, dict):
        payload = payload.get("pathways", [payload])
    if not isinstance(payload, list):
        raise ValueError(f"Template file must contain a list of pathways: {templates_path}")
    templates = [t for t in payload if isinstance(t, dict)]
    if len(templates) != len(payload):
        print(f"[WARN] Skipped {len(payload) - len(templates)} non-object entries in {templates_path}")
    return templates
