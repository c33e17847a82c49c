import io
import os

import pandas as pd

from normalizer import normalize_code, normalize_status
from offer_resolver import OfferParallel, TimeSlot
from prereq_parser import PREREQ_SEPARATOR, parse_prereqs
from projection_models import CourseDefinition, HistoryRecord

_BOOL_TRUTHY = {"true", "1", "yes", "y"}

# Portal field names → our column names.
_CURRICULUM_RENAME = {
    "codigo": "code",
    "asignatura": "title",
    "creditos": "credits",
    "nivel": "level",
}
_HISTORY_RENAME = {
    "inscriptionType": "inscription_type",
    "inscriptiontype": "inscription_type",
}
_CURRICULUM_COLUMNS = ["code", "title", "credits", "level", "prereq"]
_HISTORY_COLUMNS = ["course", "status", "period", "nrc", "student", "excluded", "inscription_type"]

OFFER_COLUMNS = [
    "period",
    "nrc",
    "course",
    "codigoparalelo",
    "dia",
    "inicio",
    "fin",
    "sala",
    "cupos",
]


def _safe_str(val) -> str:
    if val is None:
        return ""
    if isinstance(val, float) and pd.isna(val):
        return ""
    return str(val).strip()


def _safe_int(val, default: int = 0) -> int:
    try:
        if pd.isna(val):
            return default
        return int(float(val))
    except (TypeError, ValueError, OverflowError):
        return default


def _safe_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    if isinstance(val, (int, float)):
        return False if pd.isna(val) else bool(val)
    return str(val).strip().lower() in _BOOL_TRUTHY


def _to_frame(raw) -> pd.DataFrame:
    """Portal payloads are lists of objects; anything else (e.g. {"error": ...}) is no data."""
    if isinstance(raw, pd.DataFrame):
        return raw.copy()
    if not isinstance(raw, list):
        return pd.DataFrame()
    rows = [r for r in raw if isinstance(r, dict)]
    return pd.DataFrame(rows)


def _ensure_columns(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    for col in columns:
        if col not in df.columns:
            df[col] = None
    return df


def _normalize_prereq_expr(raw) -> str:
    codes = [normalize_code(c) for c in parse_prereqs(raw)]
    return PREREQ_SEPARATOR.join(c for c in codes if c)


def curriculum_frame(raw) -> pd.DataFrame:
    """Normalize curriculum rows into code/title/credits/level/prereq columns."""
    df = _to_frame(raw)
    df = df.rename(columns={k: v for k, v in _CURRICULUM_RENAME.items() if k in df.columns})
    df = _ensure_columns(df, _CURRICULUM_COLUMNS)
    if len(df) == 0:
        return df[_CURRICULUM_COLUMNS]

    df["code"] = df["code"].apply(lambda v: normalize_code(_safe_str(v)))
    df = df[df["code"].notna()].copy()
    df["title"] = df["title"].apply(_safe_str)
    # Negative weights are a feed error; the engine assumes non-negative credits.
    df["credits"] = df["credits"].apply(lambda v: max(0, _safe_int(v)))
    df["level"] = df["level"].apply(lambda v: max(0, _safe_int(v)))
    df["prereq"] = df["prereq"].apply(_normalize_prereq_expr)
    df = df.drop_duplicates(subset=["code"], keep="first")
    return df


def history_frame(raw) -> pd.DataFrame:
    """Normalize progress rows; statuses become APPROVED / FAILED / other."""
    df = _to_frame(raw)
    df = df.rename(columns={k: v for k, v in _HISTORY_RENAME.items() if k in df.columns})
    df = _ensure_columns(df, _HISTORY_COLUMNS)
    if len(df) == 0:
        return df[_HISTORY_COLUMNS]

    df["course"] = df["course"].apply(lambda v: normalize_code(_safe_str(v)))
    df = df[df["course"].notna()].copy()
    df["status"] = df["status"].apply(lambda v: normalize_status(_safe_str(v)))
    for col in ("period", "nrc", "student", "inscription_type"):
        df[col] = df[col].apply(_safe_str)
    df["excluded"] = df["excluded"].apply(_safe_bool)
    return df


def parse_curriculum(raw) -> list[CourseDefinition]:
    df = curriculum_frame(raw)
    return [
        CourseDefinition(
            code=row["code"],
            title=row["title"],
            credits=int(row["credits"]),
            level=int(row["level"]),
            prereq=row["prereq"],
        )
        for _, row in df.iterrows()
    ]


def parse_history(raw) -> list[HistoryRecord]:
    df = history_frame(raw)
    return [
        HistoryRecord(
            course=row["course"],
            status=row["status"],
            period=row["period"],
            nrc=row["nrc"],
            student=row["student"],
            excluded=bool(row["excluded"]),
            inscription_type=row["inscription_type"],
        )
        for _, row in df.iterrows()
    ]


def load_stub_data(data_path: str) -> dict:
    """
    Load bundled curriculum and progress data. Raises on file/schema errors.

    data_path is either a directory with malla.csv and avance.csv, or an .xlsx
    workbook with "malla" and "avance" sheets.
    """
    if data_path.lower().endswith(".xlsx"):
        xl = pd.ExcelFile(data_path)
        malla_raw = xl.parse("malla", dtype=str)
        avance_raw = xl.parse("avance", dtype=str) if "avance" in xl.sheet_names else pd.DataFrame()
    else:
        malla_raw = pd.read_csv(os.path.join(data_path, "malla.csv"), dtype=str)
        avance_path = os.path.join(data_path, "avance.csv")
        avance_raw = pd.read_csv(avance_path, dtype=str) if os.path.exists(avance_path) else pd.DataFrame()

    malla_df = curriculum_frame(malla_raw)
    # Optional scoping columns survive the normalization untouched.
    for col in ("program_code", "catalog"):
        if col in malla_raw.columns:
            malla_df[col] = malla_raw.loc[malla_df.index, col].apply(_safe_str)
    avance_df = history_frame(avance_raw)
    if "program_code" in avance_raw.columns and len(avance_df):
        avance_df["program_code"] = avance_raw.loc[avance_df.index, "program_code"].apply(_safe_str)

    print(f"[INFO] Stub data: {len(malla_df)} course(s), {len(avance_df)} history row(s) from {data_path}")
    return {"malla_df": malla_df, "avance_df": avance_df}


def parse_offer_csv(csv_text: str) -> list[OfferParallel]:
    """
    Parse a section-offering CSV into OfferParallel records.

    Expected header: period,nrc,course,codigoParalelo,dia,inicio,fin,sala,cupos
    Rows sharing an NRC are one section with several time slots.
    """
    lines = [ln.strip() for ln in (csv_text or "").splitlines() if ln.strip()]
    if len(lines) <= 1:
        return []

    df = pd.read_csv(io.StringIO("\n".join(lines)), dtype=str, skipinitialspace=True)
    df.columns = [str(c).strip().lower() for c in df.columns]
    for col in OFFER_COLUMNS:
        if col not in df.columns:
            raise ValueError(f"invalid offer csv: missing column {col}")

    by_nrc: dict[str, OfferParallel] = {}
    for _, row in df.iterrows():
        nrc = _safe_str(row["nrc"])
        slot = TimeSlot(
            day=_safe_str(row["dia"]),
            start=_safe_str(row["inicio"]),
            end=_safe_str(row["fin"]),
            room=_safe_str(row["sala"]) or None,
        )
        existing = by_nrc.get(nrc)
        if existing is not None:
            existing.slots.append(slot)
            continue
        by_nrc[nrc] = OfferParallel(
            period=_safe_str(row["period"]),
            nrc=nrc,
            course=normalize_code(_safe_str(row["course"])) or "",
            section=_safe_str(row["codigoparalelo"]),
            seats=_safe_int(row["cupos"]),
            slots=[slot],
        )
    return list(by_nrc.values())


def load_offer_file(path: str) -> list[OfferParallel]:
    with open(path, encoding="utf-8") as fh:
        return parse_offer_csv(fh.read())
