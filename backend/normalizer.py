import re

from projection_models import (
    FAILED_FIRST,
    LOWEST_LEVEL_FIRST,
    PRIORITY_LIST,
    STATUS_APPROVED,
    STATUS_FAILED,
)

# Matches portal codes: ECIN-00704, DCCB 00107, dccb00107, ...
CANONICAL = re.compile(r'^([A-Za-z]{2,8})\s*[-]?\s*(\d{3,6}[A-Za-z]?)$')
LIST_SPLIT = re.compile(r'[,\n;]+')

_STATUS_ALIASES = {
    "APROBADO": STATUS_APPROVED,
    "APPROVED": STATUS_APPROVED,
    "REPROBADO": STATUS_FAILED,
    "FAILED": STATUS_FAILED,
}

# Tag spellings are compared after upper-casing, turning "_" into spaces and
# collapsing whitespace, so "nivel_mas_bajo" and "NIVEL MAS BAJO" both match.
_TAG_ALIASES = {
    "FAILED FIRST": FAILED_FIRST,
    "REPROBADOS": FAILED_FIRST,
    "PRIORITY LIST": PRIORITY_LIST,
    "PRIORITARIOS": PRIORITY_LIST,
    "LOWEST LEVEL FIRST": LOWEST_LEVEL_FIRST,
    "NIVEL MAS BAJO": LOWEST_LEVEL_FIRST,
}


def normalize_code(raw) -> str | None:
    """
    Normalizes a course code to canonical 'DEPT-NNNNN' format.
    Handles: 'ecin-00704', 'ECIN 00704', 'ECIN00704', 'ECIN - 00704'.
    Tokens that do not look like portal codes are returned stripped and
    upper-cased so short catalog codes ('A', 'L1') still match each other.
    Returns None for blank input.
    """
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    m = CANONICAL.match(s)
    if m:
        return f"{m.group(1).upper()}-{m.group(2).upper()}"
    return s.upper()


def normalize_status(raw) -> str:
    """'aprobado' → 'APPROVED', 'REPROBADO' → 'FAILED'; anything else is kept upper-cased."""
    s = str(raw or "").strip().upper()
    return _STATUS_ALIASES.get(s, s)


def normalize_tag(raw) -> str | None:
    """Returns the canonical priority tag for a raw tag, or None when unrecognized."""
    if raw is None:
        return None
    key = " ".join(str(raw).replace("_", " ").upper().split())
    return _TAG_ALIASES.get(key)


def effective_tags(raw_tags) -> list[str]:
    """Recognized tags in caller order, unknown ones dropped, repeats dropped."""
    if raw_tags is None:
        return []
    if isinstance(raw_tags, str):
        raw_tags = LIST_SPLIT.split(raw_tags)
    out: list[str] = []
    for raw in raw_tags:
        tag = normalize_tag(raw)
        if tag and tag not in out:
            out.append(tag)
    return out


def clean_tokens(raw) -> list[str]:
    """
    Splits comma/newline/semicolon-separated input (or takes an iterable),
    trims each token and drops blanks and repeats. First-seen order is kept.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = LIST_SPLIT.split(raw)
    out: list[str] = []
    seen: set[str] = set()
    for token in raw:
        if token is None:
            continue
        token = str(token).strip()
        if not token or token in seen:
            continue
        seen.add(token)
        out.append(token)
    return out


def normalize_code_list(raw) -> list[str]:
    """Like clean_tokens, but every token goes through normalize_code()."""
    out: list[str] = []
    for token in clean_tokens(raw):
        code = normalize_code(token)
        if code and code not in out:
            out.append(code)
    return out
