import pandas as pd

# Separator used by the curriculum feed: "DCCB-00107, DCCB-00106"
PREREQ_SEPARATOR = ","


def parse_prereqs(prereq_str) -> list[str]:
    """
    Parses a prerequisite expression into the list of required course codes.

    Supported grammar:
      None / NaN / "" / "   "   → []
      CODE                      → ["CODE"]
      CODE, CODE, ...           → ["CODE", "CODE", ...]   (all required)

    Each token is trimmed and empty tokens ("A,,B", trailing commas) are
    dropped. Listed order is preserved.
    """
    if prereq_str is None:
        return []
    if not isinstance(prereq_str, str):
        if pd.isna(prereq_str):
            return []
        prereq_str = str(prereq_str)

    s = prereq_str.strip()
    if not s:
        return []
    return [tok.strip() for tok in s.split(PREREQ_SEPARATOR) if tok.strip()]


def prereqs_satisfied(prereq_codes: list[str], approved_codes: set) -> bool:
    """Returns True when every required code is approved. No codes → True."""
    return all(code in approved_codes for code in prereq_codes)


def build_prereq_check_string(prereq_codes: list[str], approved_codes: set) -> str:
    """
    Returns a human-readable string showing which prereqs are satisfied.
    Examples:
      "No prerequisites"
      "DCCB-00107 ✓; DCCB-00106 ✗"
    """
    if not prereq_codes:
        return "No prerequisites"
    return "; ".join(
        f"{code} ✓" if code in approved_codes else f"{code} ✗"
        for code in prereq_codes
    )
