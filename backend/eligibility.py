from normalizer import normalize_status
from prereq_parser import build_prereq_check_string, parse_prereqs, prereqs_satisfied
from projection_models import CourseDefinition, STATUS_APPROVED, STATUS_FAILED


def build_status_sets(history) -> tuple[set[str], set[str]]:
    """
    Collapse a student's history into (approved, failed) code sets.

    Retakes produce several records per course; only set membership matters.
    A course can land in both sets (failed once, approved later). Callers
    must check the approved set first: approval wins.
    """
    approved: set[str] = set()
    failed: set[str] = set()
    for record in history or []:
        status = normalize_status(record.status)
        if status == STATUS_APPROVED:
            approved.add(record.course)
        elif status == STATUS_FAILED:
            failed.add(record.course)
    return approved, failed


def is_eligible(course: CourseDefinition, approved: set[str], failed: set[str]) -> bool:
    if course.code in approved:
        return False
    if course.code in failed:
        return True
    return prereqs_satisfied(parse_prereqs(course.prereq), approved)


def get_eligible_courses(
    curriculum: list[CourseDefinition],
    approved: set[str],
    failed: set[str],
) -> list[CourseDefinition]:
    """
    Courses the student can legally take next term, in curriculum order.

    Approved courses are dropped. A remaining course is eligible when it was
    failed before (retake) or when every prerequisite it lists is approved.
    """
    return [c for c in curriculum or [] if is_eligible(c, approved, failed)]


def missing_prereqs(course: CourseDefinition, approved: set[str]) -> list[str]:
    """Prerequisite codes not yet approved, in listed order."""
    return [code for code in parse_prereqs(course.prereq) if code not in approved]


def check_can_take(
    requested_code: str,
    curriculum: list[CourseDefinition],
    history,
) -> dict:
    """
    Returns a can-take assessment for a specific requested course.

    Returns:
    {
      "course_code": str,
      "can_take": bool,
      "why_not": str | None,
      "missing_prereqs": [str],
      "failed_retake": bool,
      "prereq_check": str,
    }
    """
    approved, failed = build_status_sets(history)
    course = next((c for c in curriculum or [] if c.code == requested_code), None)

    if course is None:
        return {
            "course_code": requested_code,
            "can_take": False,
            "why_not": f"{requested_code} is not in the curriculum.",
            "missing_prereqs": [],
            "failed_retake": False,
            "prereq_check": "",
        }

    prereq_codes = parse_prereqs(course.prereq)
    check = build_prereq_check_string(prereq_codes, approved)

    if course.code in approved:
        return {
            "course_code": requested_code,
            "can_take": False,
            "why_not": f"You have already approved {requested_code}.",
            "missing_prereqs": [],
            "failed_retake": False,
            "prereq_check": check,
        }

    if course.code in failed:
        return {
            "course_code": requested_code,
            "can_take": True,
            "why_not": None,
            "missing_prereqs": [],
            "failed_retake": True,
            "prereq_check": check,
        }

    missing = missing_prereqs(course, approved)
    return {
        "course_code": requested_code,
        "can_take": not missing,
        "why_not": f"Missing prerequisites: {', '.join(missing)}." if missing else None,
        "missing_prereqs": missing,
        "failed_retake": False,
        "prereq_check": check,
    }
