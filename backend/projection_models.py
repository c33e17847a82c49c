"""
Record shapes shared by the projection engine and the service layer.

CourseDefinition and HistoryRecord come in from the curriculum and progress
sources. RankedCandidate is internal to ranking/selection and carries the
ordering flags; SelectedCourse is what callers get back.
"""

from dataclasses import dataclass, field, replace

DEFAULT_CREDIT_CAP = 22
DEFAULT_MAX_OPTIONS = 5
MAX_OPTIONS_LIMIT = 10

STATUS_APPROVED = "APPROVED"
STATUS_FAILED = "FAILED"

REASON_FAILED = "FAILED"
REASON_PENDING = "PENDING"

FAILED_FIRST = "FAILED_FIRST"
PRIORITY_LIST = "PRIORITY_LIST"
LOWEST_LEVEL_FIRST = "LOWEST_LEVEL_FIRST"
KNOWN_TAGS = (FAILED_FIRST, PRIORITY_LIST, LOWEST_LEVEL_FIRST)


def normalize_credit_cap(raw) -> int:
    """
    Missing, zero, negative or non-numeric caps fall back to DEFAULT_CREDIT_CAP.
    Fractional values ("18.0", 18.5) are truncated.
    """
    try:
        cap = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CREDIT_CAP
    return cap if cap > 0 else DEFAULT_CREDIT_CAP


@dataclass(frozen=True)
class CourseDefinition:
    code: str
    title: str = ""
    credits: int = 0
    level: int = 0
    prereq: str | None = ""

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "title": self.title,
            "credits": self.credits,
            "level": self.level,
            "prereq": self.prereq or "",
        }


@dataclass(frozen=True)
class HistoryRecord:
    course: str
    status: str
    period: str = ""
    nrc: str = ""
    student: str = ""
    excluded: bool = False
    inscription_type: str = ""

    def to_dict(self) -> dict:
        return {
            "course": self.course,
            "status": self.status,
            "period": self.period,
            "nrc": self.nrc,
            "student": self.student,
            "excluded": self.excluded,
            "inscription_type": self.inscription_type,
        }


@dataclass(frozen=True)
class SelectionCriteria:
    credit_cap: int | None = None
    priority_order: tuple = ()
    priority_courses: tuple = ()
    maximize_credits: bool = False

    @property
    def effective_cap(self) -> int:
        return normalize_credit_cap(self.credit_cap)


@dataclass
class SelectedCourse:
    code: str
    title: str
    credits: int
    level: int
    reason: str
    # Filled in by the offering resolver; the engine always leaves it None.
    nrc: str | None = None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "title": self.title,
            "credits": self.credits,
            "level": self.level,
            "reason": self.reason,
            "nrc": self.nrc,
        }


@dataclass(frozen=True)
class RankedCandidate:
    code: str
    title: str
    credits: int
    level: int
    is_failed: bool = False
    is_priority: bool = False

    @property
    def reason(self) -> str:
        return REASON_FAILED if self.is_failed else REASON_PENDING

    def to_selected(self) -> SelectedCourse:
        return SelectedCourse(
            code=self.code,
            title=self.title,
            credits=self.credits,
            level=self.level,
            reason=self.reason,
        )


@dataclass(frozen=True)
class ProjectionRules:
    credit_cap: int
    checks_prereqs: bool = True
    prioritize_failed: bool = False
    maximize_credits: bool = False
    priority_order: tuple = ()
    period: str | None = None
    avoids_conflicts: bool = False

    def with_offer(self, period: str) -> "ProjectionRules":
        return replace(self, period=period, avoids_conflicts=True)

    def to_dict(self) -> dict:
        out = {
            "credit_cap": self.credit_cap,
            "checks_prereqs": self.checks_prereqs,
            "prioritize_failed": self.prioritize_failed,
            "maximize_credits": self.maximize_credits,
            "priority_order": list(self.priority_order),
        }
        if self.period is not None:
            out["period"] = self.period
            out["avoids_conflicts"] = self.avoids_conflicts
        return out


@dataclass
class ProjectionResult:
    selection: list[SelectedCourse] = field(default_factory=list)
    total_credits: int = 0
    rules: ProjectionRules = field(default_factory=lambda: ProjectionRules(DEFAULT_CREDIT_CAP))

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(c.code for c in self.selection)

    def same_selection(self, other: "ProjectionResult") -> bool:
        """Order-sensitive: same codes in the same order and the same total."""
        return self.codes == other.codes and self.total_credits == other.total_credits

    def to_dict(self) -> dict:
        return {
            "selection": [c.to_dict() for c in self.selection],
            "total_credits": self.total_credits,
            "rules": self.rules.to_dict(),
        }
