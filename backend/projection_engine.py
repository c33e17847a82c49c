"""
Entry points of the projection engine.

compute_selection proposes the courses a student should take next term;
compute_variants adds distinct alternates for the student to compare.
Both are pure functions of their inputs: no I/O, no caches, no module
state, so request handlers can call them concurrently.
"""

from eligibility import build_status_sets, get_eligible_courses
from normalizer import effective_tags
from projection_models import (
    DEFAULT_MAX_OPTIONS,
    FAILED_FIRST,
    ProjectionResult,
    ProjectionRules,
    RankedCandidate,
    SelectionCriteria,
)
from ranking import rank_candidates
from selector import select_courses
from variants import generate_variants


def build_rules(criteria: SelectionCriteria) -> ProjectionRules:
    tags = effective_tags(criteria.priority_order)
    return ProjectionRules(
        credit_cap=criteria.effective_cap,
        checks_prereqs=True,
        prioritize_failed=FAILED_FIRST in tags,
        maximize_credits=bool(criteria.maximize_credits),
        priority_order=tuple(tags),
    )


def prepare_candidates(curriculum, history, criteria: SelectionCriteria) -> list[RankedCandidate]:
    """Eligibility filter followed by ranking."""
    approved, failed = build_status_sets(history)
    eligible = get_eligible_courses(curriculum, approved, failed)
    return rank_candidates(
        eligible,
        failed,
        criteria.priority_courses,
        criteria.priority_order,
    )


def _select(ranked: list[RankedCandidate], criteria: SelectionCriteria) -> ProjectionResult:
    selection, total = select_courses(ranked, criteria.effective_cap, criteria.maximize_credits)
    return ProjectionResult(selection=selection, total_credits=total, rules=build_rules(criteria))


def compute_selection(curriculum, history, criteria: SelectionCriteria | None = None) -> ProjectionResult:
    criteria = criteria or SelectionCriteria()
    ranked = prepare_candidates(curriculum, history, criteria)
    return _select(ranked, criteria)


def compute_variants(
    curriculum,
    history,
    criteria: SelectionCriteria | None = None,
    max_count: int = DEFAULT_MAX_OPTIONS,
) -> list[ProjectionResult]:
    """The primary selection followed by up to max_count - 1 distinct alternates."""
    criteria = criteria or SelectionCriteria()
    ranked = prepare_candidates(curriculum, history, criteria)
    base = _select(ranked, criteria)
    return generate_variants(ranked, base, criteria.effective_cap, max_count)
