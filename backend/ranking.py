from normalizer import effective_tags, normalize_code_list
from projection_models import (
    CourseDefinition,
    FAILED_FIRST,
    LOWEST_LEVEL_FIRST,
    PRIORITY_LIST,
    RankedCandidate,
)


def annotate_candidates(
    candidates: list[CourseDefinition],
    failed: set[str],
    priority: set[str],
) -> list[RankedCandidate]:
    return [
        RankedCandidate(
            code=c.code,
            title=c.title,
            credits=c.credits,
            level=c.level,
            is_failed=c.code in failed,
            is_priority=c.code in priority,
        )
        for c in candidates
    ]


def _rank_key(candidate: RankedCandidate, tags: list[str]) -> tuple:
    """
    One key component per tag, in caller order, then level as the fallback.
    Comparing these tuples is the same as walking the tags until one of them
    tells the two candidates apart.
    """
    key = []
    for tag in tags:
        if tag == FAILED_FIRST:
            key.append(0 if candidate.is_failed else 1)
        elif tag == PRIORITY_LIST:
            key.append(0 if candidate.is_priority else 1)
        elif tag == LOWEST_LEVEL_FIRST:
            key.append(candidate.level)
    key.append(candidate.level)
    return tuple(key)


def rank_candidates(
    candidates: list[CourseDefinition],
    failed: set[str],
    priority_courses,
    priority_order,
) -> list[RankedCandidate]:
    """
    Order eligible courses by the caller's priority tags.

    priority_courses is free-form input; codes are normalized the same way
    the curriculum loader normalizes them, so "dccb 00107" matches DCCB-00107.
    priority_order is a list of tags; unrecognized ones are ignored.
    The sort is stable, so candidates that tie on every tag keep their
    curriculum order.
    """
    priority = set(normalize_code_list(priority_courses))
    tags = effective_tags(priority_order)
    annotated = annotate_candidates(candidates, failed, priority)
    return sorted(annotated, key=lambda c: _rank_key(c, tags))
