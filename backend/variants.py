from projection_models import ProjectionResult, RankedCandidate
from selector import select_greedy


def _is_duplicate(result: ProjectionResult, accepted: list[ProjectionResult]) -> bool:
    return any(result.same_selection(other) for other in accepted)


def _without_course(ranked: list[RankedCandidate], code: str) -> list[RankedCandidate]:
    return [c for c in ranked if c.code != code]


def _omission_variants(ranked, base, cap):
    """Greedy re-runs, each one with a single course of the base selection left out."""
    for course in base.selection:
        selection, total = select_greedy(_without_course(ranked, course.code), cap)
        yield ProjectionResult(selection=selection, total_credits=total, rules=base.rules)


def _forced_variants(ranked, base, cap):
    """Priority courses missing from the base, each one forced first and the rest filled greedily."""
    base_codes = set(base.codes)
    for cand in ranked:
        if not cand.is_priority or cand.code in base_codes:
            continue
        if cand.credits > cap:
            continue
        rest, rest_total = select_greedy(_without_course(ranked, cand.code), cap - cand.credits)
        yield ProjectionResult(
            selection=[cand.to_selected()] + rest,
            total_credits=cand.credits + rest_total,
            rules=base.rules,
        )


def generate_variants(
    ranked: list[RankedCandidate],
    base: ProjectionResult,
    cap: int,
    max_count: int,
) -> list[ProjectionResult]:
    """
    Build up to max_count distinct selections, the base result first.

    Alternates come from leaving out one base course at a time, then from
    forcing in priority courses the base did not pick. Empty alternates and
    alternates with the same ordered codes and total as an accepted one are
    skipped. max_count <= 0 returns just the base.
    """
    accepted = [base]
    if max_count <= 1:
        return accepted

    for alt in _omission_variants(ranked, base, cap):
        if len(accepted) >= max_count:
            return accepted
        if alt.selection and not _is_duplicate(alt, accepted):
            accepted.append(alt)

    for alt in _forced_variants(ranked, base, cap):
        if len(accepted) >= max_count:
            return accepted
        if alt.selection and not _is_duplicate(alt, accepted):
            accepted.append(alt)

    return accepted
