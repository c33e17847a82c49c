from projection_models import RankedCandidate, SelectedCourse


def select_greedy(ranked: list[RankedCandidate], cap: int) -> tuple[list[SelectedCourse], int]:
    """
    Walk the ranked list once, taking every course that still fits.

    Never backtracks, so it can leave credits unused when a later, smaller
    course would have fit better. Stops as soon as the cap is reached.
    """
    selection: list[SelectedCourse] = []
    total = 0
    for cand in ranked:
        if total + cand.credits <= cap:
            selection.append(cand.to_selected())
            total += cand.credits
        if total >= cap:
            break
    return selection, total


def _is_better_combination(candidate: list[int], current: list[int]) -> bool:
    """
    Both combinations reach the same credit total.
    More courses wins; with equal counts the lower mean index wins, which for
    equal counts is the lower index sum.
    """
    if len(candidate) != len(current):
        return len(candidate) > len(current)
    return sum(candidate) < sum(current)


def select_maximizing(ranked: list[RankedCandidate], cap: int) -> tuple[list[SelectedCourse], int]:
    """
    Bounded subset-sum over credit totals 0..cap.

    table[t] holds one combination of candidate indices reaching exactly t
    credits (None while unreachable). Candidates are processed in ranked
    order and totals from high to low so each course is used at most once.
    The answer is the combination stored at the highest reachable total.
    No total above the sum of usable credits is reachable, so the table is
    bounded by that sum as well as by the cap: O(n * min(cap, sum)) time.
    """
    usable = [c.credits for c in ranked if 0 <= c.credits <= cap]
    bound = min(cap, sum(usable))
    table: list[list[int] | None] = [None] * (bound + 1)
    table[0] = []

    for idx, cand in enumerate(ranked):
        credits = cand.credits
        if credits < 0 or credits > bound:
            continue
        for total in range(bound, credits - 1, -1):
            prev = table[total - credits]
            if prev is None:
                continue
            combo = prev + [idx]
            current = table[total]
            if current is None or _is_better_combination(combo, current):
                table[total] = combo

    best_total = max(t for t, combo in enumerate(table) if combo is not None)
    selection = [ranked[i].to_selected() for i in table[best_total]]
    return selection, best_total


def select_courses(
    ranked: list[RankedCandidate],
    cap: int,
    maximize_credits: bool = False,
) -> tuple[list[SelectedCourse], int]:
    if maximize_credits:
        return select_maximizing(ranked, cap)
    return select_greedy(ranked, cap)
