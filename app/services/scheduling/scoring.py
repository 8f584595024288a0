"""Pure scoring over member date picks.

Both outputs share one primitive, ``RANK_WEIGHTS``: a rank-1 pick (love) is
worth 3, rank 2 (can) 2, rank 3 (might) 1.

* ``day_scores`` / ``day_intensity`` spread each pick over every day of its
  window; visualization only.
* ``rank_candidates`` scores each valid window start by the picks that start
  on exactly that date; this ranking is what becomes the voting ballot.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from app.schemas.trip.scheduling import Candidate
from app.services.scheduling.windows import ValidStarts, window_end, make_option_key

RANK_WEIGHTS = {1: 3, 2: 2, 3: 1}
MAX_WEIGHT = RANK_WEIGHTS[1]
RANK_COUNT_FIELDS = {1: "love_count", 2: "can_count", 3: "might_count"}


def weight(rank: int) -> int:
    return RANK_WEIGHTS.get(rank, 0)


def day_scores(valid_starts: ValidStarts, picks: Iterable) -> Dict[date, int]:
    """Weighted sum per calendar day in [start_bound, end_bound]."""
    scores: Dict[date, int] = {}
    day = valid_starts.start_bound
    while day <= valid_starts.end_bound:
        scores[day] = 0
        day += timedelta(days=1)

    length = valid_starts.trip_length_days
    for pick in picks:
        w = weight(pick.rank)
        for offset in range(length):
            covered = pick.start_date + timedelta(days=offset)
            if covered in scores:
                scores[covered] += w
    return scores


def day_intensity(scores: Dict[date, int], active_member_count: int) -> Dict[date, float]:
    """Normalize day scores to 0..1 against ``3 * active_member_count``."""
    expected_max = MAX_WEIGHT * active_member_count
    if expected_max <= 0:
        return {day: 0.0 for day in scores}
    return {day: min(1.0, score / expected_max) for day, score in scores.items()}


def tally_windows(picks: Iterable) -> Dict[date, Dict[str, int]]:
    tallies: Dict[date, Dict[str, int]] = defaultdict(
        lambda: {"score": 0, "love_count": 0, "can_count": 0, "might_count": 0}
    )
    for pick in picks:
        field = RANK_COUNT_FIELDS.get(pick.rank)
        if field is None:
            continue
        tally = tallies[pick.start_date]
        tally["score"] += weight(pick.rank)
        tally[field] += 1
    return tallies


def rank_candidates(valid_starts: ValidStarts, picks: Iterable, k: Optional[int] = 3) -> List[Candidate]:
    """Top-k windows by score, ties broken by earliest start date.

    Only windows somebody actually picked are returned, so a trip without
    picks yields an empty list.
    """
    tallies = tally_windows(picks)
    candidates = []
    for start in valid_starts:
        tally = tallies.get(start)
        if not tally or tally["score"] <= 0:
            continue
        end = window_end(start, valid_starts.trip_length_days)
        candidates.append(
            Candidate(
                option_key=make_option_key(start, end),
                start_date=start,
                end_date=end,
                **tally,
            )
        )

    candidates.sort(key=lambda c: (-c.score, c.start_date))
    if k is not None:
        candidates = candidates[:k]
    return candidates
