"""Scoring engine: weighted candidate ranking and the day heat map."""
from datetime import date
from types import SimpleNamespace

from app.services.scheduling.scoring import (
    RANK_WEIGHTS, weight, rank_candidates, day_scores, day_intensity, tally_windows,
)
from app.services.scheduling.windows import ValidStarts

JUNE = ValidStarts(date(2025, 6, 1), date(2025, 6, 10), 3)


def pick(member_id, rank, day):
    return SimpleNamespace(member_id=member_id, rank=rank, start_date=date(2025, 6, day))


def scenario_picks():
    return [pick(2, 1, 3), pick(3, 1, 3), pick(3, 2, 1)]


def test_weights():
    assert RANK_WEIGHTS == {1: 3, 2: 2, 3: 1}
    assert weight(4) == 0


def test_scenario_ranking():
    candidates = rank_candidates(JUNE, scenario_picks(), k=2)
    assert [c.start_date for c in candidates] == [date(2025, 6, 3), date(2025, 6, 1)]
    assert [c.score for c in candidates] == [6, 2]
    assert candidates[0].option_key == "2025-06-03|2025-06-05"
    assert candidates[0].end_date == date(2025, 6, 5)
    assert (candidates[0].love_count, candidates[0].can_count, candidates[0].might_count) == (2, 0, 0)
    assert (candidates[1].love_count, candidates[1].can_count, candidates[1].might_count) == (0, 1, 0)


def test_no_picks_means_no_candidates():
    assert rank_candidates(JUNE, [], k=3) == []


def test_unpicked_windows_are_not_candidates():
    candidates = rank_candidates(JUNE, scenario_picks(), k=5)
    assert len(candidates) == 2


def test_ties_break_on_earliest_start():
    picks = [pick(2, 2, 7), pick(3, 2, 4), pick(4, 2, 5)]
    candidates = rank_candidates(JUNE, picks, k=3)
    assert [c.start_date.day for c in candidates] == [4, 5, 7]


def test_rank_change_only_moves_that_pick():
    before = tally_windows([pick(2, 1, 3), pick(3, 3, 5)])
    after = tally_windows([pick(2, 3, 3), pick(3, 3, 5)])
    assert before[date(2025, 6, 3)]["score"] == 3
    assert after[date(2025, 6, 3)]["score"] == 1
    assert before[date(2025, 6, 5)] == after[date(2025, 6, 5)]


def test_score_matches_exact_start_not_overlap():
    # 06-03 overlaps the 06-02 window but must not count toward it
    candidates = rank_candidates(JUNE, [pick(2, 1, 3)], k=None)
    assert [c.start_date.day for c in candidates] == [3]


def test_out_of_range_picks_ignored():
    stray = SimpleNamespace(member_id=9, rank=1, start_date=date(2025, 7, 1))
    assert rank_candidates(JUNE, [stray], k=3) == []


def test_day_scores_cover_whole_window():
    scores = day_scores(JUNE, scenario_picks())
    assert len(scores) == 10
    # 06-01 window (w=2) covers 1..3; two 06-03 windows (w=3 each) cover 3..5
    assert scores[date(2025, 6, 1)] == 2
    assert scores[date(2025, 6, 2)] == 2
    assert scores[date(2025, 6, 3)] == 8
    assert scores[date(2025, 6, 5)] == 6
    assert scores[date(2025, 6, 6)] == 0


def test_day_intensity_normalizes_against_members():
    scores = day_scores(JUNE, scenario_picks())
    intensity = day_intensity(scores, active_member_count=3)
    assert intensity[date(2025, 6, 1)] == 2 / 9
    assert intensity[date(2025, 6, 10)] == 0.0
    assert all(0.0 <= v <= 1.0 for v in intensity.values())


def test_day_intensity_caps_at_one():
    scores = day_scores(JUNE, scenario_picks())
    intensity = day_intensity(scores, active_member_count=1)
    assert intensity[date(2025, 6, 3)] == 1.0


def test_day_intensity_without_members():
    scores = day_scores(JUNE, scenario_picks())
    assert set(day_intensity(scores, 0).values()) == {0.0}
