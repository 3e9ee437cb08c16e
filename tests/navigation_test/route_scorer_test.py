import pytest

from accessnav.router.geo_utils import distance_meters
from accessnav.router.models import TravelMode
from accessnav.router.route_scorer import (
    breakdown,
    destination_term,
    detour_penalty,
    proximity_term,
    quality_term,
    score,
)
from accessnav.router.segment_store import build_segment, segment_from_dict

from fakes import DEST, START, segment_on_line


def test_proximity_term_falls_with_entry_distance():
    values = [proximity_term(d, 80.0) for d in (0, 10, 40, 79, 80, 200)]
    assert values[0] == 100.0
    assert values == sorted(values, reverse=True)
    assert values[-2] == 0.0
    assert values[-1] == 0.0


def test_quality_term_rewards_description():
    assert quality_term(segment_on_line("a", 0.1, 0.2, description="Ramp")) == 50.0
    assert quality_term(segment_on_line("b", 0.1, 0.2, description="")) == 20.0
    assert quality_term(segment_on_line("c", 0.1, 0.2, description="   ")) == 50.0


def test_blank_description_is_cleared_at_ingestion():
    path = segment_on_line("a", 0.1, 0.2).path
    built = build_segment(path, TravelMode.FOOT, description="   ")
    stored = segment_from_dict(dict(segment_on_line("b", 0.1, 0.2).to_dict(), description="  "))
    assert quality_term(built) == 20.0
    assert quality_term(stored) == 20.0


def test_destination_term():
    at_dest = segment_on_line("a", 0.5, 1.0)
    assert destination_term(at_dest, DEST) == pytest.approx(100.0)

    far = segment_on_line("b", 0.0, 0.5)
    remaining = distance_meters(far.exit, DEST)
    assert destination_term(far, DEST) == pytest.approx(100.0 - remaining / 1000.0 * 50.0)


def test_detour_penalty_grows_with_accumulated_distance():
    values = [detour_penalty(acc, 100.0, 500.0) for acc in (0, 300, 400, 600, 1000)]
    assert values == sorted(values)
    assert values[0] == 0.0
    assert detour_penalty(600.0, 100.0, 500.0) == pytest.approx(20.0)


def test_detour_penalty_with_zero_direct_distance():
    assert detour_penalty(100.0, 50.0, 0.0) == 0.0


def test_score_is_weighted_sum():
    seg = segment_on_line("a", 0.2, 0.6)
    direct = distance_meters(START, DEST)
    b = breakdown(seg, 20.0, START, DEST, 0.0, direct, 80.0)
    expected = 0.3 * b.proximity + 0.2 * b.quality + 0.3 * b.destination - 0.2 * b.detour
    assert score(seg, 20.0, START, DEST, 0.0, direct, 80.0) == pytest.approx(expected)
    assert b.proximity == pytest.approx(75.0)


def test_closer_candidate_scores_higher():
    seg = segment_on_line("a", 0.2, 0.6)
    direct = distance_meters(START, DEST)
    near = score(seg, 5.0, START, DEST, 0.0, direct, 80.0)
    far = score(seg, 60.0, START, DEST, 0.0, direct, 80.0)
    assert near > far
