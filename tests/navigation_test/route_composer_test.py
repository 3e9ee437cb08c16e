import pytest

from accessnav.router.errors import NoRouteFound, RoutingUnavailable
from accessnav.router.geo_utils import distance_meters
from accessnav.router.models import (
    AccessibleSegment,
    GeoPoint,
    SegmentKind,
    SegmentStatus,
    Termination,
    TravelMode,
)
from accessnav.router.nav_config import NavConfig
from accessnav.router.route_composer import RouteComposer

from fakes import DEST, START, FakeRouter, lerp, segment_on_line


def compose(router, segments=(), mode=TravelMode.FOOT, config=None, **kwargs):
    return RouteComposer(router, config or NavConfig()).compose(START, DEST, mode, segments, **kwargs)


def test_no_segments_gives_single_generic_leg(router):
    route = compose(router)

    assert len(route.segments) == 1
    assert route.segments[0].kind is SegmentKind.GENERIC
    assert route.used_segment_ids == frozenset()
    assert route.termination is Termination.NO_CANDIDATE
    assert route.path[0] == START
    assert route.path[-1] == DEST
    assert router.calls == [((START, DEST), "foot")]


def test_nearby_segment_is_spliced_between_two_connectors(router):
    seg = segment_on_line("ermou", 0.3, 0.7, description="Step-free street")
    route = compose(router, [seg])

    assert route.used_segment_ids == {"ermou"}
    assert [s.kind for s in route.segments] == [
        SegmentKind.GENERIC, SegmentKind.ACCESSIBLE, SegmentKind.GENERIC,
    ]
    assert route.termination is Termination.ARRIVED
    assert route.segments[1].source_segment_id == "ermou"
    assert route.segments[1].color == "accessible"

    # consecutive segments share their joints
    for prev, nxt in zip(route.segments, route.segments[1:]):
        assert distance_meters(prev.path[-1], nxt.path[0]) < 1.0
    assert route.path[0] == START
    assert route.path[-1] == DEST


def test_segment_spanning_the_whole_trip_is_the_only_segment(router):
    seg = AccessibleSegment(
        id="whole",
        path=(START, lerp(START, DEST, 0.5), DEST),
        description="Whole trip",
        status=SegmentStatus.APPROVED,
    )
    route = compose(router, [seg])

    assert len(route.segments) == 1
    assert route.segments[0].kind is SegmentKind.ACCESSIBLE
    assert route.termination is Termination.ARRIVED


def test_entry_a_fraction_of_a_metre_from_start_needs_no_connector(router):
    near_start = GeoPoint(START.lat + 0.0000027, START.lng)   # ~0.3 m north
    mid = lerp(START, DEST, 0.3)
    seg = AccessibleSegment(
        id="kerb",
        path=(near_start, near_start, GeoPoint(near_start.lat + 0.000001, near_start.lng), mid, mid,
              lerp(START, DEST, 0.7)),
        description="Lowered kerb",
        status=SegmentStatus.APPROVED,
    )
    route = compose(router, [seg])

    assert route.segments[0].kind is SegmentKind.ACCESSIBLE
    assert route.segments[0].source_segment_id == "kerb"
    assert [waypoints for waypoints, _ in router.calls] == [(START, DEST), (seg.exit, DEST)]
    assert route.termination is Termination.ARRIVED


def test_drive_mode_routes_through_parking_spot(router):
    spot = lerp(START, DEST, 0.6)
    foot_segment = segment_on_line("ermou", 0.3, 0.7)
    route = compose(router, [foot_segment], mode=TravelMode.DRIVE, parking_spot=spot)

    assert router.calls == [((START, spot, DEST), "car")]
    assert len(route.segments) == 1
    assert route.segments[0].kind is SegmentKind.GENERIC
    assert route.segments[0].color == "drive"
    assert route.used_segment_ids == frozenset()
    assert route.termination is Termination.DIRECT


def test_composition_is_deterministic():
    segments = [
        segment_on_line("a", 0.3, 0.7, description="Ramp"),
        segment_on_line("b", 0.2, 0.5, description=""),
    ]
    first = compose(FakeRouter(), segments)
    second = compose(FakeRouter(), segments)

    assert first.used_segment_ids == second.used_segment_ids
    assert len(first.segments) == len(second.segments)


def test_detour_guard_rejects_long_segment(router):
    north = 0.0018  # ~200 m
    entry = lerp(START, DEST, 0.5)
    exit_ = lerp(START, DEST, 0.6)
    loop = AccessibleSegment(
        id="loop",
        path=(entry, GeoPoint(entry.lat + north, entry.lng), GeoPoint(exit_.lat + north, exit_.lng), exit_),
        description="Scenic detour",
        status=SegmentStatus.APPROVED,
    )
    route = compose(router, [loop])

    assert "loop" not in route.used_segment_ids
    assert route.termination is Termination.DETOUR_BUDGET
    assert len(route.segments) == 1
    assert route.segments[0].kind is SegmentKind.GENERIC


def test_segments_outside_threshold_are_ignored(router):
    far_a = GeoPoint(START.lat + 0.003, START.lng)
    far_b = GeoPoint(DEST.lat + 0.003, DEST.lng)
    far = segment_on_line("far", 0.2, 0.6, a=far_a, b=far_b)
    route = compose(router, [far])

    assert route.used_segment_ids == frozenset()
    assert route.termination is Termination.NO_CANDIDATE


def test_unapproved_and_drive_segments_are_skipped(router):
    pending = segment_on_line("pending", 0.3, 0.7, status=SegmentStatus.PENDING)
    drive = segment_on_line("drive", 0.3, 0.7, mode=TravelMode.DRIVE)
    route = compose(router, [pending, drive])

    assert route.used_segment_ids == frozenset()


def test_failure_before_any_splice_raises():
    router = FakeRouter(fail_on={1})
    with pytest.raises(RoutingUnavailable):
        compose(router, [segment_on_line("a", 0.3, 0.7)])


def test_no_route_before_any_splice_raises():
    router = FakeRouter(fail_on={1}, error=NoRouteFound)
    with pytest.raises(NoRouteFound):
        compose(router)


def test_failure_after_splice_returns_partial_route():
    # base, connector, then the second base request fails
    router = FakeRouter(fail_on={3})
    seg = segment_on_line("a", 0.2, 0.4)
    route = compose(router, [seg])

    assert route.termination is Termination.ROUTING_FAILED
    assert route.degraded
    assert route.used_segment_ids == {"a"}
    assert [s.kind for s in route.segments] == [SegmentKind.GENERIC, SegmentKind.ACCESSIBLE]


def test_iteration_cap_marks_route_degraded(router):
    seg = segment_on_line("a", 0.2, 0.4)
    route = compose(router, [seg], config=NavConfig(max_iterations=1))

    assert route.termination is Termination.ITERATION_CAP
    assert route.degraded
    assert route.used_segment_ids == {"a"}


def test_each_segment_used_at_most_once(router):
    segments = [
        segment_on_line("a", 0.1, 0.3),
        segment_on_line("b", 0.35, 0.55),
        segment_on_line("c", 0.6, 0.8),
    ]
    route = compose(router, segments)

    ids = [s.source_segment_id for s in route.segments if s.kind is SegmentKind.ACCESSIBLE]
    assert len(ids) == len(set(ids))
    assert route.path[-1] == DEST


def test_instructions_are_attached_to_segments(router):
    seg = segment_on_line("ermou", 0.3, 0.7, description="Step-free street")
    route = compose(router, [seg])

    accessible = route.segments[1]
    assert len(accessible.instructions) == 1
    assert accessible.instructions[0].is_accessible
    assert "Step-free street" in accessible.instructions[0].text
