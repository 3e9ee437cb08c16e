# route_composer.py
# Iterative stitching of a routed base path with curated accessible segments.
# Returns a complete, immutable ComposedRoute per run.

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence

from .accessibility_icons import color_tag
from .errors import RoutingError
from .geo_utils import distance_meters, min_distance_between, path_length
from .instruction_builder import InstructionBuilder
from .models import (
    AccessibleSegment,
    ComposedRoute,
    GeoPoint,
    RouteSegment,
    RoutingResult,
    SegmentKind,
    Termination,
    TravelMode,
)
from .nav_config import NavConfig
from .route_scorer import score

logger = logging.getLogger(__name__)


class Router(Protocol):
    def route(self, waypoints: Sequence[GeoPoint], profile: str = "foot") -> RoutingResult:
        ...


@dataclass(frozen=True)
class Candidate:
    segment: AccessibleSegment
    score: float
    entry_distance: float      # closest approach to the base route (m)
    length_m: float


class RouteComposer:
    """
    Builds a ComposedRoute between two points.

    Foot mode repeatedly asks the router for a base route from the current
    position, splices in the best-scoring unused accessible segment near it
    and continues from that segment's exit. Drive mode is a single routed
    leg, optionally through a parking spot.

    Args:
        router:  Object with route(waypoints, profile) -> RoutingResult.
        config:  NavConfig instance.
        builder: InstructionBuilder used to translate routing steps.
    """

    def __init__(
        self,
        router: Router,
        config: Optional[NavConfig] = None,
        builder: Optional[InstructionBuilder] = None,
    ) -> None:
        self.router = router
        self.config = config or NavConfig()
        self.builder = builder or InstructionBuilder(self.config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compose(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        mode: TravelMode,
        segments: Sequence[AccessibleSegment] = (),
        parking_spot: Optional[GeoPoint] = None,
    ) -> ComposedRoute:
        """
        Compose a route from origin to destination.

        Raises:
            RoutingError: the routing service failed before anything was spliced.
        """
        if mode is TravelMode.DRIVE:
            return self._compose_drive(origin, destination, parking_spot)
        return self._compose_foot(origin, destination, segments)

    # ------------------------------------------------------------------
    # Drive mode
    # ------------------------------------------------------------------

    def _compose_drive(self, origin: GeoPoint, destination: GeoPoint, parking_spot: Optional[GeoPoint]) -> ComposedRoute:
        waypoints = [origin, destination] if parking_spot is None else [origin, parking_spot, destination]
        logger.info(f"Drive route through {len(waypoints)} waypoints")
        result = self.router.route(waypoints, TravelMode.DRIVE.profile)
        return ComposedRoute(
            segments=(self._generic(result, TravelMode.DRIVE),),
            mode=TravelMode.DRIVE,
            termination=Termination.DIRECT,
            origin=origin,
            destination=destination,
        )

    # ------------------------------------------------------------------
    # Foot mode
    # ------------------------------------------------------------------

    def _compose_foot(self, origin: GeoPoint, destination: GeoPoint, segments: Sequence[AccessibleSegment]) -> ComposedRoute:
        cfg = self.config
        profile = TravelMode.FOOT.profile
        pool = [s for s in segments if s.is_approved and s.mode is TravelMode.FOOT]
        lengths: Dict[str, float] = {s.id: path_length(s.path) for s in pool}

        direct_distance = distance_meters(origin, destination)
        current = origin
        accumulated = 0.0
        used: List[str] = []
        parts: List[RouteSegment] = []

        def finish(termination: Termination) -> ComposedRoute:
            logger.info(
                f"Composition finished ({termination.value}): {len(parts)} segments, "
                f"{len(used)} accessible, {accumulated:.0f} m"
            )
            return ComposedRoute(
                segments=tuple(parts),
                mode=TravelMode.FOOT,
                termination=termination,
                origin=origin,
                destination=destination,
            )

        if direct_distance < cfg.point_tolerance_m:
            base = self.router.route([origin, destination], profile)
            parts.append(self._generic(base))
            return finish(Termination.NO_CANDIDATE)

        logger.info(f"Composing foot route: {origin} → {destination} ({len(pool)} candidate segments)")
        try:
            for iteration in range(cfg.max_iterations):
                # 1. Base route from where we stand
                base = self.router.route([current, destination], profile)

                # 2. Best candidate along it
                best = self._best_candidate(base, current, destination, accumulated, direct_distance, pool, used, lengths)
                if best is None:
                    parts.append(self._generic(base))
                    accumulated += base.distance_m
                    return finish(Termination.NO_CANDIDATE)

                # 3. Detour guard
                to_entry = distance_meters(current, best.segment.entry)
                total_new = accumulated + to_entry + best.length_m
                if total_new / direct_distance > cfg.max_detour_ratio:
                    logger.info(
                        f"Segment {best.segment.id} rejected: detour ratio "
                        f"{total_new / direct_distance:.2f} > {cfg.max_detour_ratio}"
                    )
                    parts.append(self._generic(base))
                    accumulated += base.distance_m
                    return finish(Termination.DETOUR_BUDGET)

                # 4. Splice: connector to the entry, then the segment itself
                logger.info(
                    f"Iteration {iteration + 1}: splicing segment {best.segment.id} "
                    f"(score {best.score:.1f}, {best.entry_distance:.0f} m from base route)"
                )
                if not self._same_point(current, best.segment.entry):
                    connector = self.router.route([current, best.segment.entry], profile)
                    parts.append(self._generic(connector))
                    accumulated += connector.distance_m

                parts.append(self._accessible(best))
                accumulated += best.length_m
                used.append(best.segment.id)
                current = best.segment.exit

                if distance_meters(current, destination) < cfg.arrival_radius_m:
                    if not self._same_point(current, destination):
                        final = self.router.route([current, destination], profile)
                        parts.append(self._generic(final))
                        accumulated += final.distance_m
                    return finish(Termination.ARRIVED)
        except RoutingError as e:
            if not used:
                logger.warning(f"Composition aborted before any splice: {e}")
                raise
            logger.warning(f"Routing failed after {len(used)} splice(s), returning partial route: {e}")
            return finish(Termination.ROUTING_FAILED)

        logger.warning(f"Iteration cap ({cfg.max_iterations}) reached before the destination.")
        return finish(Termination.ITERATION_CAP)

    def _best_candidate(
        self,
        base: RoutingResult,
        current: GeoPoint,
        destination: GeoPoint,
        accumulated: float,
        direct_distance: float,
        pool: Sequence[AccessibleSegment],
        used: Sequence[str],
        lengths: Dict[str, float],
    ) -> Optional[Candidate]:
        """Highest-scoring unused segment within the proximity threshold; first wins ties."""
        threshold = self.config.proximity_threshold_m
        best: Optional[Candidate] = None
        for segment in pool:
            if segment.id in used:
                continue
            entry_distance = min_distance_between(segment.path, base.path)
            if entry_distance >= threshold:
                continue
            s = score(segment, entry_distance, current, destination, accumulated, direct_distance, threshold)
            if best is None or s > best.score:
                best = Candidate(segment, s, entry_distance, lengths[segment.id])
        return best

    # ------------------------------------------------------------------
    # Segment construction
    # ------------------------------------------------------------------

    def _generic(self, result: RoutingResult, mode: TravelMode = TravelMode.FOOT) -> RouteSegment:
        return RouteSegment(
            path=result.path,
            kind=SegmentKind.GENERIC,
            instructions=self.builder.translate_steps(result.steps),
            color=color_tag(SegmentKind.GENERIC, mode),
            distance_m=result.distance_m,
        )

    def _accessible(self, candidate: Candidate) -> RouteSegment:
        segment = candidate.segment
        return RouteSegment(
            path=segment.path,
            kind=SegmentKind.ACCESSIBLE,
            instructions=(self.builder.accessible_instruction(segment, candidate.length_m),),
            source_segment_id=segment.id,
            color=color_tag(SegmentKind.ACCESSIBLE),
            distance_m=candidate.length_m,
        )

    def _same_point(self, a: GeoPoint, b: GeoPoint) -> bool:
        return distance_meters(a, b) < self.config.point_tolerance_m
