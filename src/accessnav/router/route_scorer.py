# route_scorer.py
# Desirability score of an accessible segment as the next splice.
# Pure functions; higher is better.

from dataclasses import dataclass

from .geo_utils import distance_meters, path_length
from .models import AccessibleSegment, GeoPoint


PROXIMITY_WEIGHT   = 0.3
QUALITY_WEIGHT     = 0.2
DESTINATION_WEIGHT = 0.3
DETOUR_WEIGHT      = 0.2

DESCRIBED_QUALITY   = 50.0
UNDESCRIBED_QUALITY = 20.0


def proximity_term(entry_distance: float, proximity_threshold: float) -> float:
    """100 at the base route, falling linearly to 0 at the threshold."""
    return max(0.0, 100.0 - (entry_distance / proximity_threshold) * 100.0)


def quality_term(candidate: AccessibleSegment) -> float:
    """Curated detail counts as a quality signal."""
    return DESCRIBED_QUALITY if candidate.description else UNDESCRIBED_QUALITY


def destination_term(candidate: AccessibleSegment, destination: GeoPoint) -> float:
    """Loses 50 points per kilometre between the segment exit and the destination."""
    remaining = distance_meters(candidate.exit, destination)
    return max(0.0, 100.0 - (remaining / 1000.0) * 50.0)


def detour_penalty(accumulated_distance: float, segment_length: float, direct_distance: float) -> float:
    """50 points per unit of projected distance beyond the straight line."""
    if direct_distance <= 0:
        return 0.0
    projected = accumulated_distance + segment_length
    return max(0.0, (projected / direct_distance - 1.0) * 50.0)


def score(
    candidate: AccessibleSegment,
    entry_distance: float,
    current_position: GeoPoint,
    destination: GeoPoint,
    accumulated_distance: float,
    direct_distance: float,
    proximity_threshold: float,
) -> float:
    """
    Weighted sum of proximity, quality and destination progress, minus
    the detour penalty.

    Args:
        candidate:            Segment being considered.
        entry_distance:       Closest approach of the segment to the base route (m).
        current_position:     Where composition currently stands.
        destination:          Overall destination.
        accumulated_distance: Distance already composed (m).
        direct_distance:      Great-circle distance origin → destination (m).
        proximity_threshold:  Search radius (m).
    """
    return breakdown(
        candidate, entry_distance, current_position, destination,
        accumulated_distance, direct_distance, proximity_threshold,
    ).total


@dataclass(frozen=True)
class ScoreBreakdown:
    proximity: float
    quality: float
    destination: float
    detour: float

    @property
    def total(self) -> float:
        return (
            self.proximity * PROXIMITY_WEIGHT
            + self.quality * QUALITY_WEIGHT
            + self.destination * DESTINATION_WEIGHT
            - self.detour * DETOUR_WEIGHT
        )


def breakdown(
    candidate: AccessibleSegment,
    entry_distance: float,
    current_position: GeoPoint,
    destination: GeoPoint,
    accumulated_distance: float,
    direct_distance: float,
    proximity_threshold: float,
) -> ScoreBreakdown:
    """The four unweighted terms behind score(), for logging and tests."""
    return ScoreBreakdown(
        proximity=proximity_term(entry_distance, proximity_threshold),
        quality=quality_term(candidate),
        destination=destination_term(candidate, destination),
        detour=detour_penalty(accumulated_distance, path_length(candidate.path), direct_distance),
    )
