# parking_finder.py
# Collects parking spots from approved segments and finds the ones
# nearest to a destination. A chosen spot becomes the intermediate
# waypoint of a drive route.
#
# Usage:
#   finder = ParkingFinder(store.list_approved(TravelMode.DRIVE))
#   spots = finder.find_nearby(destination)
#   if spots:
#       nav.switch_mode(TravelMode.DRIVE)
#       nav.plan_route(origin, destination, parking_spot=spots[0].position)

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .accessibility_icons import presentation_for
from .geo_utils import distance_meters
from .models import AccessibleSegment, GeoPoint, WaypointType
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParkingSpot:
    """A parking waypoint taken from an approved segment."""
    id: str
    position: GeoPoint
    type: WaypointType
    description: str
    segment_id: str
    distance_m: Optional[float] = None     # from the searched destination

    @property
    def label(self) -> str:
        return presentation_for(self.type).description

    def __str__(self) -> str:
        where = f" {int(self.distance_m)} m away" if self.distance_m is not None else ""
        return f"{self.label} ({self.description or self.segment_id}){where}"


def extract_parking_spots(segments: Sequence[AccessibleSegment]) -> List[ParkingSpot]:
    spots: List[ParkingSpot] = []
    for segment in segments:
        if not segment.is_approved:
            continue
        for w in segment.points:
            if w.type.is_parking:
                spots.append(ParkingSpot(
                    id=f"{segment.id}-{w.position.lat}-{w.position.lng}",
                    position=w.position,
                    type=w.type,
                    description=w.description,
                    segment_id=segment.id,
                ))
    return spots


class ParkingFinder:
    """
    Nearest-parking lookup over a fixed segment snapshot.

    Args:
        segments: Approved segments (any mode).
        config:   NavConfig for the search radius and result cap.
    """

    def __init__(self, segments: Sequence[AccessibleSegment], config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        self._spots = extract_parking_spots(segments)
        logger.info(f"{len(self._spots)} parking spots indexed.")

    @property
    def spots(self) -> List[ParkingSpot]:
        return list(self._spots)

    def find_nearby(
        self,
        destination: GeoPoint,
        radius_m: Optional[float] = None,
        accessible_only: bool = False,
    ) -> List[ParkingSpot]:
        """
        Spots within radius_m of destination, nearest first, capped at
        config.parking_search_limit.
        """
        radius = self.config.parking_search_radius_m if radius_m is None else radius_m
        found = []
        for spot in self._spots:
            if accessible_only and spot.type is not WaypointType.ACCESSIBLE_PARKING:
                continue
            d = distance_meters(destination, spot.position)
            if d <= radius:
                found.append(replace(spot, distance_m=d))
        found.sort(key=lambda s: s.distance_m)
        return found[: self.config.parking_search_limit]

    def find_nearest(self, destination: GeoPoint, accessible_only: bool = False) -> Optional[ParkingSpot]:
        spots = self.find_nearby(destination, accessible_only=accessible_only)
        return spots[0] if spots else None
