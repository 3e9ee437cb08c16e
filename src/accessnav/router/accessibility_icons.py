# accessibility_icons.py
# Presentation metadata for accessibility waypoint types and route colours.
# Raw "type" strings from storage are validated here, once, at ingestion.

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import SegmentValidationError
from .models import SegmentKind, TravelMode, WaypointType


@dataclass(frozen=True)
class WaypointPresentation:
    icon: str
    description: str


WAYPOINT_PRESENTATION: Dict[WaypointType, WaypointPresentation] = {
    WaypointType.RAMP:               WaypointPresentation("/images/disabled-sign.png", "Ramp"),
    WaypointType.STAIRS:             WaypointPresentation("/images/stairs.png", "Stairs"),
    WaypointType.OBSTACLE:           WaypointPresentation("/images/obstacle.png", "Obstacle"),
    WaypointType.CROSSING:           WaypointPresentation("/images/pedestrian-crossing.png", "Crossing"),
    WaypointType.ELEVATOR:           WaypointPresentation("/images/elevator.png", "Elevator"),
    WaypointType.NARROW:             WaypointPresentation("/images/narrow-passage.png", "Narrow passage"),
    WaypointType.PARKING:            WaypointPresentation("/images/parking.png", "Parking"),
    WaypointType.ACCESSIBLE_PARKING: WaypointPresentation("/images/accessible-parking.png", "Accessible parking"),
}


def presentation_for(waypoint_type: WaypointType) -> WaypointPresentation:
    return WAYPOINT_PRESENTATION[waypoint_type]


def parse_waypoint_type(raw: Optional[str]) -> WaypointType:
    """
    Validate a stored waypoint type string.

    Raises:
        SegmentValidationError: unknown or missing type.
    """
    if not raw:
        raise SegmentValidationError("Waypoint type is missing.")
    try:
        return WaypointType(raw.strip().lower())
    except ValueError:
        raise SegmentValidationError(f"Unknown waypoint type: {raw!r}") from None


def color_tag(kind: SegmentKind, mode: TravelMode = TravelMode.FOOT) -> str:
    """Colour tag for a composed route segment."""
    if mode is TravelMode.DRIVE:
        return "drive"
    return "accessible" if kind is SegmentKind.ACCESSIBLE else "regular"
