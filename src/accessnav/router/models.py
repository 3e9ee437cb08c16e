# models.py
# Shared data structures and enums used across all modules.

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from .errors import SegmentValidationError


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GeoPoint:
    """Immutable geographic coordinate."""
    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}

    @staticmethod
    def from_dict(d: dict) -> "GeoPoint":
        return GeoPoint(float(d["lat"]), float(d["lng"]))


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TravelMode(Enum):
    FOOT  = "foot"
    DRIVE = "drive"

    @property
    def profile(self) -> str:
        """Routing-service profile name for this mode."""
        return "car" if self is TravelMode.DRIVE else "foot"


class SegmentStatus(Enum):
    PENDING  = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WaypointType(Enum):
    RAMP               = "ramp"
    STAIRS             = "stairs"
    OBSTACLE           = "obstacle"
    CROSSING           = "crossing"
    ELEVATOR           = "elevator"
    NARROW             = "narrow"
    PARKING            = "parking"
    ACCESSIBLE_PARKING = "accessible_parking"

    @property
    def is_parking(self) -> bool:
        return self in (WaypointType.PARKING, WaypointType.ACCESSIBLE_PARKING)


class SegmentKind(Enum):
    GENERIC    = "generic"
    ACCESSIBLE = "accessible"


class ManeuverType(Enum):
    DEPART       = "depart"
    TURN         = "turn"
    CONTINUE     = "continue"
    NEW_NAME     = "new name"
    MERGE        = "merge"
    FORK         = "fork"
    END_OF_ROAD  = "end of road"
    ROUNDABOUT   = "roundabout"
    ACCESSIBLE   = "accessible"
    ARRIVE       = "arrive"
    OTHER        = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ManeuverType":
        """Map a routing-service maneuver string onto the enum; unknown → OTHER."""
        if value in ("rotary", "roundabout turn", "exit roundabout", "exit rotary"):
            return cls.ROUNDABOUT
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class Termination(Enum):
    ARRIVED        = "arrived"          # exit point reached the destination radius
    NO_CANDIDATE   = "no_candidate"     # remaining base route appended
    DETOUR_BUDGET  = "detour_budget"    # candidate rejected by the detour guard
    ITERATION_CAP  = "iteration_cap"
    ROUTING_FAILED = "routing_failed"   # partial route after a failed call
    DIRECT         = "direct"           # drive mode, single leg


# ---------------------------------------------------------------------------
# Accessible segments (store output)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccessibilityWaypoint:
    """A typed point attached to a segment's path."""
    position: GeoPoint
    type: WaypointType
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "position": self.position.to_dict(),
            "type": self.type.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class AccessibleSegment:
    """A curated polyline; entry is path[0], exit is path[-1]."""
    id: str
    path: Tuple[GeoPoint, ...]
    points: Tuple[AccessibilityWaypoint, ...] = ()
    description: str = ""
    mode: TravelMode = TravelMode.FOOT
    status: SegmentStatus = SegmentStatus.PENDING

    def __post_init__(self) -> None:
        if not self.path:
            raise SegmentValidationError(f"Segment {self.id!r} has an empty path.")

    @property
    def entry(self) -> GeoPoint:
        return self.path[0]

    @property
    def exit(self) -> GeoPoint:
        return self.path[-1]

    @property
    def is_approved(self) -> bool:
        return self.status is SegmentStatus.APPROVED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "path": [p.to_dict() for p in self.path],
            "points": [w.to_dict() for w in self.points],
            "description": self.description,
            "mode": self.mode.value,
            "status": self.status.value,
        }


# ---------------------------------------------------------------------------
# Routing-service output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteStep:
    """One turn-by-turn step as reported by the routing service."""
    maneuver_type: str
    modifier: Optional[str]
    distance_m: float
    duration_s: float
    name: str
    location: GeoPoint


@dataclass(frozen=True)
class RoutingResult:
    path: Tuple[GeoPoint, ...]
    steps: Tuple[RouteStep, ...]
    distance_m: float
    duration_s: float


# ---------------------------------------------------------------------------
# Composed route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Instruction:
    """A single presentable navigation instruction."""
    text: str
    icon: str
    distance_m: float
    is_accessible: bool
    location: GeoPoint
    maneuver_type: ManeuverType

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "icon": self.icon,
            "distance_m": self.distance_m,
            "is_accessible": self.is_accessible,
            "location": self.location.to_dict(),
            "maneuver_type": self.maneuver_type.value,
        }

    @staticmethod
    def from_dict(d: dict) -> "Instruction":
        return Instruction(
            text=d["text"],
            icon=d["icon"],
            distance_m=float(d["distance_m"]),
            is_accessible=bool(d["is_accessible"]),
            location=GeoPoint.from_dict(d["location"]),
            maneuver_type=ManeuverType(d["maneuver_type"]),
        )


@dataclass(frozen=True)
class RouteSegment:
    """One unit of a composed route, either routed or curated."""
    path: Tuple[GeoPoint, ...]
    kind: SegmentKind
    instructions: Tuple[Instruction, ...] = ()
    source_segment_id: Optional[str] = None
    color: str = "regular"
    distance_m: float = 0.0

    def to_dict(self) -> dict:
        return {
            "path": [p.to_dict() for p in self.path],
            "kind": self.kind.value,
            "instructions": [i.to_dict() for i in self.instructions],
            "source_segment_id": self.source_segment_id,
            "color": self.color,
            "distance_m": self.distance_m,
        }

    @staticmethod
    def from_dict(d: dict) -> "RouteSegment":
        return RouteSegment(
            path=tuple(GeoPoint.from_dict(p) for p in d["path"]),
            kind=SegmentKind(d["kind"]),
            instructions=tuple(Instruction.from_dict(i) for i in d["instructions"]),
            source_segment_id=d.get("source_segment_id"),
            color=d.get("color", "regular"),
            distance_m=float(d.get("distance_m", 0.0)),
        )


@dataclass(frozen=True)
class ComposedRoute:
    """
    The stitched route produced by one composer run. Never mutated;
    consumers swap the whole value.
    """
    segments: Tuple[RouteSegment, ...]
    mode: TravelMode
    termination: Termination
    origin: GeoPoint
    destination: GeoPoint

    @property
    def total_distance_m(self) -> float:
        return sum(s.distance_m for s in self.segments)

    @property
    def used_segment_ids(self) -> FrozenSet[str]:
        return frozenset(
            s.source_segment_id for s in self.segments
            if s.kind is SegmentKind.ACCESSIBLE and s.source_segment_id
        )

    @property
    def accessible_count(self) -> int:
        return sum(1 for s in self.segments if s.kind is SegmentKind.ACCESSIBLE)

    @property
    def generic_count(self) -> int:
        return sum(1 for s in self.segments if s.kind is SegmentKind.GENERIC)

    @property
    def degraded(self) -> bool:
        return self.termination in (Termination.ITERATION_CAP, Termination.ROUTING_FAILED)

    @property
    def instructions(self) -> List[Instruction]:
        """Every segment's instructions in route order, before flattening."""
        return [i for s in self.segments for i in s.instructions]

    @property
    def path(self) -> List[GeoPoint]:
        """All segment paths concatenated; exact repeats at the joints dropped."""
        out: List[GeoPoint] = []
        for seg in self.segments:
            for p in seg.path:
                if out and out[-1] == p:
                    continue
                out.append(p)
        return out

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "termination": self.termination.value,
            "origin": self.origin.to_dict(),
            "destination": self.destination.to_dict(),
            "total_distance_m": self.total_distance_m,
            "used_segment_ids": sorted(self.used_segment_ids),
            "segments": [s.to_dict() for s in self.segments],
        }

    @staticmethod
    def from_dict(d: dict) -> "ComposedRoute":
        return ComposedRoute(
            segments=tuple(RouteSegment.from_dict(s) for s in d["segments"]),
            mode=TravelMode(d["mode"]),
            termination=Termination(d["termination"]),
            origin=GeoPoint.from_dict(d["origin"]),
            destination=GeoPoint.from_dict(d["destination"]),
        )


# ---------------------------------------------------------------------------
# Live guidance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PositionFix:
    """One reading from the live position source."""
    position: GeoPoint
    accuracy_m: float
    timestamp: float


class MonitorState(Enum):
    IDLE        = "idle"
    GUIDING     = "guiding"
    RECOMPUTING = "recomputing"


class RouteStatus(Enum):
    INACTIVE       = "inactive"
    DISCARDED      = "discarded"        # fix rejected by the accuracy / jump filters
    PROGRESSING    = "progressing"
    APPROACHING    = "approaching"
    WAYPOINT_HIT   = "waypoint_hit"
    OFF_ROUTE      = "off_route"
    REROUTED       = "rerouted"
    FINISHED       = "finished"


@dataclass(frozen=True)
class NavigationState:
    """Live session state owned by the route monitor."""
    route: ComposedRoute
    instructions: Tuple[Instruction, ...]
    destination: GeoPoint
    instruction_index: int = 0
    last_recompute_at: float = 0.0
    last_spoken_at: Optional[float] = None
    last_fix: Optional[GeoPoint] = None
    last_fix_at: Optional[float] = None
    heading: Optional[float] = None
    watchdog_fired: bool = False

    @property
    def current_instruction(self) -> Optional[Instruction]:
        if 0 <= self.instruction_index < len(self.instructions):
            return self.instructions[self.instruction_index]
        return None


@dataclass
class ProgressResult:
    """Returned by RouteMonitor.on_fix() every position update."""
    status: RouteStatus
    message: str
    distance_to_next: Optional[float] = None   # metres
    current_instruction: Optional[Instruction] = None
    announcements: List[str] = field(default_factory=list)
