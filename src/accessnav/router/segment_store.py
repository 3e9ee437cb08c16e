# segment_store.py
# Storage of curated accessible segments and the authoring rules
# applied before a segment is submitted for moderation.
#
# Usage:
#   store = JsonSegmentStore(config)
#   segment = build_segment([p1, p2, p3], TravelMode.FOOT, description="Ramp to square")
#   segment_id = store.submit(segment)
#   store.set_status(segment_id, SegmentStatus.APPROVED)
#   approved = store.list_approved(TravelMode.FOOT)

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .accessibility_icons import parse_waypoint_type
from .errors import NoRouteFound, SegmentNotFound, SegmentValidationError
from .geo_utils import distance_meters
from .models import (
    AccessibilityWaypoint,
    AccessibleSegment,
    GeoPoint,
    SegmentStatus,
    TravelMode,
    WaypointType,
)
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

def segment_from_dict(d: dict) -> AccessibleSegment:
    """
    Parse a stored segment record. Waypoint types are validated here.

    Raises:
        SegmentValidationError: bad mode, status, waypoint type or empty path.
    """
    try:
        mode = TravelMode(d.get("mode", "foot"))
        status = SegmentStatus(d.get("status", "pending"))
    except ValueError as e:
        raise SegmentValidationError(str(e)) from None

    path = tuple(GeoPoint.from_dict(p) for p in d.get("path", []))
    points = tuple(
        AccessibilityWaypoint(
            position=GeoPoint.from_dict(w["position"]),
            type=parse_waypoint_type(w.get("type")),
            description=w.get("description") or "",
        )
        for w in d.get("points", [])
    )
    return AccessibleSegment(
        id=str(d["id"]),
        path=path,
        points=points,
        description=(d.get("description") or "").strip(),
        mode=mode,
        status=status,
    )


# ---------------------------------------------------------------------------
# Authoring rules
# ---------------------------------------------------------------------------

def min_waypoints(mode: TravelMode) -> int:
    """A drive segment can be a single parking spot; a foot segment needs a line."""
    return 1 if mode is TravelMode.DRIVE else 2


def is_point_too_close(new_point: GeoPoint, existing: Sequence[GeoPoint], min_spacing_m: float) -> bool:
    return any(distance_meters(new_point, p) < min_spacing_m for p in existing)


def validate_segment(path: Sequence[GeoPoint], mode: TravelMode, config: Optional[NavConfig] = None) -> None:
    """
    Check the waypoint count and the spacing rule.

    Raises:
        SegmentValidationError
    """
    config = config or NavConfig()
    needed = min_waypoints(mode)
    if len(path) < needed:
        raise SegmentValidationError(
            f"A {mode.value} segment needs at least {needed} waypoint(s), got {len(path)}."
        )
    for i, point in enumerate(path):
        if is_point_too_close(point, path[:i], config.min_point_spacing_m):
            raise SegmentValidationError(
                f"Waypoint {i + 1} is closer than {config.min_point_spacing_m:.0f} m to another waypoint."
            )


def check_continuity(path: Sequence[GeoPoint], router, mode: TravelMode = TravelMode.FOOT) -> None:
    """
    Ask the routing service for a route between every consecutive pair.

    Raises:
        SegmentValidationError: a pair has no route.
        RoutingUnavailable: the service could not be reached.
    """
    for i in range(len(path) - 1):
        try:
            router.route([path[i], path[i + 1]], mode.profile)
        except NoRouteFound:
            raise SegmentValidationError(f"No route between waypoints {i + 1} and {i + 2}.") from None


def build_segment(
    path: Sequence[GeoPoint],
    mode: TravelMode,
    points: Sequence[AccessibilityWaypoint] = (),
    description: str = "",
    config: Optional[NavConfig] = None,
) -> AccessibleSegment:
    """
    Validate and assemble a new pending segment.

    Every typed waypoint must sit on a path point. A drive segment without
    a parking waypoint gets one on its first point.
    """
    validate_segment(path, mode, config)
    on_path = set(path)
    for w in points:
        if w.position not in on_path:
            raise SegmentValidationError(f"Waypoint {w.position} is not on the segment path.")

    points = tuple(points)
    if mode is TravelMode.DRIVE and not any(w.type.is_parking for w in points):
        points = (AccessibilityWaypoint(path[0], WaypointType.PARKING, "Parking spot"),) + points

    return AccessibleSegment(
        id="",
        path=tuple(path),
        points=points,
        description=description.strip(),
        mode=mode,
        status=SegmentStatus.PENDING,
    )


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class SegmentStore(ABC):
    """Accessible segment store interface."""

    @abstractmethod
    def list_all(self, status: Optional[SegmentStatus] = None) -> List[AccessibleSegment]:
        pass

    @abstractmethod
    def get(self, segment_id: str) -> AccessibleSegment:
        pass

    @abstractmethod
    def submit(self, segment: AccessibleSegment) -> str:
        pass

    @abstractmethod
    def set_status(self, segment_id: str, status: SegmentStatus) -> None:
        pass

    def list_approved(self, mode: TravelMode) -> List[AccessibleSegment]:
        """Approved segments for one travel mode, in submission order."""
        return [s for s in self.list_all(SegmentStatus.APPROVED) if s.mode is mode]

    def status_counts(self) -> Dict[SegmentStatus, int]:
        counts = {status: 0 for status in SegmentStatus}
        for s in self.list_all():
            counts[s.status] += 1
        return counts


class InMemorySegmentStore(SegmentStore):
    """Insertion-ordered store kept in memory."""

    def __init__(self, segments: Sequence[AccessibleSegment] = ()) -> None:
        self._segments: Dict[str, AccessibleSegment] = {}
        for s in segments:
            self._segments[s.id] = s

    def list_all(self, status: Optional[SegmentStatus] = None) -> List[AccessibleSegment]:
        return [s for s in self._segments.values() if status is None or s.status is status]

    def get(self, segment_id: str) -> AccessibleSegment:
        try:
            return self._segments[segment_id]
        except KeyError:
            raise SegmentNotFound(segment_id) from None

    def submit(self, segment: AccessibleSegment) -> str:
        segment_id = segment.id or uuid.uuid4().hex
        self._segments[segment_id] = replace(segment, id=segment_id, status=SegmentStatus.PENDING)
        self._changed()
        logger.info(f"Segment {segment_id} submitted ({segment.mode.value}, {len(segment.path)} points).")
        return segment_id

    def set_status(self, segment_id: str, status: SegmentStatus) -> None:
        segment = self.get(segment_id)
        self._segments[segment_id] = replace(segment, status=status)
        self._changed()
        logger.info(f"Segment {segment_id} → {status.value}")

    def _changed(self) -> None:
        pass


class JsonSegmentStore(InMemorySegmentStore):
    """
    Store persisted to a single JSON file, rewritten on every change.

    Records that fail validation on load are skipped with a warning.
    """

    def __init__(self, config: Optional[NavConfig] = None, filepath: Optional[str] = None) -> None:
        super().__init__()
        self.config = config or NavConfig()
        self.filepath = filepath or self.config.segments_filepath
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.filepath):
            return
        with open(self.filepath, "r", encoding="utf-8") as f:
            data = json.load(f)
        for record in data.get("segments", []):
            try:
                segment = segment_from_dict(record)
            except (SegmentValidationError, KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping invalid segment record {record.get('id')!r}: {e}")
                continue
            self._segments[segment.id] = segment
        logger.info(f"Loaded {len(self._segments)} segments from {self.filepath}")

    def _changed(self) -> None:
        directory = os.path.dirname(self.filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)
        data = {
            "saved_at": datetime.now().isoformat(),
            "segments": [s.to_dict() for s in self._segments.values()],
        }
        with open(self.filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
