# nav_logger.py
# File persistence for a navigation session:
# the active composed route (JSON) and one JSON line per guidance event.

import json
import logging
import os
from datetime import datetime
from typing import List, Optional

from .geo_utils import dedupe_path
from .models import ComposedRoute, PositionFix, ProgressResult
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class NavLogger:
    """
    Writes the active route and the session event log under config.log_dir.

    Args:
        config: NavConfig supplying the directory and file names.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Active route
    # ------------------------------------------------------------------

    def save_route(self, route: ComposedRoute) -> bool:
        """Write route to the route file; False if the write failed."""
        document = {
            "saved_at": datetime.now().isoformat(),
            "segment_count": len(route.segments),
            "degraded": route.degraded,
            "path": [p.to_dict() for p in dedupe_path(route.path, self.config.point_tolerance_m)],
            "route": route.to_dict(),
        }
        target = self.config.route_filepath
        try:
            with open(target, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.error(f"Could not write route file {target}: {e}")
            return False
        logger.info(
            f"Route written to {target}: {len(route.segments)} segments, "
            f"{route.total_distance_m:.0f} m ({route.termination.value})."
        )
        return True

    def load_route(self, filepath: Optional[str] = None) -> Optional[ComposedRoute]:
        """Read a route written by save_route(); None if missing or malformed."""
        source = filepath or self.config.route_filepath
        try:
            with open(source, encoding="utf-8") as f:
                route = ComposedRoute.from_dict(json.load(f)["route"])
        except (OSError, KeyError, ValueError, TypeError) as e:
            logger.error(f"Could not read route file {source}: {e}")
            return None
        logger.info(f"Route read from {source} ({len(route.segments)} segments).")
        return route

    # ------------------------------------------------------------------
    # Session events
    # ------------------------------------------------------------------

    def log_event(self, result: ProgressResult, fix: Optional[PositionFix] = None) -> None:
        """Append one guidance event; fix is omitted for stream-level events."""
        event = {
            "timestamp": datetime.now().isoformat(),
            "status": result.status.value,
            "message": result.message,
            "distance_to_next": result.distance_to_next,
            "announcements": list(result.announcements),
            "lat": None,
            "lng": None,
            "accuracy_m": None,
        }
        if fix is not None:
            event.update(lat=fix.position.lat, lng=fix.position.lng, accuracy_m=fix.accuracy_m)
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(event, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Could not append to session log: {e}")

    def read_events(self) -> List[dict]:
        """Every event logged so far, oldest first."""
        try:
            with open(self.config.session_filepath, encoding="utf-8") as f:
                return [json.loads(line) for line in f if line.strip()]
        except FileNotFoundError:
            return []
