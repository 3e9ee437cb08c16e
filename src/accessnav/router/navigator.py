# navigator.py
# Public entry point for the navigation system.
# Owns the session context; delegates everything to specialist modules.

import itertools
import logging
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .errors import AddressNotFound, GeocodingError, GeolocationError, NoRouteFound, RoutingError
from .geocoder import NominatimGeocoder
from .instruction_builder import InstructionBuilder
from .models import (
    AccessibleSegment,
    ComposedRoute,
    GeoPoint,
    PositionFix,
    ProgressResult,
    TravelMode,
)
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .osrm_client import OSRMClient
from .parking_finder import ParkingFinder, ParkingSpot
from .position_source import PositionStream
from .route_composer import RouteComposer, Router
from .route_monitor import Announcer, RouteMonitor
from .segment_store import JsonSegmentStore, SegmentStore

logger = logging.getLogger(__name__)


class NavigationSystem:
    """
    High-level navigation facade and session context.

    Typical lifecycle:
        nav = NavigationSystem(config=NavConfig.from_env())
        nav.start_navigation(GeoPoint(37.9838, 23.7275), GeoPoint(37.9850, 23.7300))

        # GPS loop:
        result = nav.update(fix)

    Parking usage:
        nav.switch_mode(TravelMode.DRIVE)
        nav.navigate_via_parking(my_position, destination)

    Args:
        config:    Optional NavConfig; defaults to NavConfig().
        router:    Routing service; defaults to OSRMClient.
        geocoder:  Geocoding service; defaults to NominatimGeocoder.
        store:     Accessible segment store; defaults to JsonSegmentStore.
        announcer: Speech sink handed to the route monitor.
        clock:     Monotonic seconds source for the monitor.
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        router: Optional[Router] = None,
        geocoder: Optional[NominatimGeocoder] = None,
        store: Optional[SegmentStore] = None,
        announcer: Optional[Announcer] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or NavConfig()

        # External collaborators
        self._router = router or OSRMClient(self.config)
        self._geocoder = geocoder or NominatimGeocoder(self.config)
        self._store = store if store is not None else JsonSegmentStore(self.config)

        # Specialist modules
        self._builder  = InstructionBuilder(self.config)
        self._composer = RouteComposer(self._router, self.config, self._builder)
        self._monitor  = RouteMonitor(self._reroute, announcer, self.config, self._builder, clock)
        self._logger   = NavLogger(self.config)

        # Session state
        self._mode = TravelMode.FOOT
        self._segments: Dict[TravelMode, List[AccessibleSegment]] = {}
        self._route: Optional[ComposedRoute] = None
        self._run_ids = itertools.count(1)
        self._current_run = 0
        self._run_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session context
    # ------------------------------------------------------------------

    @property
    def mode(self) -> TravelMode:
        return self._mode

    @property
    def current_route(self) -> Optional[ComposedRoute]:
        return self._route

    def switch_mode(self, mode: TravelMode) -> None:
        """Change travel mode; any composition still running is invalidated."""
        if mode is self._mode:
            return
        self._invalidate()
        self._mode = mode
        self._route = None
        if self._monitor.is_active:
            self._monitor.stop()
        logger.info(f"Travel mode switched to {mode.value}.")

    def load_segments(self, mode: Optional[TravelMode] = None, refresh: bool = False) -> List[AccessibleSegment]:
        """
        Approved segments for mode, fetched once per session.
        Later moderation changes are only seen after refresh=True.
        """
        mode = mode or self._mode
        if refresh or mode not in self._segments:
            self._segments[mode] = self._store.list_approved(mode)
            logger.info(f"Loaded {len(self._segments[mode])} approved {mode.value} segments.")
        return list(self._segments[mode])

    def geocode(self, address: str) -> GeoPoint:
        return self._geocoder.geocode(address)

    def nearby_parking(self, destination: GeoPoint, accessible_only: bool = False) -> List[ParkingSpot]:
        """Parking spots from approved drive segments near destination."""
        finder = ParkingFinder(self.load_segments(TravelMode.DRIVE), self.config)
        return finder.find_nearby(destination, accessible_only=accessible_only)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def plan_route(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        parking_spot: Optional[GeoPoint] = None,
    ) -> Optional[ComposedRoute]:
        """
        Compose a route in the current mode.

        Returns:
            The ComposedRoute, or None when a mode switch or a newer
            request superseded this one while it was running.

        Raises:
            RoutingError: the routing service failed before any splice.
        """
        run_id = self._begin_run()
        route = self._compose(origin, destination, parking_spot)
        if not self._is_current(run_id):
            logger.info(f"Discarding stale route from run {run_id}.")
            return None
        self._route = route
        self._logger.save_route(route)
        return route

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        parking_spot: Optional[GeoPoint] = None,
    ) -> Tuple[bool, str]:
        """
        Compose a route and begin guidance.

        Returns:
            (success, message)
        """
        logger.info(f"Calculating {self._mode.value} route: {origin} → {destination}")
        try:
            route = self.plan_route(origin, destination, parking_spot)
        except NoRouteFound as e:
            logger.warning(f"No route: {e}")
            return False, "No path exists to this destination."
        except RoutingError as e:
            logger.warning(f"Route calculation failed: {e}")
            return False, "The routing service is unavailable."

        if route is None:
            return False, "Route request was superseded."

        self._monitor.start(route, destination)
        msg = (
            f"Route ready. {self._monitor.remaining_instructions} instructions, "
            f"{route.accessible_count} accessible segments."
        )
        if route.degraded:
            msg += " Route may be incomplete."
        logger.info(msg)
        return True, msg

    def navigate_to_address(self, origin: GeoPoint, address: str) -> Tuple[bool, str]:
        """Geocode a free-text address and start navigation to it."""
        try:
            destination = self.geocode(address)
        except AddressNotFound:
            return False, f"Address not found: {address}"
        except GeocodingError as e:
            logger.warning(f"Geocoding '{address}' failed: {e}")
            return False, "The address service is unavailable."
        return self.start_navigation(origin, destination)

    def navigate_via_parking(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        accessible_only: bool = False,
    ) -> Tuple[bool, str, Optional[ParkingSpot]]:
        """
        Drive to destination through the nearest curated parking spot.

        Returns:
            (success, message, parking_spot)
        """
        spots = self.nearby_parking(destination, accessible_only=accessible_only)
        if not spots:
            msg = "No parking spot found near the destination."
            logger.warning(msg)
            return False, msg, None

        spot = spots[0]
        logger.info(f"Parking selected: {spot}")
        self.switch_mode(TravelMode.DRIVE)
        success, msg = self.start_navigation(origin, destination, parking_spot=spot.position)
        return success, msg, spot

    def stop_navigation(self) -> None:
        """Forcibly end the current navigation session."""
        self._invalidate()
        self._monitor.stop()
        logger.info("Navigation stopped by user.")

    # ------------------------------------------------------------------
    # Position updates
    # ------------------------------------------------------------------

    def update(self, fix: PositionFix) -> ProgressResult:
        """Process one position fix and return the current guidance status."""
        result = self._monitor.on_fix(fix)
        self._logger.log_event(result, fix)
        return result

    def position_error(self, error: GeolocationError) -> ProgressResult:
        result = self._monitor.on_error(error)
        self._logger.log_event(result)
        return result

    def follow(self, stream: PositionStream) -> Iterator[ProgressResult]:
        """Drive guidance from a live position stream until it closes or finishes."""
        for result in self._monitor.consume(stream):
            self._logger.log_event(result)
            yield result

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        return self._monitor.is_active

    @property
    def manual_only(self) -> bool:
        return self._monitor.manual_only

    @property
    def remaining_instructions(self) -> int:
        return self._monitor.remaining_instructions

    @property
    def active_route(self) -> Optional[ComposedRoute]:
        """The route currently being followed, including re-routes."""
        nav = self._monitor.navigation
        return nav.route if nav else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compose(self, origin: GeoPoint, destination: GeoPoint, parking_spot: Optional[GeoPoint]) -> ComposedRoute:
        segments = self.load_segments(self._mode) if self._mode is TravelMode.FOOT else []
        return self._composer.compose(origin, destination, self._mode, segments, parking_spot)

    def _reroute(self, position: GeoPoint, destination: GeoPoint) -> Optional[ComposedRoute]:
        run_id = self._begin_run()
        route = self._compose(position, destination, None)
        if not self._is_current(run_id):
            logger.info(f"Discarding stale re-route from run {run_id}.")
            return None
        self._route = route
        self._logger.save_route(route)
        return route

    def _begin_run(self) -> int:
        with self._run_lock:
            self._current_run = next(self._run_ids)
            return self._current_run

    def _invalidate(self) -> None:
        with self._run_lock:
            self._current_run = next(self._run_ids)

    def _is_current(self, run_id: int) -> bool:
        with self._run_lock:
            return run_id == self._current_run
