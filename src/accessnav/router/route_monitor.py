# route_monitor.py
# State machine that follows a traveller along a composed route.
# Call start() once, then on_fix() on every position update, or hand the
# monitor a PositionStream through consume().

import logging
import time
from dataclasses import replace
from typing import Callable, Iterator, List, Optional, Protocol

from .errors import GeolocationDenied, GeolocationError, RoutingError
from .geo_utils import bearing_degrees, distance_meters
from .instruction_builder import InstructionBuilder
from .models import (
    ComposedRoute,
    GeoPoint,
    Instruction,
    MonitorState,
    NavigationState,
    PositionFix,
    ProgressResult,
    RouteStatus,
)
from .nav_config import NavConfig
from .position_source import PositionStream

logger = logging.getLogger(__name__)

NO_MOTION_TEXT = "Attention: no movement detected"
REROUTE_TEXT = "Recalculating route from your current position"
REROUTE_FAILED_TEXT = "The route could not be recalculated"


class Announcer(Protocol):
    def speak(self, text: str, priority: bool = False) -> None:
        ...


class RouteMonitor:
    """
    Deviation and re-route monitor for a single navigation session.

    States: IDLE → GUIDING → (RECOMPUTING) → GUIDING → ... → IDLE.

    Usage:
        monitor = RouteMonitor(reroute=compose_from_here, announcer=speaker)
        monitor.start(route)

        # Inside the GPS loop:
        result = monitor.on_fix(fix)

    Args:
        reroute:   Callable (position, destination) -> ComposedRoute, or None
                   when the result was superseded.
        announcer: Speech sink; None keeps announcements silent.
        config:    NavConfig with thresholds and intervals.
        builder:   InstructionBuilder used to flatten routes.
        clock:     Monotonic seconds source.
    """

    def __init__(
        self,
        reroute: Callable[[GeoPoint, GeoPoint], Optional[ComposedRoute]],
        announcer: Optional[Announcer] = None,
        config: Optional[NavConfig] = None,
        builder: Optional[InstructionBuilder] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or NavConfig()
        self.builder = builder or InstructionBuilder(self.config)
        self._reroute = reroute
        self._announcer = announcer
        self._clock = clock
        self._state = MonitorState.IDLE
        self._nav: Optional[NavigationState] = None
        self._manual_only = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def navigation(self) -> Optional[NavigationState]:
        return self._nav

    @property
    def is_active(self) -> bool:
        return self._state is not MonitorState.IDLE

    @property
    def manual_only(self) -> bool:
        """True after the position source was denied."""
        return self._manual_only

    @property
    def remaining_instructions(self) -> int:
        if self._nav is None:
            return 0
        return max(0, len(self._nav.instructions) - self._nav.instruction_index)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def start(self, route: ComposedRoute, destination: Optional[GeoPoint] = None) -> None:
        """Begin guiding along route and announce its first instruction."""
        now = self._clock()
        instructions = self.builder.build(route)
        self._nav = NavigationState(
            route=route,
            instructions=instructions,
            destination=destination or route.destination,
            last_recompute_at=now,
            last_fix_at=now,
        )
        self._state = MonitorState.GUIDING
        logger.info(f"Guidance started: {len(instructions)} instructions.")
        if instructions:
            self._speak(instructions[0].text, priority=True)

    def stop(self) -> None:
        """Forcibly end guidance."""
        self._state = MonitorState.IDLE
        self._nav = None
        logger.info("Guidance stopped.")

    # ------------------------------------------------------------------
    # Core method: call on every position fix
    # ------------------------------------------------------------------

    def on_fix(self, fix: PositionFix) -> ProgressResult:
        """
        Compare a position fix to the upcoming instruction.

        Returns:
            ProgressResult with status, message and what was announced.
        """
        if self._state is MonitorState.IDLE or self._nav is None:
            return ProgressResult(status=RouteStatus.INACTIVE, message="Navigation is not active.")

        cfg = self.config
        if fix.accuracy_m > cfg.min_fix_accuracy_m:
            return ProgressResult(
                status=RouteStatus.DISCARDED,
                message=f"Fix ignored: accuracy {fix.accuracy_m:.0f} m.",
            )

        nav = self._nav
        position = fix.position
        heading = nav.heading
        if nav.last_fix is not None:
            jump = distance_meters(nav.last_fix, position)
            if jump > cfg.max_fix_jump_m:
                return ProgressResult(
                    status=RouteStatus.DISCARDED,
                    message=f"Fix ignored: {jump:.0f} m jump.",
                )
            if jump > 0:
                heading = bearing_degrees(nav.last_fix, position)

        now = self._clock()
        self._nav = replace(nav, last_fix=position, last_fix_at=now, heading=heading, watchdog_fired=False)
        announced: List[str] = []

        target = self._nav.current_instruction
        if target is None:
            return self._finish(announced)

        dist = distance_meters(position, target.location)

        # 1. Off route
        if dist > cfg.deviation_threshold_m:
            elapsed = now - self._nav.last_recompute_at
            if elapsed >= cfg.route_update_interval_s and self._state is MonitorState.GUIDING:
                return self._recompute(position, now, dist, announced)
            return ProgressResult(
                status=RouteStatus.OFF_ROUTE,
                message="You are off the route.",
                distance_to_next=dist,
                current_instruction=target,
                announcements=announced,
            )

        # 2. Instruction reached
        if dist <= cfg.instruction_reached_m:
            self._speak(target.text, priority=True, announced=announced)
            self._nav = replace(self._nav, instruction_index=self._nav.instruction_index + 1)
            following = self._nav.current_instruction
            if following is None:
                return self._finish(announced, target)
            return ProgressResult(
                status=RouteStatus.WAYPOINT_HIT,
                message=following.text,
                distance_to_next=0.0,
                current_instruction=following,
                announcements=announced,
            )

        # 3. Approaching
        if dist <= cfg.preview_distance_m:
            self._speak(f"In {round(dist)} meters, {target.text}", announced=announced)
            return ProgressResult(
                status=RouteStatus.APPROACHING,
                message=f"{int(dist)} m to: {target.text}",
                distance_to_next=dist,
                current_instruction=target,
                announcements=announced,
            )

        return ProgressResult(
            status=RouteStatus.PROGRESSING,
            message=f"{int(dist)} m to next instruction.",
            distance_to_next=dist,
            current_instruction=target,
            announcements=announced,
        )

    def check_watchdog(self, now: Optional[float] = None) -> bool:
        """
        Announce once when no fix has arrived for no_motion_timeout_s.
        Returns True when the announcement was made.
        """
        if self._state is not MonitorState.GUIDING or self._nav is None:
            return False
        now = self._clock() if now is None else now
        nav = self._nav
        if nav.watchdog_fired or nav.last_fix_at is None:
            return False
        if now - nav.last_fix_at < self.config.no_motion_timeout_s:
            return False
        self._nav = replace(nav, watchdog_fired=True)
        self._speak(NO_MOTION_TEXT, priority=True)
        logger.info("No movement detected.")
        return True

    def on_error(self, error: GeolocationError) -> ProgressResult:
        """Announce a position-source failure; a denial ends live guidance."""
        logger.warning(f"Position source error: {type(error).__name__}: {error}")
        announced: List[str] = []
        self._speak(error.user_message, priority=True, announced=announced)
        if isinstance(error, GeolocationDenied):
            self._manual_only = True
            self.stop()
            return ProgressResult(RouteStatus.INACTIVE, error.user_message, announcements=announced)
        status = RouteStatus.PROGRESSING if self.is_active else RouteStatus.INACTIVE
        return ProgressResult(status, error.user_message, announcements=announced)

    def consume(self, stream: PositionStream) -> Iterator[ProgressResult]:
        """
        Pull fixes from stream until it closes or guidance ends.

        Idle ticks run the watchdog; source errors are announced and a
        denial stops consumption.
        """
        iterator = iter(stream)
        while True:
            try:
                fix = next(iterator)
            except StopIteration:
                return
            except GeolocationError as e:
                yield self.on_error(e)
                if isinstance(e, GeolocationDenied):
                    return
                iterator = iter(stream)
                continue

            if fix is None:
                if self.check_watchdog():
                    yield ProgressResult(RouteStatus.PROGRESSING, NO_MOTION_TEXT, announcements=[NO_MOTION_TEXT])
                continue

            result = self.on_fix(fix)
            yield result
            if result.status is RouteStatus.FINISHED:
                return

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _recompute(self, position: GeoPoint, now: float, dist: float, announced: List[str]) -> ProgressResult:
        nav = replace(self._nav, last_recompute_at=now)
        self._nav = nav
        self._state = MonitorState.RECOMPUTING
        logger.info(f"Off route by {dist:.0f} m, recomposing from {position}")
        try:
            new_route = self._reroute(position, nav.destination)
        except RoutingError as e:
            logger.warning(f"Re-route failed: {e}")
            self._state = MonitorState.GUIDING
            self._speak(REROUTE_FAILED_TEXT, priority=True, announced=announced)
            return ProgressResult(
                status=RouteStatus.OFF_ROUTE,
                message=REROUTE_FAILED_TEXT,
                distance_to_next=dist,
                current_instruction=nav.current_instruction,
                announcements=announced,
            )

        if self._state is not MonitorState.RECOMPUTING:
            # stopped while the routing call was running
            return ProgressResult(RouteStatus.INACTIVE, "Navigation is not active.", announcements=announced)
        if new_route is None:
            self._state = MonitorState.GUIDING
            return ProgressResult(
                status=RouteStatus.OFF_ROUTE,
                message="You are off the route.",
                distance_to_next=dist,
                current_instruction=nav.current_instruction,
                announcements=announced,
            )

        instructions = self.builder.build(new_route)
        self._nav = replace(nav, route=new_route, instructions=instructions, instruction_index=0)
        self._state = MonitorState.GUIDING
        self._speak(REROUTE_TEXT, priority=True, announced=announced)
        return ProgressResult(
            status=RouteStatus.REROUTED,
            message=REROUTE_TEXT,
            distance_to_next=None,
            current_instruction=self._nav.current_instruction,
            announcements=announced,
        )

    def _finish(self, announced: List[str], last: Optional[Instruction] = None) -> ProgressResult:
        self._state = MonitorState.IDLE
        logger.info("Destination reached.")
        return ProgressResult(
            status=RouteStatus.FINISHED,
            message="You have reached your destination.",
            distance_to_next=0.0,
            current_instruction=last,
            announcements=announced,
        )

    def _speak(self, text: str, priority: bool = False, announced: Optional[List[str]] = None) -> bool:
        """Issue an announcement unless throttled; non-priority ones wait speech_throttle_s."""
        now = self._clock()
        if self._nav is not None:
            last = self._nav.last_spoken_at
            if not priority and last is not None and now - last < self.config.speech_throttle_s:
                return False
            self._nav = replace(self._nav, last_spoken_at=now)
        if self._announcer is not None:
            self._announcer.speak(text, priority)
        if announced is not None:
            announced.append(text)
        return True
