# instruction_builder.py
# Turns routing-service steps and composed routes into the flat,
# de-duplicated instruction list used for display and speech.

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .geo_utils import is_near_any
from .models import (
    AccessibleSegment,
    ComposedRoute,
    GeoPoint,
    Instruction,
    ManeuverType,
    RouteStep,
    SegmentKind,
)
from .nav_config import NavConfig


# ---------------------------------------------------------------------------
# Phrase table: (maneuver, modifier) → (template, icon)
# ---------------------------------------------------------------------------

_TURN_PHRASES: Dict[Optional[str], Tuple[str, str]] = {
    "left":         ("Turn left{street}", "↰"),
    "right":        ("Turn right{street}", "↱"),
    "slight left":  ("Turn slightly left{street}", "↖"),
    "slight right": ("Turn slightly right{street}", "↗"),
    "sharp left":   ("Turn sharply left{street}", "⬉"),
    "sharp right":  ("Turn sharply right{street}", "⬈"),
    "uturn":        ("Make a U-turn{street}", "⮌"),
}

_STRAIGHT = ("Continue straight{street}", "↑")
_FALLBACK = ("Continue on your way{street}", "→")

DEPART_TEXT = "Start the route"
ARRIVE_TEXT = "You have arrived at your destination"
ACCESSIBLE_NOTE = " Accessible route nearby."


def phrase_for(maneuver: ManeuverType, modifier: Optional[str]) -> Tuple[str, str]:
    """Template and icon for a maneuver/modifier pair."""
    if maneuver in (ManeuverType.TURN, ManeuverType.END_OF_ROAD, ManeuverType.FORK):
        return _TURN_PHRASES.get(modifier, _STRAIGHT)
    if maneuver in (ManeuverType.CONTINUE, ManeuverType.NEW_NAME):
        return _STRAIGHT
    if maneuver is ManeuverType.DEPART:
        return DEPART_TEXT + "{street}", "⭐"
    if maneuver is ManeuverType.ARRIVE:
        return ARRIVE_TEXT, "🏁"
    return _FALLBACK


def collapse_duplicates(instructions: Iterable[Instruction], max_distance_m: float) -> List[Instruction]:
    """
    Drop an instruction that repeats the previous one (same text, same
    maneuver) when its own distance is below max_distance_m. The dropped
    distance is not added to the kept instruction.
    """
    out: List[Instruction] = []
    for ins in instructions:
        if out:
            prev = out[-1]
            if (
                ins.text == prev.text
                and ins.maneuver_type is prev.maneuver_type
                and ins.distance_m < max_distance_m
            ):
                continue
        out.append(ins)
    return out


class InstructionBuilder:
    """
    Instruction generator.

    Args:
        config: NavConfig with the noise, duplicate and accessibility radii.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()

    # ------------------------------------------------------------------
    # Per-step translation
    # ------------------------------------------------------------------

    def translate_step(self, step: RouteStep) -> Optional[Instruction]:
        """One routing step → one instruction, or None for noise and depart/arrive."""
        maneuver = ManeuverType.parse(step.maneuver_type)
        if maneuver in (ManeuverType.DEPART, ManeuverType.ARRIVE):
            return None
        if step.distance_m < self.config.min_instruction_distance_m:
            return None

        template, icon = phrase_for(maneuver, step.modifier)
        street = f" on {step.name}" if step.name else ""
        return Instruction(
            text=template.format(street=street),
            icon=icon,
            distance_m=float(round(step.distance_m)),
            is_accessible=False,
            location=step.location,
            maneuver_type=maneuver,
        )

    def translate_steps(self, steps: Sequence[RouteStep]) -> Tuple[Instruction, ...]:
        out = (self.translate_step(s) for s in steps)
        return tuple(i for i in out if i is not None)

    def accessible_instruction(self, segment: AccessibleSegment, length_m: float) -> Instruction:
        """The single synthetic instruction attached to a spliced segment."""
        text = "Follow the accessible route"
        if segment.description:
            text = f"{text}: {segment.description}"
        return Instruction(
            text=text,
            icon="♿",
            distance_m=float(round(length_m)),
            is_accessible=True,
            location=segment.entry,
            maneuver_type=ManeuverType.ACCESSIBLE,
        )

    # ------------------------------------------------------------------
    # Whole-route rendering
    # ------------------------------------------------------------------

    def annotate(self, instruction: Instruction, accessible_paths: Sequence[Sequence[GeoPoint]]) -> Instruction:
        """Flag and annotate an instruction passing near a used accessible segment."""
        if instruction.is_accessible or not accessible_paths:
            return instruction
        radius = self.config.accessible_route_threshold_m
        if any(is_near_any(instruction.location, path, radius) for path in accessible_paths):
            return replace(instruction, is_accessible=True, text=instruction.text + ACCESSIBLE_NOTE)
        return instruction

    def build(self, route: ComposedRoute) -> Tuple[Instruction, ...]:
        """
        Flatten a composed route into its presentable instruction list:
        depart, every segment's instructions (annotated), arrive; then
        collapse consecutive duplicates.
        """
        accessible_paths = [s.path for s in route.segments if s.kind is SegmentKind.ACCESSIBLE]

        depart = Instruction(DEPART_TEXT, "⭐", 0.0, False, route.origin, ManeuverType.DEPART)
        arrive = Instruction(ARRIVE_TEXT, "🏁", 0.0, False, route.destination, ManeuverType.ARRIVE)
        sequence = [depart, *(ins for seg in route.segments for ins in seg.instructions), arrive]

        flat = collapse_duplicates(
            [self.annotate(ins, accessible_paths) for ins in sequence],
            self.config.duplicate_instruction_distance_m,
        )
        return tuple(flat)
