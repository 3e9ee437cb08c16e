# main.py
# Entry point: simulates a GPS loop feeding fixes into NavigationSystem.
# In production, replace the walk_positions loop with a PositionStream fed
# by the device and iterate nav.follow(stream).
#
# Routing goes to the public OSRM server unless ACCESSNAV_OSRM_URL is set.

import logging
import time

from accessnav.router.models import (
    AccessibleSegment,
    GeoPoint,
    PositionFix,
    RouteStatus,
    SegmentStatus,
    TravelMode,
)
from accessnav.router.nav_config import NavConfig
from accessnav.router.navigator import NavigationSystem
from accessnav.router.segment_store import InMemorySegmentStore
from accessnav.tts_stt.tts import SpeechAnnouncer

# ------------------------------------------------------------------
# Logging setup: configure once here, all modules inherit
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

# ------------------------------------------------------------------
# Config: tweak thresholds or paths in .env or here, not inside the modules
# ------------------------------------------------------------------
config = NavConfig.from_env(log_dir="logs")

# ------------------------------------------------------------------
# Simulation coordinates (Monastiraki → Syntagma, Athens)
# ------------------------------------------------------------------
ORIGIN      = GeoPoint(37.9838, 23.7275)
DESTINATION = GeoPoint(37.9850, 23.7300)

DEMO_SEGMENT = AccessibleSegment(
    id="demo-ermou",
    path=(
        GeoPoint(37.98420, 23.72840),
        GeoPoint(37.98445, 23.72905),
        GeoPoint(37.98470, 23.72960),
    ),
    description="Step-free pedestrian street with tactile paving",
    mode=TravelMode.FOOT,
    status=SegmentStatus.APPROVED,
)

walk_positions = [
    ORIGIN,                           # Start
    GeoPoint(37.98400, 23.72800),     # walking east
    GeoPoint(37.98420, 23.72840),     # accessible segment entry
    GeoPoint(37.98445, 23.72905),     # on the segment
    GeoPoint(37.98470, 23.72960),     # segment exit
    GeoPoint(37.98490, 23.72990),     # approaching
    DESTINATION,                      # arrival
]


def main() -> None:
    # 1. Boot system with a small in-memory segment set
    speech = SpeechAnnouncer()
    nav = NavigationSystem(config=config, store=InMemorySegmentStore([DEMO_SEGMENT]), announcer=speech)

    # 2. Compose the accessible route
    success, msg = nav.start_navigation(ORIGIN, DESTINATION)
    print(f"[Main] {msg}")
    if not success:
        speech.close()
        return

    print("\n--- Walking the route ---")

    # 3. GPS loop: replace with real GPS feed in production
    for position in walk_positions:
        fix = PositionFix(position=position, accuracy_m=8.0, timestamp=time.time())
        result = nav.update(fix)

        print(f"  fix {position} -> {result.status.name}: {result.message}")
        for text in result.announcements:
            print(f"  🔊 {text}")

        if result.status == RouteStatus.REROUTED:
            print("  ⚠  Off route: a new route was composed from here.")

        elif result.status == RouteStatus.FINISHED:
            print("  Arrived, guidance stopped.")
            break

        # Fix interval of the simulated receiver
        time.sleep(0.05)

    speech.wait_idle()
    speech.close()
    print("\n--- Walk finished ---")
    print(f"    Route and session log in {config.log_dir}/")


if __name__ == "__main__":
    main()
