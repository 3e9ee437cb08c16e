# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Service defaults
# ---------------------------------------------------------------------------

OSRM_BASE_URL: str = "http://router.project-osrm.org"
NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavConfig:
    # Composition
    proximity_threshold_m: float = 80.0     # candidate must come this close to the base route
    max_iterations: int = 15
    max_detour_ratio: float = 1.5
    arrival_radius_m: float = 100.0         # exit point this close to destination → done
    point_tolerance_m: float = 1.0          # points closer than this are the same point

    # Instructions
    min_instruction_distance_m: float = 20.0
    duplicate_instruction_distance_m: float = 50.0
    accessible_route_threshold_m: float = 500.0

    # Live guidance
    min_fix_accuracy_m: float = 50.0
    max_fix_jump_m: float = 100.0
    instruction_reached_m: float = 30.0
    preview_distance_m: float = 100.0
    deviation_threshold_m: float = 100.0
    route_update_interval_s: float = 5.0
    speech_throttle_s: float = 3.0
    no_motion_timeout_s: float = 30.0

    # Authoring / parking
    min_point_spacing_m: float = 10.0
    parking_search_radius_m: float = 2000.0
    parking_search_limit: int = 10

    # External services
    osrm_base_url: str = OSRM_BASE_URL
    nominatim_url: str = NOMINATIM_URL
    request_timeout_s: float = 10.0
    request_retries: int = 1                # extra attempts, on timeout only
    user_agent: str = "accessnav/0.1"

    # Logging
    log_dir: str = "."                      # directory for saved JSON files
    route_filename: str = "active_route.json"
    session_filename: str = "nav_session.jsonl"
    segments_filename: str = "segments.json"

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    @property
    def segments_filepath(self) -> str:
        return os.path.join(self.log_dir, self.segments_filename)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides) -> "NavConfig":
        """
        Build a config from ACCESSNAV_* environment variables.

        A .env file is loaded first (without overriding variables that are
        already set). Keyword overrides win over the environment.
        """
        load_dotenv(env_file)
        config = cls()
        env = {}
        if os.getenv("ACCESSNAV_OSRM_URL"):
            env["osrm_base_url"] = os.getenv("ACCESSNAV_OSRM_URL").rstrip("/")
        if os.getenv("ACCESSNAV_NOMINATIM_URL"):
            env["nominatim_url"] = os.getenv("ACCESSNAV_NOMINATIM_URL")
        if os.getenv("ACCESSNAV_LOG_DIR"):
            env["log_dir"] = os.getenv("ACCESSNAV_LOG_DIR")
        if os.getenv("ACCESSNAV_REQUEST_TIMEOUT"):
            env["request_timeout_s"] = float(os.getenv("ACCESSNAV_REQUEST_TIMEOUT"))
        env.update(overrides)
        return replace(config, **env)
