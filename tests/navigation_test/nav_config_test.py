import os

import pytest

from accessnav.router.nav_config import NavConfig

ENV_KEYS = ("ACCESSNAV_OSRM_URL", "ACCESSNAV_NOMINATIM_URL", "ACCESSNAV_LOG_DIR", "ACCESSNAV_REQUEST_TIMEOUT")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = NavConfig()
    assert config.proximity_threshold_m == 80.0
    assert config.max_iterations == 15
    assert config.max_detour_ratio == 1.5
    assert config.deviation_threshold_m == 100.0
    assert config.route_update_interval_s == 5.0
    assert config.route_filepath == os.path.join(".", "active_route.json")


def test_from_env_reads_dotenv_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "ACCESSNAV_OSRM_URL=http://localhost:5000/\n"
        "ACCESSNAV_REQUEST_TIMEOUT=3.5\n",
        encoding="utf-8",
    )
    config = NavConfig.from_env(str(env_file))

    assert config.osrm_base_url == "http://localhost:5000"
    assert config.request_timeout_s == 3.5


def test_environment_wins_over_defaults_and_overrides_win_over_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("ACCESSNAV_LOG_DIR", "/var/log/accessnav")
    monkeypatch.setenv("ACCESSNAV_NOMINATIM_URL", "http://geo.local/search")

    config = NavConfig.from_env(str(tmp_path / "missing.env"), log_dir=str(tmp_path))

    assert config.nominatim_url == "http://geo.local/search"
    assert config.log_dir == str(tmp_path)
