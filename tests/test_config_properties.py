"""Property-based tests for configuration models and loading.

Feature: feed-sync, configuration
"""

from pathlib import Path

import pytest
import structlog
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from feedsync.errors import ConfigError
from feedsync.models import AppConfig, NetworkConfig, PathsConfig
from feedsync.utils.config_loader import ConfigLoader

log = structlog.stdlib.get_logger()


@given(st.integers(min_value=1, max_value=5))
def test_worker_count_within_bounds_is_accepted(max_workers: int):
    log.info("test_worker_count_within_bounds_is_accepted", max_workers=max_workers)

    config = NetworkConfig(max_workers=max_workers)

    assert config.max_workers == max_workers


@given(st.integers().filter(lambda x: x < 1 or x > 5))
def test_worker_count_outside_bounds_is_rejected(max_workers: int):
    log.info("test_worker_count_outside_bounds_is_rejected", max_workers=max_workers)

    with pytest.raises(ValidationError, match="max_workers"):
        NetworkConfig(max_workers=max_workers)


def test_state_files_default_into_data_dir():
    paths = PathsConfig(data_dir=Path("/srv/feeds"))

    assert paths.cache_file == Path("/srv/feeds/diff-cache.json")
    assert paths.manifest_file == Path("/srv/feeds/manifest.json")
    assert paths.run_clock_file == Path("/srv/feeds/last-update.json")


def test_explicit_state_file_is_kept():
    paths = PathsConfig(data_dir=Path("/srv/feeds"), cache_file=Path("/var/cache/diff.json"))

    assert paths.cache_file == Path("/var/cache/diff.json")
    assert paths.manifest_file == Path("/srv/feeds/manifest.json")


def test_defaults_without_any_config_file(tmp_path: Path):
    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.paths.resource_list_file == Path("public/csv-urls.csv")
    assert config.sanitizer.disallowed_fields == ["extDescription"]
    assert config.staleness.freshness_window_hours == 24.0
    assert config.network.max_workers == 1


def test_environment_variable_loading(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FEEDSYNC_NETWORK__MAX_WORKERS", "3")
    monkeypatch.setenv("FEEDSYNC_STALENESS__FRESHNESS_WINDOW_HOURS", "6")

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.network.max_workers == 3
    assert config.staleness.freshness_window_hours == 6.0


def test_yaml_file_with_env_substitution(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FEEDS_ROOT", str(tmp_path / "feeds"))
    config_file = tmp_path / "feeds.yaml"
    config_file.write_text(
        """
paths:
  data_dir: "${FEEDS_ROOT}/price-guide"
sanitizer:
  disallowed_fields: [extDescription, imageUrl]
network:
  probe_timeout_seconds: 5
""",
        encoding="utf-8",
    )

    config = ConfigLoader().load_config(str(config_file))

    assert config.paths.data_dir == tmp_path / "feeds" / "price-guide"
    assert config.paths.manifest_file == tmp_path / "feeds" / "price-guide" / "manifest.json"
    assert config.sanitizer.disallowed_fields == ["extDescription", "imageUrl"]
    assert config.network.probe_timeout_seconds == 5


def test_default_file_is_picked_from_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    (tmp_path / "default.yaml").write_text("staleness:\n  freshness_window_hours: 2\n")

    config = ConfigLoader(config_dir=tmp_path).load_config()

    assert config.staleness.freshness_window_hours == 2


def test_missing_explicit_file_is_a_config_error(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        ConfigLoader().load_config(str(tmp_path / "nope.yaml"))


def test_unset_env_reference_is_a_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("FEEDSYNC_UNSET_SHEET", raising=False)
    config_file = tmp_path / "feeds.yaml"
    config_file.write_text("discovery:\n  products_sheet_url: ${FEEDSYNC_UNSET_SHEET}\n")

    with pytest.raises(ConfigError, match="FEEDSYNC_UNSET_SHEET"):
        ConfigLoader().load_config(str(config_file))


@pytest.mark.parametrize(
    "content",
    ["network:\n  max_workers: 9\n", "paths: [1, 2\n", "", "- just\n- a list\n"],
    ids=["invalid-value", "bad-yaml", "empty", "not-a-mapping"],
)
def test_invalid_file_is_a_config_error(tmp_path: Path, content: str):
    config_file = tmp_path / "feeds.yaml"
    config_file.write_text(content)

    with pytest.raises(ConfigError):
        ConfigLoader().load_config(str(config_file))


def test_validate_config_warnings():
    config = AppConfig(
        network={"probe_timeout_seconds": 60, "fetch_timeout_seconds": 30},
        sanitizer={"disallowed_fields": []},
        staleness={"freshness_window_hours": 0},
    )

    warnings = ConfigLoader().validate_config(config)

    assert len(warnings) == 3


def test_environment_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FEEDSYNC_NETWORK__MAX_WORKERS", "4")
    config_file = tmp_path / "feeds.yaml"
    config_file.write_text("network:\n  max_workers: 2\n  probe_timeout_seconds: 3\n")

    config = ConfigLoader().load_config(str(config_file))

    assert config.network.max_workers == 4
    assert config.network.probe_timeout_seconds == 3


def test_default_file_is_found_in_working_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    """An installed console script reads ./config/default.yaml from where it runs."""
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "default.yaml").write_text("network:\n  max_workers: 2\n")

    config = ConfigLoader().load_config()

    assert config.network.max_workers == 2
