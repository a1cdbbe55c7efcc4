"""Tests for config.json and params file loading."""

from __future__ import annotations

import pytest

from tests.conftest import SCHEMATIC_GUID
from traveltime_client.config.settings import Settings, load_settings
from traveltime_client.domain.exceptions import ConfigurationError
from traveltime_client.domain.object_id import ObjectId
from traveltime_client.services.params_loader import load_param_rows

BASE_CONFIG = {
    "client_id": "client-123",
    "username": "analyst@example.com",
    "password": "secret",
    "schematic": SCHEMATIC_GUID.upper(),
    "realm": "realm-a",
}


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CLIENT_ID", "USERNAME", "PASSWORD", "SCHEMATIC", "REALM"):
        monkeypatch.delenv(f"TRAVELTIME_{name}", raising=False)


def test_load_settings_reads_config_file(write_json) -> None:
    path = write_json("config.json", BASE_CONFIG)

    settings = load_settings(path)

    assert settings.client_id == "client-123"
    assert settings.password.get_secret_value() == "secret"
    assert settings.schematic == SCHEMATIC_GUID
    assert settings.schematic_id == ObjectId.from_guid(SCHEMATIC_GUID)
    assert settings.realm == "realm-a"
    assert settings.api_base_url == "https://api.urbanlogiq.ca/v1/api/ulv2"


def test_password_never_appears_in_repr(write_json) -> None:
    settings = load_settings(write_json("config.json", BASE_CONFIG))

    assert "secret" not in repr(settings)


def test_missing_password_can_come_from_environment(
    write_json, monkeypatch: pytest.MonkeyPatch
) -> None:
    config = {k: v for k, v in BASE_CONFIG.items() if k != "password"}
    monkeypatch.setenv("TRAVELTIME_PASSWORD", "from-env")

    settings = load_settings(write_json("config.json", config))

    assert settings.password.get_secret_value() == "from-env"


def test_missing_required_field_is_configuration_error(write_json) -> None:
    config = {k: v for k, v in BASE_CONFIG.items() if k != "realm"}

    with pytest.raises(ConfigurationError, match="realm"):
        load_settings(write_json("config.json", config))


def test_invalid_schematic_is_rejected(write_json) -> None:
    config = {**BASE_CONFIG, "schematic": "not-a-guid-but-long-enough-to-pass-schema"}

    with pytest.raises(ConfigurationError):
        load_settings(write_json("config.json", config))


def test_schema_rejects_wrong_types(write_json) -> None:
    config = {**BASE_CONFIG, "poll_backoff_multiplier": "fast"}

    with pytest.raises(ConfigurationError, match="config"):
        load_settings(write_json("config.json", config))


def test_missing_config_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_settings(tmp_path / "absent.json")


def test_malformed_json(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_poll_policy_from_settings(write_json) -> None:
    config = {
        **BASE_CONFIG,
        "poll_initial_interval_seconds": 2,
        "poll_max_interval_seconds": 20,
        "poll_backoff_multiplier": 3,
        "poll_jitter_seconds": 0,
        "poll_timeout_seconds": None,
    }

    policy = load_settings(write_json("config.json", config)).poll_policy()

    assert policy.initial_interval == 2
    assert policy.max_interval == 20
    assert policy.multiplier == 3
    assert policy.timeout is None


def test_load_param_rows_applies_realm(write_json) -> None:
    path = write_json(
        "params.json",
        {
            "params": [
                {
                    "ul_node_id": "node-1",
                    "start_time": 1577836800000.0,
                    "end_time": 1577923200000,
                    "interval": 15.0,
                },
                {
                    "ul_node_id": "node-2",
                    "start_time": 1,
                    "end_time": 2,
                    "interval": 60,
                },
            ]
        },
    )

    rows = load_param_rows(path, "realm-a")

    assert [row.node_id for row in rows] == ["node-1", "node-2"]
    assert all(row.realm == "realm-a" for row in rows)
    assert rows[0].start_time == 1577836800000
    assert rows[0].interval == 15


def test_params_missing_field_is_rejected(write_json) -> None:
    path = write_json("params.json", {"params": [{"ul_node_id": "n", "start_time": 1}]})

    with pytest.raises(ConfigurationError):
        load_param_rows(path, "realm-a")


def test_params_interval_out_of_int32_range(write_json) -> None:
    path = write_json(
        "params.json",
        {
            "params": [
                {"ul_node_id": "n", "start_time": 1, "end_time": 2, "interval": 2**31}
            ]
        },
    )

    with pytest.raises(ConfigurationError, match="entry 0"):
        load_param_rows(path, "realm-a")


def test_empty_params_list_is_allowed(write_json) -> None:
    assert load_param_rows(write_json("params.json", {"params": []}), "r") == []


def test_settings_direct_construction_normalizes_base_url() -> None:
    settings = Settings(
        **{**BASE_CONFIG, "api_base_url": "https://api.test/v1/"}
    )

    assert settings.api_base_url == "https://api.test/v1"


def test_params_timestamp_out_of_int64_range(write_json) -> None:
    path = write_json(
        "params.json",
        {
            "params": [
                {"ul_node_id": "n", "start_time": 1e20, "end_time": 2, "interval": 1}
            ]
        },
    )

    with pytest.raises(ConfigurationError, match="entry 0"):
        load_param_rows(path, "realm-a")


def test_zero_poll_interval_is_rejected(write_json) -> None:
    path = write_json("config.json", {**BASE_CONFIG, "poll_initial_interval_seconds": 0})

    with pytest.raises(ConfigurationError):
        load_settings(path)


def test_zero_poll_interval_is_rejected_in_code() -> None:
    with pytest.raises(ValueError, match="poll_initial_interval_seconds"):
        Settings(
            client_id="c",
            username="u",
            password="p",
            schematic=SCHEMATIC_GUID,
            realm="r",
            poll_initial_interval_seconds=0,
        )
