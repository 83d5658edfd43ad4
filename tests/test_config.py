"""Tests for environment-driven configuration helpers."""

from __future__ import annotations

import pytest

from ride_matcher import config


def test_env_float_reads_and_falls_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_MATCHER_TEST_FLOAT", "12.5")
    assert config._env_float("RIDE_MATCHER_TEST_FLOAT", 1.0) == 12.5

    monkeypatch.setenv("RIDE_MATCHER_TEST_FLOAT", "fast")
    assert config._env_float("RIDE_MATCHER_TEST_FLOAT", 1.0) == 1.0

    monkeypatch.delenv("RIDE_MATCHER_TEST_FLOAT")
    assert config._env_float("RIDE_MATCHER_TEST_FLOAT", 1.0) == 1.0


def test_env_int(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_MATCHER_TEST_INT", "8")
    assert config._env_int("RIDE_MATCHER_TEST_INT", 4) == 8
    monkeypatch.setenv("RIDE_MATCHER_TEST_INT", "8.5")
    assert config._env_int("RIDE_MATCHER_TEST_INT", 4) == 4


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("Yes", True), ("off", False), ("FALSE", False), ("maybe", True)],
)
def test_env_bool(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("RIDE_MATCHER_TEST_BOOL", raw)
    assert config._env_bool("RIDE_MATCHER_TEST_BOOL", True) is expected


def test_env_str_blank_uses_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RIDE_MATCHER_TEST_STR", "  ")
    assert config._env_str("RIDE_MATCHER_TEST_STR", None) is None
    monkeypatch.setenv("RIDE_MATCHER_TEST_STR", " Europe/London ")
    assert config._env_str("RIDE_MATCHER_TEST_STR", None) == "Europe/London"


def test_similarity_weights_sum_to_one() -> None:
    total = config.SIMILARITY_DISTANCE_WEIGHT + config.SIMILARITY_WAYPOINT_WEIGHT
    assert total == pytest.approx(1.0)
    route_total = (
        config.ROUTE_GEOMETRIC_WEIGHT
        + config.ROUTE_TEMPORAL_WEIGHT
        + config.ROUTE_ELEVATION_WEIGHT
    )
    assert route_total == pytest.approx(1.0)
