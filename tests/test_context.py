from __future__ import annotations

from pathlib import Path
from zoneinfo import ZoneInfo

import pytest

from auto_diagnostic.config import DiagnosticConfig, GeneralConfig, OpenAiConfig, RunConfig
from auto_diagnostic.context import DateTimeRange, build_context, build_date_range
from auto_diagnostic.datasource import AppDescription, Ec2Instance
from auto_diagnostic.util.errors import ConfigError

NOW = 1_697_108_400_000  # 2023-10-12T11:00:00Z


def _run(**kwargs) -> RunConfig:
    return RunConfig(file=Path("config.toml"), **kwargs)


def test_default_window_is_trailing_duration() -> None:
    rng = build_date_range(_run(), ZoneInfo("UTC"), now_millis=lambda: NOW)

    assert rng.end_time == NOW
    assert rng.start_time == NOW - 3_600_000


def test_explicit_range_is_read_in_configured_zone() -> None:
    run = _run(start="2023-10-11 19:00:00", end="2023-10-12 19:00:00", duration=60)

    rng = build_date_range(run, ZoneInfo("Asia/Manila"), now_millis=lambda: NOW)

    assert rng.end_time == NOW
    assert (rng.end_time - rng.start_time) // 1000 == 86_400


def test_only_one_bound_is_an_error() -> None:
    with pytest.raises(ConfigError, match="Both start and end arguments must be provided"):
        build_date_range(_run(start="2023-10-11 19:00:00"), ZoneInfo("UTC"), now_millis=lambda: NOW)
    with pytest.raises(ConfigError, match="Both start and end arguments must be provided"):
        build_date_range(_run(end="2023-10-11 19:00:00"), ZoneInfo("UTC"), now_millis=lambda: NOW)


def test_bad_datetime_format() -> None:
    with pytest.raises(ConfigError, match="expected format"):
        build_date_range(_run(start="2023/10/11", end="2023-10-12 19:00:00"), ZoneInfo("UTC"))


def test_start_after_end_is_rejected() -> None:
    with pytest.raises(ConfigError):
        DateTimeRange(start_time=2, end_time=1)


def test_build_context_sorts_sources_and_carries_settings() -> None:
    config = DiagnosticConfig(
        general=GeneralConfig(profile="prod", time_zone="Asia/Manila", log_query_timeout=30.0),
        open_ai=OpenAiConfig(model="gpt-4o", max_token=800, api_key="sk-config"),
        data_sources=(
            Ec2Instance(order_no=2, instance_name="web"),
            AppDescription(order_no=1, description="app"),
        ),
    )

    ctx = build_context(_run(dry_run=True, print_prompt_data=True), config, now_millis=lambda: NOW)

    assert [s.order_no for s in ctx.data_sources] == [1, 2]
    assert ctx.profile == "prod"
    assert ctx.time_zone == ZoneInfo("Asia/Manila")
    assert ctx.window.time_zone == ZoneInfo("Asia/Manila")
    assert ctx.window.end_time == NOW
    assert ctx.open_ai_model == "gpt-4o"
    assert ctx.open_ai_max_token == 800
    assert ctx.open_ai_api_key == "sk-config"
    assert ctx.log_query_timeout == 30.0
    assert ctx.dry_run is True
    assert ctx.print_prompt_data is True


def test_build_context_defaults_to_utc() -> None:
    config = DiagnosticConfig(
        general=GeneralConfig(profile="prod"),
        open_ai=OpenAiConfig(model="gpt-4o", max_token=800),
    )

    ctx = build_context(_run(), config, now_millis=lambda: NOW)

    assert ctx.time_zone == ZoneInfo("UTC")
    assert ctx.data_sources == ()


def test_unknown_time_zone() -> None:
    config = DiagnosticConfig(
        general=GeneralConfig(profile="prod", time_zone="Mars/Olympus"),
        open_ai=OpenAiConfig(model="gpt-4o", max_token=800),
    )

    with pytest.raises(ConfigError, match="Unknown time zone"):
        build_context(_run(), config, now_millis=lambda: NOW)
