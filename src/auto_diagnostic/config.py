from __future__ import annotations

import argparse
import json
import os
import tomllib
import warnings
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from .datasource.model import (
    AppDescription,
    CloudwatchLogInsight,
    CloudwatchMetric,
    DataSource,
    Ec2Instance,
    RdsInstance,
)
from .util.errors import ConfigError

# --------
# Defaults
# --------
DEFAULT_DURATION_SECONDS = 3600
DEFAULT_LOG_LEVEL = "INFO"
MAX_ORDER_NO = 255

GENERAL_SECTION = "general"
OPEN_AI_SECTION = "open_ai"

# (record type, required string fields, optional string fields)
SOURCE_SECTIONS: Tuple[Tuple[type, Tuple[str, ...], Tuple[str, ...]], ...] = (
    (AppDescription, ("description",), ()),
    (Ec2Instance, ("instance_name",), ()),
    (RdsInstance, ("db_identifier",), ()),
    (
        CloudwatchMetric,
        (
            "dimension_name",
            "dimension_value",
            "metric_identifier",
            "metric_namespace",
            "metric_name",
            "metric_stat",
        ),
        ("metric_unit",),
    ),
    (CloudwatchLogInsight, ("description", "log_group_name", "query"), ()),
)
ALLOWED_SECTIONS = {GENERAL_SECTION, OPEN_AI_SECTION} | {cls.section for cls, _, _ in SOURCE_SECTIONS}


@dataclass(frozen=True)
class GeneralConfig:
    profile: str
    time_zone: Optional[str] = None
    log_query_timeout: Optional[float] = None


@dataclass(frozen=True)
class OpenAiConfig:
    model: str
    max_token: int
    api_key: Optional[str] = None


@dataclass(frozen=True)
class DiagnosticConfig:
    general: GeneralConfig
    open_ai: OpenAiConfig
    data_sources: Tuple[DataSource, ...] = ()


@dataclass(frozen=True)
class RunConfig:
    file: Path
    duration: int = DEFAULT_DURATION_SECONDS
    start: Optional[str] = None
    end: Optional[str] = None
    print_prompt_data: bool = False
    dry_run: bool = False
    json_logs: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    # Overrides for the config document (env < CLI)
    profile: Optional[str] = None
    time_zone: Optional[str] = None


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    try:
        if suffix == ".toml":
            data = tomllib.loads(text)
        elif suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        elif suffix == ".json":
            data = json.loads(text)
        else:
            # Try TOML first then YAML
            try:
                data = tomllib.loads(text)
            except tomllib.TOMLDecodeError:
                data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' is required and must be a table/object")
    return value


def _require_str(data: Dict[str, Any], section: str, key: str) -> str:
    v = data.get(key)
    if not isinstance(v, str) or not v.strip():
        raise ConfigError(f"Config field '{section}.{key}' is required and must be a non-empty string")
    return v


def _optional_str(data: Dict[str, Any], section: str, key: str) -> Optional[str]:
    v = data.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ConfigError(f"Config field '{section}.{key}' must be a string")
    return v.strip() or None


def _coerce_int(section: str, key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ConfigError(f"Config field '{section}.{key}' must be an integer")


def _coerce_positive_number(section: str, key: str, value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return float(value)
    raise ConfigError(f"Config field '{section}.{key}' must be a positive number")


def _order_no(section: str, entry: Dict[str, Any]) -> int:
    if "order_no" not in entry:
        raise ConfigError(f"Config field '{section}.order_no' is required")
    order_no = _coerce_int(section, "order_no", entry["order_no"])
    if not 0 <= order_no <= MAX_ORDER_NO:
        raise ConfigError(f"Config field '{section}.order_no' must be between 0 and {MAX_ORDER_NO}")
    return order_no


def _result_columns(section: str, entry: Dict[str, Any]) -> Tuple[str, ...]:
    value = entry.get("result_columns")
    if not isinstance(value, list) or not value or not all(isinstance(c, str) and c for c in value):
        raise ConfigError(f"Config field '{section}.result_columns' must be a non-empty list of strings")
    return tuple(value)


def _parse_general(data: Dict[str, Any]) -> GeneralConfig:
    section = _section(data, GENERAL_SECTION)
    timeout_raw = section.get("log_query_timeout")
    return GeneralConfig(
        profile=_require_str(section, GENERAL_SECTION, "profile"),
        time_zone=_optional_str(section, GENERAL_SECTION, "time_zone"),
        log_query_timeout=(
            _coerce_positive_number(GENERAL_SECTION, "log_query_timeout", timeout_raw)
            if timeout_raw is not None
            else None
        ),
    )


def _parse_open_ai(data: Dict[str, Any]) -> OpenAiConfig:
    section = _section(data, OPEN_AI_SECTION)
    if "max_token" not in section:
        raise ConfigError(f"Config field '{OPEN_AI_SECTION}.max_token' is required")
    max_token = _coerce_int(OPEN_AI_SECTION, "max_token", section["max_token"])
    if max_token <= 0:
        raise ConfigError(f"Config field '{OPEN_AI_SECTION}.max_token' must be positive")
    return OpenAiConfig(
        model=_require_str(section, OPEN_AI_SECTION, "model"),
        max_token=max_token,
        api_key=_optional_str(section, OPEN_AI_SECTION, "api_key"),
    )


def _parse_data_sources(data: Dict[str, Any]) -> List[DataSource]:
    """
    Build data source records in configuration order: all app_description
    entries, then ec2, rds, cloudwatch_metric and cloudwatch_log_insight.
    """
    sources: List[DataSource] = []
    for cls, required, optional in SOURCE_SECTIONS:
        section = cls.section
        entries = data.get(section)
        if entries is None:
            continue
        if isinstance(entries, dict):
            entries = [entries]
        if not isinstance(entries, list):
            raise ConfigError(f"Config section '{section}' must be a list of tables/objects")
        allowed = {"order_no", *required, *optional}
        if cls is CloudwatchLogInsight:
            allowed.add("result_columns")
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigError(f"Config section '{section}' entries must be tables/objects")
            unknown = sorted(set(entry.keys()) - allowed)
            if unknown:
                warnings.warn(f"Unknown keys in '{section}' ignored: {', '.join(unknown)}")
            kwargs: Dict[str, Any] = {"order_no": _order_no(section, entry)}
            for key in required:
                kwargs[key] = _require_str(entry, section, key)
            for key in optional:
                kwargs[key] = _optional_str(entry, section, key)
            if cls is CloudwatchLogInsight:
                kwargs["result_columns"] = _result_columns(section, entry)
            sources.append(cls(**kwargs))
    return sources


def parse_diagnostic_config(data: Dict[str, Any]) -> DiagnosticConfig:
    unknown = sorted(set(data.keys()) - ALLOWED_SECTIONS)
    if unknown:
        warnings.warn(f"Unknown config sections ignored: {', '.join(unknown)}")
    return DiagnosticConfig(
        general=_parse_general(data),
        open_ai=_parse_open_ai(data),
        data_sources=tuple(_parse_data_sources(data)),
    )


def load_diagnostic_config(run: RunConfig) -> DiagnosticConfig:
    """
    Load the config document and apply env/CLI overrides from the RunConfig.
    Precedence (low -> high): config file < env < CLI.
    """
    cfg = parse_diagnostic_config(_parse_config_file(Path(run.file)))
    general = cfg.general
    if run.profile:
        general = replace(general, profile=run.profile)
    if run.time_zone:
        general = replace(general, time_zone=run.time_zone)
    return replace(cfg, general=general)


def build_parser() -> argparse.ArgumentParser:
    from . import __version__

    parser = argparse.ArgumentParser(
        prog="auto-diagnostic",
        description="Automatically performs diagnosis on your AWS environment with AI",
    )
    parser.add_argument("file", type=Path, help="Configuration file to use (TOML/YAML/JSON)")
    parser.add_argument(
        "--duration",
        type=int,
        default=None,
        help=f"Duration in seconds, since the current date time (default {DEFAULT_DURATION_SECONDS})",
    )
    parser.add_argument(
        "--start",
        default=None,
        help="Start time [format: %%Y-%%m-%%d %%H:%%M:%%S]. If provided, ignores duration argument",
    )
    parser.add_argument(
        "--end",
        default=None,
        help="End time [format: %%Y-%%m-%%d %%H:%%M:%%S]. If provided, ignores duration argument",
    )
    parser.add_argument("--print-prompt-data", action="store_true", help="Print the raw prompt data")
    parser.add_argument("--dry-run", action="store_true", help="Dry run mode, don't generate diagnosis")
    parser.add_argument("--profile", default=None, help="AWS profile (overrides general.profile)")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable JSON logs",
    )
    parser.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[Sequence[str]] = None,
) -> RunConfig:
    """
    Build RunConfig from CLI args and env vars. CLI wins over env.
    """
    ns = args if args is not None else build_parser().parse_args(argv)

    duration = ns.duration if ns.duration is not None else DEFAULT_DURATION_SECONDS
    if duration < 0:
        raise ConfigError("--duration must not be negative")

    json_logs = ns.json_logs if ns.json_logs is not None else _env_bool("AUTO_DIAG_JSON_LOGS")
    log_level = ns.log_level or _env_str("AUTO_DIAG_LOG_LEVEL") or DEFAULT_LOG_LEVEL

    return RunConfig(
        file=Path(ns.file),
        duration=int(duration),
        start=ns.start,
        end=ns.end,
        print_prompt_data=bool(ns.print_prompt_data),
        dry_run=bool(ns.dry_run),
        json_logs=bool(json_logs),
        log_level=log_level.upper(),
        profile=ns.profile or _env_str("AUTO_DIAG_PROFILE"),
        time_zone=_env_str("AUTO_DIAG_TIME_ZONE"),
    )
