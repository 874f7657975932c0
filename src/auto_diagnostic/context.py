from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Callable, Optional, Tuple

from .config import DiagnosticConfig, RunConfig
from .datasource.base import FetchWindow
from .datasource.model import DataSource, sort_data_sources
from .util.errors import ConfigError
from .util.time import parse_local_datetime, parse_time_zone, utc_now_millis


@dataclass(frozen=True)
class DateTimeRange:
    start_time: int  # epoch millis
    end_time: int  # epoch millis
    time_zone: tzinfo = field(default=timezone.utc)

    def __post_init__(self) -> None:
        if self.start_time > self.end_time:
            raise ConfigError("Start time must not be after end time")


@dataclass(frozen=True)
class ExecutionContext:
    """
    Run-wide, read-only parameters. Built once before any data source is fetched.
    """

    profile: str
    time_range: DateTimeRange
    data_sources: Tuple[DataSource, ...]
    open_ai_model: str
    open_ai_max_token: int
    open_ai_api_key: Optional[str] = None
    log_query_timeout: Optional[float] = None
    print_prompt_data: bool = False
    dry_run: bool = False

    @property
    def time_zone(self) -> tzinfo:
        return self.time_range.time_zone

    @property
    def window(self) -> FetchWindow:
        return FetchWindow(
            start_time=self.time_range.start_time,
            end_time=self.time_range.end_time,
            time_zone=self.time_range.time_zone,
        )


def build_date_range(
    run: RunConfig,
    time_zone: tzinfo,
    *,
    now_millis: Callable[[], int] = utc_now_millis,
) -> DateTimeRange:
    """
    Resolve the query window.

    --start and --end together override --duration; otherwise the window is
    the trailing `duration` seconds ending now. Supplying only one is an error.
    """
    if run.start is not None and run.end is not None:
        start_time = parse_local_datetime(run.start, time_zone)
        end_time = parse_local_datetime(run.end, time_zone)
    elif run.start is None and run.end is None:
        end_time = now_millis()
        start_time = end_time - run.duration * 1000
    else:
        raise ConfigError("Both start and end arguments must be provided")
    return DateTimeRange(start_time=start_time, end_time=end_time, time_zone=time_zone)


def build_context(
    run: RunConfig,
    config: DiagnosticConfig,
    *,
    now_millis: Callable[[], int] = utc_now_millis,
) -> ExecutionContext:
    time_zone = parse_time_zone(config.general.time_zone)
    return ExecutionContext(
        profile=config.general.profile,
        time_range=build_date_range(run, time_zone, now_millis=now_millis),
        data_sources=tuple(sort_data_sources(config.data_sources)),
        open_ai_model=config.open_ai.model,
        open_ai_max_token=config.open_ai.max_token,
        open_ai_api_key=config.open_ai.api_key,
        log_query_timeout=config.general.log_query_timeout,
        print_prompt_data=run.print_prompt_data,
        dry_run=run.dry_run,
    )
