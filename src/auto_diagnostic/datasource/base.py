from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from ..util.errors import MissingFieldError, map_aws_error

# Data payload used whenever a metric or log query yields zero rows.
NO_DATA = "No applicable data found\n"


@dataclass(frozen=True)
class PromptData:
    description: List[str]
    data: Optional[str] = None


@dataclass(frozen=True)
class FetchWindow:
    """Slice of the execution context a time-series fetcher needs."""

    start_time: int  # epoch millis
    end_time: int  # epoch millis
    time_zone: tzinfo = field(default=timezone.utc)


@runtime_checkable
class Ec2Client(Protocol):
    def describe_instances(self, **kwargs: Any) -> Dict[str, Any]:
        ...


@runtime_checkable
class RdsClient(Protocol):
    def describe_db_instances(self, **kwargs: Any) -> Dict[str, Any]:
        ...


@runtime_checkable
class CloudwatchClient(Protocol):
    def get_metric_data(self, **kwargs: Any) -> Dict[str, Any]:
        ...


@runtime_checkable
class LogsClient(Protocol):
    def start_query(self, **kwargs: Any) -> Dict[str, Any]:
        ...

    def get_query_results(self, **kwargs: Any) -> Dict[str, Any]:
        ...


def aws_call(context: str, fn: Callable[..., Dict[str, Any]]) -> Callable[..., Dict[str, Any]]:
    """
    Wrap a client method so SDK errors surface as AwsClientError with context.
    """

    def _call(**kwargs: Any) -> Dict[str, Any]:
        try:
            return fn(**kwargs)
        except Exception as e:
            mapped = map_aws_error(e, context)
            if mapped:
                raise mapped from e
            raise

    return _call


def require(data: Mapping[str, Any], key: str, what: str) -> Any:
    """
    Return data[key], failing the run when the service omitted it.
    """
    value = data.get(key) if isinstance(data, Mapping) else None
    if value is None:
        raise MissingFieldError(f"{key} is missing from {what}")
    return value


def write_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()
