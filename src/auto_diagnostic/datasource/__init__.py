from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Protocol

from . import app_description, cloudwatch_log_insight, cloudwatch_metric, ec2, rds
from .base import NO_DATA, CloudwatchClient, Ec2Client, FetchWindow, LogsClient, PromptData, RdsClient
from .model import (
    AppDescription,
    CloudwatchLogInsight,
    CloudwatchMetric,
    DataSource,
    Ec2Instance,
    RdsInstance,
    sort_data_sources,
)

if TYPE_CHECKING:
    from ..context import ExecutionContext


class ServiceClients(Protocol):
    """
    Bundle of injected service clients. Attributes may be built lazily, but
    never by the fetchers themselves.
    """

    @property
    def ec2(self) -> Ec2Client: ...

    @property
    def rds(self) -> RdsClient: ...

    @property
    def cloudwatch(self) -> CloudwatchClient: ...

    @property
    def logs(self) -> LogsClient: ...


Fetcher = Callable[[Any, ServiceClients, "ExecutionContext"], List[PromptData]]


def _fetch_app_description(source: AppDescription, _clients: ServiceClients, _ctx: "ExecutionContext") -> List[PromptData]:
    return [app_description.fetch_data(source)]


def _fetch_ec2(source: Ec2Instance, clients: ServiceClients, _ctx: "ExecutionContext") -> List[PromptData]:
    return ec2.fetch_data(clients.ec2, source)


def _fetch_rds(source: RdsInstance, clients: ServiceClients, _ctx: "ExecutionContext") -> List[PromptData]:
    return [rds.fetch_data(clients.rds, source)]


def _fetch_cloudwatch_metric(
    source: CloudwatchMetric, clients: ServiceClients, ctx: "ExecutionContext"
) -> List[PromptData]:
    ec2_client = clients.ec2 if source.metric_namespace == cloudwatch_metric.EC2_NAMESPACE else None
    return cloudwatch_metric.fetch_data(clients.cloudwatch, ec2_client, source, ctx.window)


def _fetch_cloudwatch_log_insight(
    source: CloudwatchLogInsight, clients: ServiceClients, ctx: "ExecutionContext"
) -> List[PromptData]:
    return [
        cloudwatch_log_insight.fetch_data(
            clients.logs,
            source,
            ctx.window,
            sleep=time.sleep,
            timeout=ctx.log_query_timeout,
        )
    ]


_FETCHERS: Dict[type, Fetcher] = {
    AppDescription: _fetch_app_description,
    Ec2Instance: _fetch_ec2,
    RdsInstance: _fetch_rds,
    CloudwatchMetric: _fetch_cloudwatch_metric,
    CloudwatchLogInsight: _fetch_cloudwatch_log_insight,
}


def fetch_prompt_data(source: DataSource, clients: ServiceClients, ctx: "ExecutionContext") -> List[PromptData]:
    """
    Fetch one data source. EC2 and metric sources may expand to several
    PromptData entries, one per resolved instance.
    """
    fetcher = _FETCHERS.get(type(source))
    if fetcher is None:
        raise TypeError(f"Unsupported data source type: {type(source).__name__}")
    return fetcher(source, clients, ctx)


__all__ = [
    "NO_DATA",
    "AppDescription",
    "CloudwatchLogInsight",
    "CloudwatchMetric",
    "DataSource",
    "Ec2Instance",
    "FetchWindow",
    "PromptData",
    "RdsInstance",
    "ServiceClients",
    "fetch_prompt_data",
    "sort_data_sources",
]
