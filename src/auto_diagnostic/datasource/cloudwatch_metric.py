from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..logging import get_logger
from ..util.pagination import paginate
from ..util.time import format_local, from_millis
from .base import NO_DATA, CloudwatchClient, Ec2Client, FetchWindow, PromptData, aws_call, require, write_csv
from .ec2 import fetch_instances
from .model import CloudwatchMetric

LOG = get_logger(__name__)

EC2_NAMESPACE = "AWS/EC2"
PERIOD_SECONDS = 60

Dimension = Dict[str, str]


def fetch_data(
    client: CloudwatchClient,
    ec2_client: Optional[Ec2Client],
    config: CloudwatchMetric,
    window: FetchWindow,
) -> List[PromptData]:
    """
    Fetch one time series per resolved dimension.

    For the AWS/EC2 namespace the configured dimension value is an instance
    Name tag, expanded to one dimension per matching instance id.
    """
    prompt_data: List[PromptData] = []
    for dimension in build_dimensions(ec2_client, config):
        query = build_query(config, dimension)
        results = get_metric_results(client, query, window)
        prompt_data.append(
            PromptData(
                description=build_description(config, dimension),
                data=extract_to_csv(results, window),
            )
        )
    return prompt_data


def build_dimensions(ec2_client: Optional[Ec2Client], config: CloudwatchMetric) -> List[Dimension]:
    if config.metric_namespace == EC2_NAMESPACE:
        if ec2_client is None:
            raise ValueError("An EC2 client is required to resolve AWS/EC2 metric dimensions")
        instances = fetch_instances(ec2_client, config.dimension_value)
        return [
            {"Name": config.dimension_name, "Value": str(require(instance, "InstanceId", "EC2 instance"))}
            for instance in instances
        ]
    return [{"Name": config.dimension_name, "Value": config.dimension_value}]


def build_query(config: CloudwatchMetric, dimension: Dimension) -> Dict[str, Any]:
    return {
        "Id": config.metric_identifier,
        "MetricStat": {
            "Metric": {
                "Namespace": config.metric_namespace,
                "MetricName": config.metric_name,
                "Dimensions": [dimension],
            },
            "Period": PERIOD_SECONDS,
            "Stat": config.metric_stat,
        },
    }


def get_metric_results(client: CloudwatchClient, query: Dict[str, Any], window: FetchWindow) -> List[Dict[str, Any]]:
    """
    Run the query across all pages, merging pages that belong to the same
    result id. Points come back oldest first.
    """
    call = aws_call(
        f"AWS SDK error while reading metric {query['MetricStat']['Metric']['MetricName']}",
        client.get_metric_data,
    )

    def fetch(token: Optional[str]) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        params: Dict[str, Any] = {
            "MetricDataQueries": [query],
            "StartTime": from_millis(window.start_time),
            "EndTime": from_millis(window.end_time),
            "ScanBy": "TimestampAscending",
        }
        if token:
            params["NextToken"] = token
        resp = call(**params) or {}
        return list(resp.get("MetricDataResults") or []), resp.get("NextToken")

    merged: Dict[str, Dict[str, Any]] = {}
    for result in paginate(fetch):
        key = str(result.get("Id") or "")
        entry = merged.setdefault(key, {"Id": key, "Timestamps": [], "Values": []})
        entry["Timestamps"].extend(result.get("Timestamps") or [])
        entry["Values"].extend(result.get("Values") or [])
    return list(merged.values())


def build_description(config: CloudwatchMetric, dimension: Dimension) -> List[str]:
    description = [
        f"Information: [Cloudwatch {config.metric_namespace}]",
        f"Metric: [`{config.metric_name}`]",
        f"Dimension: [`{dimension['Name']}:{dimension['Value']}`]",
    ]
    if config.metric_unit:
        description.append(f"Unit: {config.metric_unit}")
    return description


def format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def extract_to_csv(results: List[Dict[str, Any]], window: FetchWindow) -> str:
    """
    Render (timestamp, value) pairs newest first, timestamps in the display zone.
    """
    rows: List[List[str]] = []
    for result in results:
        timestamps = list(result.get("Timestamps") or [])
        values = list(result.get("Values") or [])
        for timestamp, value in zip(reversed(timestamps), reversed(values)):
            rows.append([format_local(timestamp, window.time_zone), format_value(value)])

    if not rows:
        return NO_DATA
    return write_csv(["timestamp", "value"], rows)
