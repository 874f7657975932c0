from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Iterable, List, Optional, Tuple, Union


@dataclass(frozen=True)
class AppDescription:
    order_no: int
    description: str

    display_name: ClassVar[str] = "App description"
    section: ClassVar[str] = "app_description"


@dataclass(frozen=True)
class Ec2Instance:
    order_no: int
    instance_name: str

    display_name: ClassVar[str] = "EC2 instance"
    section: ClassVar[str] = "ec2"


@dataclass(frozen=True)
class RdsInstance:
    order_no: int
    db_identifier: str

    display_name: ClassVar[str] = "RDS instance"
    section: ClassVar[str] = "rds"


@dataclass(frozen=True)
class CloudwatchMetric:
    order_no: int
    dimension_name: str
    dimension_value: str
    metric_identifier: str
    metric_namespace: str
    metric_name: str
    metric_stat: str
    metric_unit: Optional[str] = None

    display_name: ClassVar[str] = "Cloudwatch metric"
    section: ClassVar[str] = "cloudwatch_metric"


@dataclass(frozen=True)
class CloudwatchLogInsight:
    order_no: int
    description: str
    log_group_name: str
    query: str
    result_columns: Tuple[str, ...] = field(default_factory=tuple)

    display_name: ClassVar[str] = "Cloudwatch log insight"
    section: ClassVar[str] = "cloudwatch_log_insight"


# Closed set of configured resources. order_no lives on each record only.
DataSource = Union[AppDescription, Ec2Instance, RdsInstance, CloudwatchMetric, CloudwatchLogInsight]


def order_key(source: DataSource) -> int:
    return source.order_no


def sort_data_sources(sources: Iterable[DataSource]) -> List[DataSource]:
    """
    Return sources in non-decreasing order_no. Python's sort is stable, so
    sources sharing an order_no keep their configured relative order.
    """
    return sorted(sources, key=order_key)
