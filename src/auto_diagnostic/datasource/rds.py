from __future__ import annotations

from typing import Any, Dict, List

from ..util.errors import ResourceNotFoundError
from ..util.pagination import aws_pages
from .base import PromptData, RdsClient, aws_call, require
from .model import RdsInstance


def fetch_data(client: RdsClient, config: RdsInstance) -> PromptData:
    db_instances = aws_pages(
        aws_call("AWS SDK error while describing RDS instances", client.describe_db_instances),
        items_key="DBInstances",
        request_token="Marker",
    )

    for db_instance in db_instances:
        if (db_instance.get("DBInstanceIdentifier") or "") == config.db_identifier:
            return PromptData(description=build_description(config, db_instance), data=None)

    raise ResourceNotFoundError(f"Unable to find DB instance with name: {config.db_identifier}")


def _bool_text(value: Any) -> str:
    return "true" if value else "false"


def build_description(config: RdsInstance, instance: Dict[str, Any]) -> List[str]:
    what = "RDS instance"
    multi_az = require(instance, "MultiAZ", what)
    return [
        "Information: [RDS Instance]",
        f"DB identifier: [`{config.db_identifier}`]",
        f"Class: [`{require(instance, 'DBInstanceClass', what)}`]",
        f"Engine: [{require(instance, 'Engine', what)} {require(instance, 'EngineVersion', what)}]",
        f"Storage type: [{require(instance, 'StorageType', what)}]",
        f"Status: [{require(instance, 'DBInstanceStatus', what)}]",
        f"Multi AZ: [{_bool_text(multi_az)}]",
    ]
