from __future__ import annotations

from typing import Any, Dict, List

from ..logging import get_logger
from ..util.errors import ResourceNotFoundError
from ..util.pagination import aws_pages
from .base import Ec2Client, PromptData, aws_call, require
from .model import Ec2Instance

LOG = get_logger(__name__)


def fetch_instances(client: Ec2Client, instance_name: str) -> List[Dict[str, Any]]:
    """
    Return every instance whose Name tag equals instance_name.

    Several instances may share a name (autoscaled fleets); all are returned
    in the order EC2 reports them. Zero matches is fatal.
    """
    reservations = aws_pages(
        aws_call(f"AWS SDK error while describing EC2 instances named {instance_name}", client.describe_instances),
        items_key="Reservations",
        Filters=[{"Name": "tag:Name", "Values": [instance_name]}],
    )
    instances: List[Dict[str, Any]] = []
    for reservation in reservations:
        instances.extend(reservation.get("Instances") or [])

    if not instances:
        raise ResourceNotFoundError(f"Unable to find instance with name: {instance_name}")

    LOG.debug(
        "Resolved EC2 instances",
        extra={"instance_name": instance_name, "instance_ids": [i.get("InstanceId") for i in instances]},
    )
    return instances


def fetch_data(client: Ec2Client, config: Ec2Instance) -> List[PromptData]:
    return [
        PromptData(description=build_description(config, instance), data=None)
        for instance in fetch_instances(client, config.instance_name)
    ]


def build_description(config: Ec2Instance, instance: Dict[str, Any]) -> List[str]:
    what = "EC2 instance"
    cpu = require(instance, "CpuOptions", what)
    state = require(instance, "State", what)

    return [
        "Information: [EC2 Instance]",
        f"Instance name: [`{config.instance_name}`]",
        f"Instance id: [`{require(instance, 'InstanceId', what)}`]",
        f"Instance type: [`{require(instance, 'InstanceType', what)}`]",
        f"Cpu core count: [{require(cpu, 'CoreCount', 'EC2 CPU options')}]",
        f"Cpu threads per core: [{require(cpu, 'ThreadsPerCore', 'EC2 CPU options')}]",
        f"State: [{require(state, 'Name', 'EC2 instance state')}]",
    ]
