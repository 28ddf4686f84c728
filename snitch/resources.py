"""
Per-cluster resource ledger and the CloudWatch metric points built from it.

"Lowest common multiple" is the largest container a cluster currently runs,
by CPU units and by memory (MiB) taken independently.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple

LOWEST_COMMON_MULTIPLE_CPU = 'LowestCommonMultipleCPU'
LOWEST_COMMON_MULTIPLE_MEMORY = 'LowestCommonMultipleMemory'
REGISTERED_SCHEDULABLE = 'RegisteredSchedulable'
REMAINING_SCHEDULABLE = 'RemainingSchedulable'

CLUSTER_DIMENSION = 'ClusterName'
INSTANCE_TYPE_DIMENSION = 'InstanceType'
UNIT = 'Count'


class MetricPoint(NamedTuple):
    """One timestamped observation for a cluster and instance type."""
    name: str
    cluster: str
    instance_type: str
    value: int
    timestamp: datetime
    unit: str = UNIT

    def to_datum(self) -> Dict[str, Any]:
        """Render as a CloudWatch MetricDatum."""
        return {
            'MetricName': self.name,
            'Dimensions': [
                {'Name': CLUSTER_DIMENSION, 'Value': self.cluster},
                {'Name': INSTANCE_TYPE_DIMENSION, 'Value': self.instance_type},
            ],
            'Timestamp': self.timestamp,
            'Value': float(self.value),
            'Unit': self.unit,
        }


class ClusterResources:
    """
    Maps how many lowest-common-multiple containers each EC2 instance type in
    an ECS cluster can launch.

    Owned by a single cluster measurement and discarded after conversion.
    """

    def __init__(self, cluster: str):
        self.cluster = cluster
        self.cpu: Dict[str, int] = {}
        self.memory: Dict[str, int] = {}
        self.registered: Dict[str, int] = {}
        self.remaining: Dict[str, int] = {}

    @property
    def resources(self) -> Dict[str, Dict[str, int]]:
        return {
            LOWEST_COMMON_MULTIPLE_CPU: self.cpu,
            LOWEST_COMMON_MULTIPLE_MEMORY: self.memory,
            REGISTERED_SCHEDULABLE: self.registered,
            REMAINING_SCHEDULABLE: self.remaining,
        }

    def record(self, instance_type: str, cpu: int, memory: int, registered: int, remaining: int):
        """
        Record one container instance.

        The footprint is the same for the whole cluster, so cpu and memory
        overwrite; schedulable counts add up across instances of a type.
        """
        self.cpu[instance_type] = cpu
        self.memory[instance_type] = memory
        self.registered[instance_type] = self.registered.get(instance_type, 0) + registered
        self.remaining[instance_type] = self.remaining.get(instance_type, 0) + remaining

    def to_metric_data(self) -> List[MetricPoint]:
        """Convert to metric points, all stamped with the current time."""
        timestamp = datetime.now(timezone.utc)
        metric_data = []
        for metric_name, counts in self.resources.items():
            for instance_type, value in counts.items():
                metric_data.append(MetricPoint(
                    name=metric_name,
                    cluster=self.cluster,
                    instance_type=instance_type,
                    value=value,
                    timestamp=timestamp,
                ))
        return metric_data

    def __repr__(self):
        return f"ClusterResources({self.cluster!r}, {self.resources!r})"
