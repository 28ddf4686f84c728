"""
Measure how many containers each ECS cluster can schedule.

Each cluster is measured in two strictly ordered phases on its own worker:
first its running tasks give the lowest common multiple container size,
then its container instances are counted in containers of that size.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from snitch.config import DEFAULT_MAX_WORKERS
from snitch.capacity import containers_possible, get_instance_type
from snitch.discovery import (
    describe_container_instances,
    describe_tasks,
    discover_clusters,
    discover_tasks,
    list_container_instances,
)
from snitch.resources import ClusterResources, MetricPoint

MEASURED = 'measured'
SKIPPED = 'skipped'
CANCELLED = 'cancelled'
FAILED = 'failed'


class ClusterMeasurement(NamedTuple):
    """Outcome of measuring one cluster."""
    cluster: str
    status: str
    cpu: int = 0
    memory: int = 0
    metric_data: Tuple[MetricPoint, ...] = ()
    error: Optional[Exception] = None


class MeasureResult(NamedTuple):
    """Outcome of measuring every discovered cluster."""
    measurements: List[ClusterMeasurement]
    error: Optional[Exception] = None
    cancelled: bool = False

    @property
    def metric_data(self) -> List[MetricPoint]:
        return metric_data(self.measurements)

    def count_status(self, status: str) -> int:
        return sum(1 for measurement in self.measurements if measurement.status == status)


def _is_set(cancel: Optional[threading.Event]) -> bool:
    return cancel is not None and cancel.is_set()


def _parse_units(task: Dict[str, Any], field: str, cluster: str) -> int:
    value = task.get(field)
    try:
        return int(value)
    except (TypeError, ValueError):
        logging.warning(f"Failed to convert {cluster!r} task {field} {value!r} to int")
        return 0


def measure_resources(ecs_client, cluster: str, tasks: List[str]) -> Tuple[int, int]:
    """
    Find the largest CPU units and memory among a batch of tasks.

    The two maxima are taken independently, so they may come from different
    tasks. Unparseable values count as zero.

    Args:
        ecs_client: Boto3 ECS client
        cluster: ECS cluster name
        tasks: Task ARNs, as yielded by discover_tasks

    Returns:
        tuple: (cpu, memory)
    """
    cpu = 0
    memory = 0
    for task in describe_tasks(ecs_client, cluster, tasks):
        cpu = max(cpu, _parse_units(task, 'cpu', cluster))
        memory = max(memory, _parse_units(task, 'memory', cluster))
    logging.info(f"{cluster!r} largest container in cohort has {cpu} CPU units, {memory} MiB RAM")
    return cpu, memory


def describe_resources_by_instance_type(ecs_client, cluster: str, instances: List[str],
                                        cpu: int, memory: int) -> ClusterResources:
    """
    Collate a cluster's registered and remaining capacity by EC2 instance type.

    Usage:
        instances = list_container_instances(ecs_client, cluster)
        resources = describe_resources_by_instance_type(ecs_client, cluster, instances, cpu, memory)
    """
    resources = ClusterResources(cluster)
    for container_instance in describe_container_instances(ecs_client, cluster, instances):
        instance_type = get_instance_type(container_instance.get('attributes', []))
        resources.record(
            instance_type,
            cpu,
            memory,
            containers_possible(cpu, memory, container_instance.get('registeredResources', [])),
            containers_possible(cpu, memory, container_instance.get('remainingResources', [])),
        )
    logging.info(f"Measured {resources!r}")
    return resources


def measure_cluster(ecs_client, cluster: str, cancel: Optional[threading.Event] = None) -> ClusterMeasurement:
    """Measure how many containers an ECS cluster can schedule."""
    cpu = 0
    memory = 0
    tasks = discover_tasks(ecs_client, cluster, cancel)
    for cohort in tasks:
        cohort_cpu, cohort_memory = measure_resources(ecs_client, cluster, cohort)
        cpu = max(cpu, cohort_cpu)
        memory = max(memory, cohort_memory)

    if tasks.cancelled:
        return ClusterMeasurement(cluster, CANCELLED, cpu, memory, error=tasks.error)

    if cpu == 0 or memory == 0:
        logging.info(f"{cluster!r} doesn't appear to be running any tasks; skipping")
        return ClusterMeasurement(cluster, SKIPPED, cpu, memory, error=tasks.error)

    logging.info(f"{cluster!r} lowest common multiple is {cpu} CPU units, {memory} MiB RAM")

    if _is_set(cancel):
        logging.info(f"Cancelled measuring {cluster!r}")
        return ClusterMeasurement(cluster, CANCELLED, cpu, memory, error=tasks.error)

    instances = list_container_instances(ecs_client, cluster)
    resources = describe_resources_by_instance_type(ecs_client, cluster, instances, cpu, memory)
    return ClusterMeasurement(cluster, MEASURED, cpu, memory, tuple(resources.to_metric_data()), tasks.error)


def measure(ecs_client, max_workers: int = DEFAULT_MAX_WORKERS,
            cancel: Optional[threading.Event] = None) -> MeasureResult:
    """
    Measure every discovered cluster on a bounded pool of worker threads.

    Results are gathered in completion order; no ordering across clusters is
    implied.

    Args:
        ecs_client: Boto3 ECS client, shared by all workers
        max_workers: Maximum number of clusters measured at once
        cancel: Optional event that stops discovery and measurement once set

    Returns:
        MeasureResult: One measurement per dispatched cluster
    """
    measurements = []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='measure') as executor:
        clusters = discover_clusters(ecs_client, cancel)
        futures = {
            executor.submit(measure_cluster, ecs_client, cluster, cancel): cluster
            for cluster in clusters
        }
        logging.info(f"Measuring {len(futures)} clusters with up to {max_workers} workers")

        for future in as_completed(futures):
            cluster = futures[future]
            try:
                measurements.append(future.result())
            except Exception as e:
                logging.error(f"Failed to measure {cluster!r}: {e}", exc_info=True)
                measurements.append(ClusterMeasurement(cluster, FAILED, error=e))

    return MeasureResult(measurements, clusters.error, clusters.cancelled)


def metric_data(measurements: List[ClusterMeasurement]) -> List[MetricPoint]:
    """Concatenate metric points from all measurements."""
    return [point for measurement in measurements for point in measurement.metric_data]
