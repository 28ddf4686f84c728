"""
Discovery of ECS clusters, tasks and container instances.

Paginated listings are exposed as `Listing` iterators: lazy, finite and
single-use. An API error ends the listing early instead of raising; whatever
was already yielded stands and the error is kept on `Listing.error`.
"""
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

CLUSTER_ARN_MARKER = ':cluster/'

AWS_ERRORS = (ClientError, BotoCoreError)


def cluster_name(cluster_arn: str) -> str:
    """
    Derive a cluster name from its ARN.

    "arn:aws:ecs:ca-central-1:123456789012:cluster/my-cluster" -> "my-cluster"
    """
    return cluster_arn.split(CLUSTER_ARN_MARKER, 1)[-1]


class Listing:
    """Single-use iterator over a paginated ECS listing."""

    def __init__(self, description: str, items: Iterator, cancel: Optional[threading.Event] = None):
        self.description = description
        self.error: Optional[Exception] = None
        self.cancelled = False
        self._cancel = cancel
        self._items = self._generate(items)

    def __iter__(self):
        return self

    def __next__(self):
        return next(self._items)

    def _generate(self, items):
        while True:
            # Checked before every pull, which may fetch a page
            if self._cancel is not None and self._cancel.is_set():
                logging.info(f"Cancelled {self.description}")
                self.cancelled = True
                return
            try:
                item = next(items)
            except StopIteration:
                return
            except AWS_ERRORS as e:
                logging.error(f"Failed to {self.description}: {e}")
                self.error = e
                return
            yield item


def discover_clusters(ecs_client, cancel: Optional[threading.Event] = None) -> Listing:
    """
    Discover names of all ECS clusters visible to the caller's credentials.

    Requires IAM permission "ecs:ListClusters".

    Args:
        ecs_client: Boto3 ECS client
        cancel: Optional event that stops discovery once set

    Returns:
        Listing: Cluster names, one per cluster
    """
    def names():
        paginator = ecs_client.get_paginator('list_clusters')
        for page in paginator.paginate():
            arns = page.get('clusterArns', [])
            if not arns:
                return
            for arn in arns:
                yield cluster_name(arn)

    return Listing('list clusters', names(), cancel)


def discover_tasks(ecs_client, cluster: str, cancel: Optional[threading.Event] = None) -> Listing:
    """
    Discover task ARNs in a cluster, one batch per page.

    Usage:
        for tasks in discover_tasks(ecs_client, cluster):
            logging.info(f"{cluster} has {len(tasks)} tasks in cohort")

    Args:
        ecs_client: Boto3 ECS client
        cluster: ECS cluster name
        cancel: Optional event that stops discovery once set

    Returns:
        Listing: Lists of task ARNs; ends at the first empty page
    """
    def batches():
        paginator = ecs_client.get_paginator('list_tasks')
        for page in paginator.paginate(cluster=cluster):
            task_arns = page.get('taskArns', [])
            if not task_arns:
                return
            yield task_arns

    return Listing(f'list tasks for {cluster!r}', batches(), cancel)


def describe_tasks(ecs_client, cluster: str, tasks: List[str]) -> List[Dict[str, Any]]:
    """Describe a batch of tasks (at most 100); empty on error."""
    if not tasks:
        return []
    try:
        return ecs_client.describe_tasks(cluster=cluster, tasks=tasks).get('tasks', [])
    except AWS_ERRORS as e:
        logging.error(f"Failed to describe tasks in {cluster!r}: {e}")
        return []


def list_container_instances(ecs_client, cluster: str) -> List[str]:
    """
    List ARNs of a cluster's ACTIVE container instances.

    Requires IAM permission "ecs:ListContainerInstances".

    Only the first page is read, so at most 100 container instances are seen
    per cluster.
    """
    try:
        response = ecs_client.list_container_instances(cluster=cluster, status='ACTIVE')
    except AWS_ERRORS as e:
        logging.error(f"Failed to list container instances in {cluster!r}: {e}")
        return []
    return response.get('containerInstanceArns', [])


def describe_container_instances(ecs_client, cluster: str, instances: List[str]) -> List[Dict[str, Any]]:
    """
    Describe container instances; empty on error.

    Requires IAM permission "ecs:DescribeContainerInstances".
    """
    if not instances:
        return []
    try:
        response = ecs_client.describe_container_instances(cluster=cluster, containerInstances=instances)
    except AWS_ERRORS as e:
        logging.error(f"Failed to describe container instances in {cluster!r}: {e}")
        return []
    return response.get('containerInstances', [])
