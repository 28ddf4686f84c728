"""
Publish metric points to CloudWatch.

Requires IAM permission "cloudwatch:PutMetricData".
"""
import functools
import logging
import threading
from typing import Any, Dict, List, NamedTuple, Optional

from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError
from botocore.session import get_session
from botocore.validate import validate_parameters

from snitch.resources import MetricPoint

# PutMetricData limit on MetricDatum per request
BATCH_SIZE = 20

PUBLISHED = 'published'
INVALID = 'invalid'
FAILED = 'failed'
CANCELLED = 'cancelled'


class BatchResult(NamedTuple):
    """Outcome of submitting one batch of metric points."""
    index: int
    size: int
    status: str
    error: Optional[Exception] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'size': self.size,
            'status': self.status,
            'error': str(self.error) if self.error else None,
        }


@functools.lru_cache(maxsize=None)
def _put_metric_data_shape():
    service_model = get_session().get_service_model('cloudwatch')
    return service_model.operation_model('PutMetricData').input_shape


def validate(params: Dict[str, Any]):
    """
    Validate PutMetricData parameters without calling CloudWatch.

    Raises:
        ParamValidationError: If parameters don't match the request shape
    """
    validate_parameters(params, _put_metric_data_shape())


def batches(metric_data: List[MetricPoint], size: int = BATCH_SIZE):
    """Yield successive batches of at most `size` metric points."""
    for i in range(0, len(metric_data), size):
        yield metric_data[i:i + size]


def publish(cloudwatch_client, namespace: str, metric_data: List[MetricPoint],
            cancel: Optional[threading.Event] = None) -> List[BatchResult]:
    """
    Publish metric points to CloudWatch in batches.

    A batch that fails validation or submission is logged and skipped; the
    remaining batches are still attempted. Nothing is retried.

    Args:
        cloudwatch_client: Boto3 CloudWatch client
        namespace: CloudWatch namespace to publish to
        metric_data: Metric points to publish
        cancel: Optional event that stops publishing once set

    Returns:
        list: One BatchResult per batch, in submission order
    """
    logging.info(f"Publishing {len(metric_data)} metrics in batches of {BATCH_SIZE}")
    results = []
    for index, batch in enumerate(batches(metric_data)):
        if cancel is not None and cancel.is_set():
            logging.info(f"Cancelled before publishing batch {index} of {len(batch)} metrics")
            results.append(BatchResult(index, len(batch), CANCELLED))
            continue

        params = {
            'Namespace': namespace,
            'MetricData': [point.to_datum() for point in batch],
        }
        try:
            validate(params)
        except ParamValidationError as e:
            logging.error(f"Failed to validate metrics: {e}")
            logging.error(f"Invalid metrics: {params}")
            results.append(BatchResult(index, len(batch), INVALID, e))
            continue

        try:
            cloudwatch_client.put_metric_data(**params)
        except (ClientError, BotoCoreError) as e:
            logging.error(f"Failed to publish {len(batch)} metrics to CloudWatch: {e}")
            logging.error(f"Metrics not published: {params}")
            results.append(BatchResult(index, len(batch), FAILED, e))
            continue

        logging.info(f"Published {len(batch)} metrics to {namespace}")
        logging.debug(f"Published metrics: {params}")
        results.append(BatchResult(index, len(batch), PUBLISHED))
    return results
