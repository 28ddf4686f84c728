import logging
import threading
from typing import Dict, Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from snitch.aws.wrapper import AWSWrapper
from snitch.config import load_config, Config
from snitch.measure import measure, MEASURED, SKIPPED, FAILED, CANCELLED
from snitch.publisher import publish, PUBLISHED

# Stop measuring this long before the Lambda deadline, leaving time to publish
CANCEL_MARGIN_SECONDS = 10


def _empty_summary() -> Dict[str, Any]:
    return {
        'clusters': 0,
        'measured': 0,
        'skipped': 0,
        'failed': 0,
        'cancelled': 0,
        'discovery_error': None,
        'client_error': None,
        'metrics': 0,
        'published': 0,
        'batches': []
    }


def run(config: Config, aws_wrapper: AWSWrapper = None,
        cancel: Optional[threading.Event] = None) -> Dict[str, Any]:
    """
    Measure ECS clusters and, if configured, publish findings to CloudWatch.

    Failures along the way, including being unable to create AWS clients, are
    logged and reflected in the summary; they are never raised.

    Args:
        config: Configuration object
        aws_wrapper: Optional AWS API wrapper instance
        cancel: Optional event that stops measurement once set

    Returns:
        dict: Summary of clusters measured and metrics published
    """
    summary = _empty_summary()
    try:
        if aws_wrapper is None:
            aws_wrapper = AWSWrapper(
                sso_profile_name=config.sso_profile,
                region_name=config.region,
                max_pool_connections=config.max_workers
            )
        ecs_client = aws_wrapper.create_aws_client('ecs')
    except (BotoCoreError, ClientError) as e:
        logging.error(f"Failed to create ECS client: {e}")
        summary['client_error'] = str(e)
        return summary

    result = measure(ecs_client, config.max_workers, cancel)
    metric_data = result.metric_data

    logging.info(f"Measured {len(result.measurements)} clusters: {result.count_status(MEASURED)} measured, "
                 f"{result.count_status(SKIPPED)} skipped, {result.count_status(FAILED)} failed, "
                 f"{result.count_status(CANCELLED)} cancelled; {len(metric_data)} metrics")

    summary.update({
        'clusters': len(result.measurements),
        'measured': result.count_status(MEASURED),
        'skipped': result.count_status(SKIPPED),
        'failed': result.count_status(FAILED),
        'cancelled': result.count_status(CANCELLED),
        'discovery_error': str(result.error) if result.error else None,
        'metrics': len(metric_data)
    })

    if not config.publish:
        logging.info(f"Publishing disabled; not sending {len(metric_data)} metrics to {config.namespace}")
        return summary

    try:
        cloudwatch_client = aws_wrapper.create_aws_client('cloudwatch')
    except (BotoCoreError, ClientError) as e:
        logging.error(f"Failed to create CloudWatch client; not sending {len(metric_data)} metrics: {e}")
        summary['client_error'] = str(e)
        return summary

    # Measurement stopped early on cancel; what it gathered is still published
    batch_results = publish(cloudwatch_client, config.namespace, metric_data)
    summary['published'] = sum(batch.size for batch in batch_results if batch.status == PUBLISHED)
    summary['batches'] = [batch.to_dict() for batch in batch_results]
    return summary


def arm_deadline(context: Any, cancel: threading.Event) -> Optional[threading.Timer]:
    """
    Set `cancel` shortly before the Lambda invocation runs out of time.

    Returns:
        threading.Timer: The started timer, or None without a Lambda deadline
    """
    get_remaining_time = getattr(context, 'get_remaining_time_in_millis', None)
    if get_remaining_time is None:
        return None

    seconds = get_remaining_time() / 1000 - CANCEL_MARGIN_SECONDS
    if seconds <= 0:
        logging.warning("Not enough time left in invocation; cancelling immediately")
        cancel.set()
        return None

    timer = threading.Timer(seconds, cancel.set)
    timer.daemon = True
    timer.start()
    logging.debug(f"Cancelling in {seconds:.1f}s unless finished")
    return timer


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler function measuring ECS cluster capacity.

    Configuration can be provided via environment variables or in the event payload.

    Args:
        event: AWS Lambda event object, can contain configuration overrides
        context: AWS Lambda context object

    Returns:
        dict: Summary of the measurement pass
    """
    cancel = threading.Event()
    timer = None
    try:
        config = load_config(event)
        logging.info(f"Starting measurement (publish={config.publish}, namespace={config.namespace}, "
                     f"max_workers={config.max_workers})")
        timer = arm_deadline(context, cancel)
        return run(config, cancel=cancel)
    except Exception as e:
        logging.error(f"Error in snitch lambda: {e}", exc_info=True)
        return {"statusCode": 500, "error": str(e)}
    finally:
        if timer is not None:
            timer.cancel()
