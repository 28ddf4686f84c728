import os
from typing import Dict, Any, Optional, NamedTuple

DEFAULT_NAMESPACE = 'ECS/Snitch'
DEFAULT_MAX_WORKERS = 10

TRUTHY = ('true', '1', 't', 'yes')


class Config(NamedTuple):
    """Configuration for one measurement pass."""
    # CloudWatch configuration
    namespace: str
    publish: bool

    # Concurrency
    max_workers: int

    # AWS configuration
    region: Optional[str]
    sso_profile: Optional[str]


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in TRUTHY


def parse_max_workers(value: Any) -> int:
    max_workers = int(value)
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")
    return max_workers


def load_config(event: Dict[str, Any] = None) -> Config:
    """
    Load configuration from environment variables and optional event payload.

    Event payload values override environment variables when present.

    Args:
        event: Optional Lambda event that may contain configuration overrides

    Returns:
        Config: Configuration object with all snitch settings

    Raises:
        ValueError: If max_workers is not a positive integer
    """
    event = event or {}
    config_from_event = event.get('config', {})

    # CloudWatch configuration
    namespace = config_from_event.get('namespace') or os.environ.get('METRICS_NAMESPACE', DEFAULT_NAMESPACE)
    publish = config_from_event.get('publish')
    if publish is None:
        publish = os.environ.get('PUBLISH_METRICS', 'False')
    publish = parse_bool(publish)

    # Concurrency
    max_workers = config_from_event.get('max_workers')
    if max_workers is None:
        max_workers = os.environ.get('MAX_WORKERS', str(DEFAULT_MAX_WORKERS))
    max_workers = parse_max_workers(max_workers)

    # AWS configuration, left unset so boto3 can resolve it from ~/.aws/config
    region = config_from_event.get('region') or os.environ.get('AWS_REGION')
    sso_profile = config_from_event.get('sso_profile') or os.environ.get('SSO_PROFILE')

    return Config(
        namespace=namespace,
        publish=publish,
        max_workers=max_workers,
        region=region,
        sso_profile=sso_profile
    )
