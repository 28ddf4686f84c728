"""
Command line entry point.

    snitch                      # measure only, publish nothing
    snitch -p -n ECS/Capacity   # measure and publish
"""
import argparse
import json
import os

from snitch.common.logger import setup_logging
from snitch.config import Config, DEFAULT_NAMESPACE, load_config, parse_max_workers
from snitch.main import run


def parse_args(argv=None) -> argparse.Namespace:
    defaults = load_config()
    parser = argparse.ArgumentParser(
        prog='snitch',
        description='Measure how many containers ECS clusters can schedule, '
                    'optionally publishing findings to CloudWatch'
    )
    parser.add_argument('-n', '--namespace', default=defaults.namespace,
                        help=f'metrics namespace in CloudWatch (default: {DEFAULT_NAMESPACE})')
    parser.add_argument('-p', '--publish', action='store_true',
                        help='do publish findings to CloudWatch (never done without this flag)')
    parser.add_argument('-r', '--region', default=defaults.region,
                        help='AWS region; resolved by boto3 when omitted')
    parser.add_argument('--profile', dest='sso_profile', default=defaults.sso_profile,
                        help='AWS profile to use instead of default credentials')
    parser.add_argument('-w', '--max-workers', type=parse_max_workers, default=defaults.max_workers,
                        help='clusters measured at once')
    parser.add_argument('--log-level', default=os.environ.get('LOG_LEVEL', 'INFO'),
                        help='logging level (default: INFO)')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)
    config = Config(
        namespace=args.namespace,
        publish=args.publish,
        max_workers=args.max_workers,
        region=args.region,
        sso_profile=args.sso_profile
    )
    summary = run(config)
    print(json.dumps(summary, indent=2))


if __name__ == '__main__':
    main()
