import logging
import boto3
from botocore.exceptions import ClientError
from botocore.config import Config
from retry import retry

RETRIES_NUMBER = 3
MAX_POOL_CONNECTIONS = 10


class AWSWrapper:
    """
    Wrapper class for creating boto3 clients with retry capabilities.

    Sessions are not thread-safe, so clients should be created here in the
    calling thread and then shared with worker threads.
    """

    def __init__(self, aws_access_key_id: str = None, aws_secret_access_key: str = None,
                 aws_session_token: str = None, sso_profile_name: str = None,
                 region_name: str = None, max_pool_connections: int = MAX_POOL_CONNECTIONS):
        self._region_name = region_name
        self._max_pool_connections = max(max_pool_connections, MAX_POOL_CONNECTIONS)
        self._session = self._create_boto_session(aws_access_key_id, aws_secret_access_key,
                                                  aws_session_token, sso_profile_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def _create_boto_session(self, aws_access_key_id: str = None, aws_secret_access_key: str = None,
                             aws_session_token: str = None, sso_profile_name: str = None):
        logging.debug("Creating boto3 session via " + ("SSO profile name" if sso_profile_name else "default credentials"))
        return boto3.session.Session(profile_name=sso_profile_name, region_name=self._region_name) \
            if sso_profile_name else boto3.session.Session(aws_access_key_id, aws_secret_access_key,
                                                           aws_session_token, region_name=self._region_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def create_aws_client(self, service_name: str, region_name: str = None, config=None):
        """
        Create a boto3 client with retry capability.

        Args:
            service_name: AWS service name ('ecs', 'cloudwatch', etc.)
            region_name: Optional AWS region override
            config: Optional boto3 configuration

        Returns:
            Boto3 client for the requested service
        """
        logging.debug(f'creating aws client for: {service_name}')

        # One connection per worker thread sharing this client
        default_config = Config(
            max_pool_connections=self._max_pool_connections
        )
        return self._session.client(service_name=service_name, region_name=region_name,
                                    config=config or default_config)
