import logging
import boto3
from botocore.exceptions import ClientError
from botocore.config import Config
from retry import retry

RETRIES_NUMBER = 3
REGION = 'us-east-1'
DEFAULT_TIMEOUT = 10


class AWSWrapper:
    """
    Wrapper class for AWS session and client creation with retry capabilities
    """

    def __init__(self, aws_access_key_id: str = None, aws_secret_access_key: str = None,
                 aws_session_token: str = None, sso_profile_name: str = None,
                 region_name: str = None, timeout: float = DEFAULT_TIMEOUT):
        self._region_name = region_name or REGION
        self._timeout = timeout
        self._session = self._create_boto_session(aws_access_key_id, aws_secret_access_key,
                                                  aws_session_token, sso_profile_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def _create_boto_session(self, aws_access_key_id: str = None, aws_secret_access_key: str = None,
                             aws_session_token: str = None, sso_profile_name: str = None):
        logging.debug("Creating boto3 session via " + ("SSO profile name" if sso_profile_name else "AWS access key"))
        return boto3.session.Session(profile_name=sso_profile_name, region_name=self._region_name) \
            if sso_profile_name else boto3.session.Session(aws_access_key_id, aws_secret_access_key,
                                                           aws_session_token, region_name=self._region_name)

    @retry(exceptions=ClientError, tries=RETRIES_NUMBER, delay=3)
    def create_aws_client(self, service_name: str, region_name: str = None, config=None):
        """
        Create a boto3 client with retry capability.

        Calls made through the client are bounded by the wrapper's timeout and
        are not retried by botocore; a failed call fails the scaling cycle.

        Args:
            service_name: AWS service name ('ecs', 'sqs', etc.)
            region_name: Optional AWS region override
            config: Optional boto3 configuration

        Returns:
            Boto3 client for the requested service
        """
        logging.debug(f'creating aws client for: {service_name}')

        default_config = Config(
            connect_timeout=self._timeout,
            read_timeout=self._timeout,
            retries={'max_attempts': 0}
        )
        return self._session.client(service_name=service_name, region_name=region_name,
                                    config=config or default_config)
