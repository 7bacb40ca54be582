"""
CloudWatch Logs client construction and error translation
"""

import logging
from typing import Any, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from log_poller.errors import ConfigurationError, TransientRemoteError
from log_poller.models.config import PollerConfig

logger = logging.getLogger(__name__)

# AWS errors raised by the CloudWatch Logs read calls
REMOTE_ERRORS = (ClientError, BotoCoreError)


def create_logs_client(config: PollerConfig):
    """
    Create the CloudWatch Logs client from region, static credentials and proxy settings

    Anything not configured falls back to the default boto3 credential and region chain.
    """
    client_config: Dict[str, Any] = {}

    if config.region:
        client_config['region_name'] = config.region

    if config.aws_key_id and config.aws_sec_key:
        client_config['aws_access_key_id'] = config.aws_key_id
        client_config['aws_secret_access_key'] = config.aws_sec_key

    if config.http_proxy:
        client_config['config'] = Config(proxies={
            'http': config.http_proxy,
            'https': config.http_proxy
        })

    logger.info(f"Creating CloudWatch Logs client (region: {config.region or 'default'}, proxy: {'yes' if config.http_proxy else 'no'})")
    try:
        return boto3.client('logs', **client_config)
    except BotoCoreError as e:
        # e.g. NoRegionError when neither config nor environment name a region
        raise ConfigurationError(f"Cannot create CloudWatch Logs client: {str(e)}") from e


def to_remote_error(operation: str, error: Exception) -> TransientRemoteError:
    """Translate a botocore exception into a TransientRemoteError carrying the AWS error code"""
    error_code = None
    if isinstance(error, ClientError):
        error_code = error.response.get('Error', {}).get('Code')
    return TransientRemoteError(f"{operation} failed: {str(error)}", error_code=error_code)
