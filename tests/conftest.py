"""
Test configuration and fixtures for unit tests
"""
import pytest
import os
import boto3
from unittest.mock import Mock
from moto import mock_aws


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def mock_aws_services(aws_credentials):
    """Mock all AWS services."""
    with mock_aws():
        yield


@pytest.fixture
def environment_variables():
    """Set up poller environment variables."""
    test_env = {
        'POLLER_TAG': 'cloudwatch.test',
        'LOG_GROUP_NAME': '/aws/test/app',
        'LOG_STREAM_NAME': 'app-stream',
        'STATE_FILE': '/tmp/log-poller-test/state',
        'FETCH_INTERVAL': '30',
        'AWS_REGION': 'us-east-1'
    }

    # Store original values
    original_env = {}
    for key, value in test_env.items():
        original_env[key] = os.environ.get(key)
        os.environ[key] = value

    yield test_env

    # Restore original values
    for key, value in original_env.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def state_file(tmp_path):
    """Base path for cursor files inside a per-test directory"""
    return str(tmp_path / 'state' / 'cursor')


@pytest.fixture
def mock_logs_client():
    """CloudWatch Logs client double with an empty page by default"""
    client = Mock()
    client.get_log_events.return_value = {
        'events': [],
        'nextForwardToken': 'f/empty',
        'nextBackwardToken': 'b/empty'
    }
    client.describe_log_streams.return_value = {'logStreams': []}
    return client


@pytest.fixture
def mock_router():
    """Downstream router double recording emit calls"""
    return Mock()


@pytest.fixture
def logs_client(mock_aws_services):
    """Moto-backed CloudWatch Logs client with a log group and three streams"""
    client = boto3.client('logs', region_name='us-east-1')
    client.create_log_group(logGroupName='/aws/test/app')
    for stream in ['app-1', 'app-2', 'other-1']:
        client.create_log_stream(logGroupName='/aws/test/app', logStreamName=stream)
    return client
