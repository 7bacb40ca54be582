"""
Pydantic models for poller configuration validation
"""

import os
import re
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from log_poller.errors import ConfigurationError


# Environment variable that feeds each configuration field
ENV_VARS = {
    'tag': 'POLLER_TAG',
    'log_group_name': 'LOG_GROUP_NAME',
    'log_stream_name': 'LOG_STREAM_NAME',
    'use_log_stream_name_prefix': 'USE_LOG_STREAM_NAME_PREFIX',
    'state_file': 'STATE_FILE',
    'fetch_interval': 'FETCH_INTERVAL',
    'start_days_ago': 'START_DAYS_AGO',
    'fetch_limit': 'FETCH_LIMIT',
    'region': 'AWS_REGION',
    'aws_key_id': 'AWS_KEY_ID',
    'aws_sec_key': 'AWS_SEC_KEY',
    'http_proxy': 'HTTP_PROXY_URL',
    'parser_format': 'PARSER_FORMAT',
    'parser_expression': 'PARSER_EXPRESSION',
    'parser_time_key': 'PARSER_TIME_KEY',
    'parser_time_format': 'PARSER_TIME_FORMAT',
    'log_level': 'LOG_LEVEL',
}


def validate_aws_region(region: Optional[str]) -> Optional[str]:
    """Shared validator for AWS region format"""
    if region is not None and not region.replace('-', '').isalnum():
        raise ValueError('region must be a valid AWS region')
    return region


def validate_credential_pair(aws_key_id: Optional[str], aws_sec_key: Optional[str]) -> None:
    """Static credentials are only usable when both halves are present"""
    if bool(aws_key_id) != bool(aws_sec_key):
        raise ValueError('aws_key_id and aws_sec_key must be provided together')


def validate_parser_fields(parser_format: Optional[str], parser_expression: Optional[str]) -> None:
    """Format-specific required fields"""
    if parser_format == 'regexp' and not parser_expression:
        raise ValueError('parser_expression is required for the regexp parser')


class PollerConfig(BaseModel):
    """Settings for one poller instance (one log group, one state path)"""
    tag: str = Field(..., min_length=1, description="Tag attached to every emitted record")
    log_group_name: str = Field(..., min_length=1, max_length=512, description="CloudWatch Logs group to read")
    log_stream_name: str = Field(..., min_length=1, max_length=512, description="Stream name, or name prefix when prefix discovery is on")
    use_log_stream_name_prefix: bool = Field(default=False, description="Treat log_stream_name as a prefix and discover streams")
    state_file: str = Field(..., min_length=1, description="Base path for per-stream cursor files")
    fetch_interval: float = Field(default=60, gt=0, description="Seconds between poll cycles")
    start_days_ago: Optional[int] = Field(default=None, ge=0, description="Start-time horizon for streams without a cursor")
    fetch_limit: Optional[int] = Field(default=None, ge=1, le=10000, description="Maximum events per GetLogEvents request")
    region: Optional[str] = Field(default=None, description="AWS region for the CloudWatch Logs client")
    aws_key_id: Optional[str] = Field(default=None, repr=False, description="Static AWS access key id")
    aws_sec_key: Optional[str] = Field(default=None, repr=False, description="Static AWS secret access key")
    http_proxy: Optional[str] = Field(default=None, description="Proxy URL for CloudWatch Logs requests")
    parser_format: Optional[Literal["regexp", "none"]] = Field(default=None, description="Text parser for non-JSON message bodies")
    parser_expression: Optional[str] = Field(default=None, description="Regular expression with named groups (regexp parser)")
    parser_time_key: str = Field(default="time", min_length=1, description="Parsed field holding the event time")
    parser_time_format: Optional[str] = Field(default=None, description="strptime format for the time field (ISO-8601 when unset)")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('log_group_name')
    @classmethod
    def validate_log_group_name(cls, v):
        """Validate log group name characters"""
        if not re.fullmatch(r'[\.\-_/#A-Za-z0-9]+', v):
            raise ValueError('log_group_name may only contain alphanumerics and _-/.#')
        return v

    @field_validator('region')
    @classmethod
    def validate_region(cls, v):
        """Validate AWS region format"""
        return validate_aws_region(v)

    @field_validator('parser_expression')
    @classmethod
    def validate_parser_expression(cls, v):
        """Validate that the expression compiles"""
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f'parser_expression is not a valid regular expression: {e}')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level name"""
        v = v.upper()
        if v not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError('log_level must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL')
        return v

    def model_post_init(self, __context) -> None:
        """Validate cross-field requirements"""
        validate_credential_pair(self.aws_key_id, self.aws_sec_key)
        validate_parser_fields(self.parser_format, self.parser_expression)


def config_from_environment(environ=None) -> Dict[str, Any]:
    """
    Collect raw configuration values from environment variables

    Empty values are treated as unset so that defaults apply.
    """
    if environ is None:
        environ = os.environ

    values = {}
    for field_name, env_var in ENV_VARS.items():
        raw = environ.get(env_var)
        if raw is not None and raw.strip() != '':
            values[field_name] = raw.strip()
    return values


def load_config(overrides: Optional[Dict[str, Any]] = None, environ=None) -> PollerConfig:
    """
    Build the poller configuration from the environment plus explicit overrides

    Args:
        overrides: Values that take precedence over the environment (e.g. CLI arguments);
                   None entries are ignored
        environ: Mapping to read instead of os.environ

    Returns:
        Validated PollerConfig

    Raises:
        ConfigurationError: If required settings are missing or invalid
    """
    values = config_from_environment(environ)
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        return PollerConfig(**values)
    except ValidationError as e:
        problems = '; '.join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid poller configuration: {problems}") from e
    except ValueError as e:
        raise ConfigurationError(f"Invalid poller configuration: {str(e)}") from e
