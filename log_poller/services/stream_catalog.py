"""
Resolution of the log streams to poll in each cycle
"""

import logging
from typing import Iterator, List, Optional

from log_poller.models.events import LogStreamDescriptor
from log_poller.services.cloudwatch import REMOTE_ERRORS, to_remote_error

logger = logging.getLogger(__name__)


class StreamCatalog:
    """
    Returns either the single configured stream or every stream matching a name prefix.

    In prefix mode, streams whose newest event is older than the start-time
    horizon (or which have no events at all) are skipped, since they cannot
    contain anything past the horizon.
    """

    def __init__(self, logs_client, log_group_name: str, log_stream_name: str,
                 use_prefix: bool = False, from_event_timestamp: Optional[int] = None):
        self.logs_client = logs_client
        self.log_group_name = log_group_name
        self.log_stream_name = log_stream_name
        self.use_prefix = use_prefix
        self.from_event_timestamp = from_event_timestamp

    def resolve(self) -> List[LogStreamDescriptor]:
        """
        Resolve the streams for one poll cycle

        Raises:
            TransientRemoteError: If a DescribeLogStreams call fails
        """
        if not self.use_prefix:
            return [LogStreamDescriptor(log_stream_name=self.log_stream_name)]

        streams = list(self.iter_streams())
        logger.info(f"Discovered {len(streams)} log streams in '{self.log_group_name}' with prefix '{self.log_stream_name}'")
        return streams

    def iter_streams(self) -> Iterator[LogStreamDescriptor]:
        """Page through DescribeLogStreams until no continuation token is returned"""
        next_token = None

        while True:
            request = {
                'logGroupName': self.log_group_name,
                'logStreamNamePrefix': self.log_stream_name
            }
            if next_token:
                request['nextToken'] = next_token

            try:
                response = self.logs_client.describe_log_streams(**request)
            except REMOTE_ERRORS as e:
                raise to_remote_error('DescribeLogStreams', e) from e

            for stream in response.get('logStreams', []):
                descriptor = LogStreamDescriptor.from_api(stream)
                if self.is_recent(descriptor):
                    yield descriptor
                else:
                    logger.debug(f"Skipping stream '{descriptor.log_stream_name}': no events since {self.from_event_timestamp}")

            next_token = response.get('nextToken')
            if not next_token:
                break

    def is_recent(self, stream: LogStreamDescriptor) -> bool:
        """Whether a stream can hold events at or after the start-time horizon"""
        if self.from_event_timestamp is None:
            return True
        return (stream.last_event_timestamp is not None
                and stream.last_event_timestamp >= self.from_event_timestamp)
