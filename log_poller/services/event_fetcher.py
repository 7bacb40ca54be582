"""
Single-page GetLogEvents reads driven by persisted cursors
"""

import logging
from typing import Callable, List, Optional

from log_poller.errors import TransientRemoteError
from log_poller.models.events import FetchResult, LogEvent
from log_poller.services.cloudwatch import REMOTE_ERRORS, to_remote_error
from log_poller.services.cursor_store import CursorStore

logger = logging.getLogger(__name__)


class EventFetcher:
    """
    Reads one page of events per stream per call.

    The stored cursor always wins over the start-time horizon; the horizon is
    only sent for streams that have never been fetched.
    """

    def __init__(self, logs_client, cursor_store: CursorStore, log_group_name: str,
                 from_event_timestamp: Optional[int] = None, limit: Optional[int] = None):
        self.logs_client = logs_client
        self.cursor_store = cursor_store
        self.log_group_name = log_group_name
        self.from_event_timestamp = from_event_timestamp
        self.limit = limit

    def build_request(self, log_stream_name: str, cursor: Optional[str] = None) -> dict:
        """Build GetLogEvents parameters for a stream"""
        # startFromHead must be true when replaying a nextForwardToken
        request = {
            'logGroupName': self.log_group_name,
            'logStreamName': log_stream_name,
            'startFromHead': True
        }
        if cursor:
            request['nextToken'] = cursor
        elif self.from_event_timestamp is not None:
            request['startTime'] = self.from_event_timestamp
        if self.limit:
            request['limit'] = self.limit
        return request

    def fetch(self, log_stream_name: str, cursor: Optional[str] = None) -> FetchResult:
        """
        Issue exactly one GetLogEvents request

        Returns:
            The events of that page and the nextForwardToken, which is present
            even when the page is empty

        Raises:
            TransientRemoteError: If the call fails or the response has no forward token
        """
        request = self.build_request(log_stream_name, cursor)
        logger.debug(f"GetLogEvents for stream '{log_stream_name}' (token: {'yes' if 'nextToken' in request else 'no'}, startTime: {request.get('startTime')})")

        try:
            response = self.logs_client.get_log_events(**request)
        except REMOTE_ERRORS as e:
            raise to_remote_error('GetLogEvents', e) from e

        next_forward_token = response.get('nextForwardToken')
        if not next_forward_token:
            raise TransientRemoteError(f"GetLogEvents response for stream '{log_stream_name}' has no nextForwardToken")

        events = [LogEvent.from_api(event) for event in response.get('events', [])]
        return FetchResult(events=events, next_forward_token=next_forward_token)

    def poll_stream(self, log_stream_name: str,
                    handle_events: Callable[[List[LogEvent], str], int]) -> int:
        """
        Run one load-fetch-emit-persist unit for a stream

        The new cursor is stored only after handle_events returned, so a failed
        fetch or emit leaves the previous cursor in place.

        Returns:
            Whatever handle_events reports (number of records emitted)
        """
        cursor = self.cursor_store.load(log_stream_name)
        result = self.fetch(log_stream_name, cursor)

        emitted = handle_events(result.events, log_stream_name)

        self.cursor_store.save(log_stream_name, result.next_forward_token)
        logger.debug(f"Stream '{log_stream_name}': {len(result.events)} events fetched, {emitted} records emitted")
        return emitted
