"""
Conversion of CloudWatch log events into tagged records for the downstream router
"""

import json
import logging
from typing import Any, Dict, List, Optional

from log_poller.errors import ParseError
from log_poller.handlers.parsers import ParsedRecord, TextParser
from log_poller.handlers.router import Router
from log_poller.models.events import LogEvent

logger = logging.getLogger(__name__)

# Field that records which stream an event came from
STREAM_KEY = '_stream'


class RecordEmitter:
    """
    Turns each event into zero or more records and hands them to the router.

    Without a text parser the message body must be a JSON object and the
    record time is the event timestamp in whole seconds. With a parser, the
    parser decides the fields and (optionally) the time.
    """

    def __init__(self, router: Router, tag: str, parser: Optional[TextParser] = None,
                 stream_key: str = STREAM_KEY):
        self.router = router
        self.tag = tag
        self.parser = parser
        self.stream_key = stream_key
        self._extract = self._parse_with_parser if parser is not None else self._parse_json_body

    def _parse_json_body(self, event: LogEvent) -> List[ParsedRecord]:
        try:
            record = json.loads(event.message)
        except json.JSONDecodeError as e:
            raise ParseError(f"Message is not valid JSON: {str(e)}") from e
        if not isinstance(record, dict):
            raise ParseError(f"Message is JSON but not an object: {type(record).__name__}")
        return [(event.timestamp_seconds, record)]

    def _parse_with_parser(self, event: LogEvent) -> List[ParsedRecord]:
        try:
            return self.parser.parse(event.message)
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(f"Parser failed: {str(e)}") from e

    def emit(self, event: LogEvent, log_stream_name: Optional[str] = None) -> int:
        """
        Emit the records derived from one event

        Returns:
            Number of records handed to the router

        Raises:
            ParseError: If the message body cannot be parsed
        """
        emitted = 0
        for event_time, fields in self._extract(event):
            record: Dict[str, Any] = dict(fields)
            if log_stream_name:
                record[self.stream_key] = log_stream_name
            if event_time is None:
                event_time = event.timestamp_seconds
            self.router.emit(self.tag, event_time, record)
            emitted += 1
        return emitted

    def emit_events(self, events: List[LogEvent], log_stream_name: Optional[str] = None) -> int:
        """
        Emit a page of events, dropping only the ones that fail to parse

        Returns:
            Number of records handed to the router
        """
        emitted = 0
        dropped = 0
        for event in events:
            try:
                emitted += self.emit(event, log_stream_name)
            except ParseError as e:
                dropped += 1
                logger.warning(f"Dropping event at {event.timestamp} from stream '{log_stream_name}': {str(e)}")

        if dropped:
            logger.info(f"Stream '{log_stream_name}': dropped {dropped} of {len(events)} events that could not be parsed")
        return emitted
