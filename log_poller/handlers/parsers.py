"""
Text parsers for message bodies that are not JSON objects

A parser turns one message body into zero or more (time, fields) pairs.
A time of None means "use the CloudWatch event timestamp".
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from log_poller.errors import ParseError
from log_poller.models.config import PollerConfig

ParsedRecord = Tuple[Optional[int], Dict[str, Any]]


class TextParser(Protocol):
    def parse(self, text: str) -> List[ParsedRecord]:
        ...


def parse_time_value(value: str, time_format: Optional[str] = None) -> int:
    """
    Convert a parsed time field into epoch seconds

    Handles strptime formats, ISO-8601 strings (trailing 'Z' allowed) and
    numeric epoch values in seconds or milliseconds. Naive times are UTC.
    """
    value = value.strip()
    try:
        if time_format:
            dt = datetime.strptime(value, time_format)
        elif value.replace('.', '', 1).isdigit():
            ts_value = float(value)
            # Values above 1e12 are already milliseconds
            if ts_value > 1000000000000.0:
                return int(ts_value // 1000)
            return int(ts_value)
        else:
            if value.endswith('Z'):
                value = value[:-1] + '+00:00'
            dt = datetime.fromisoformat(value)
    except ValueError as e:
        raise ParseError(f"Unparseable time value {value!r}: {str(e)}") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


class RegexpParser:
    """Extracts fields from named groups of a regular expression"""

    def __init__(self, expression: str, time_key: str = 'time', time_format: Optional[str] = None):
        self.regex = re.compile(expression)
        self.time_key = time_key
        self.time_format = time_format

    def parse(self, text: str) -> List[ParsedRecord]:
        match = self.regex.search(text)
        if match is None:
            return []

        fields = {key: value for key, value in match.groupdict().items() if value is not None}
        time_value = fields.pop(self.time_key, None)
        event_time = parse_time_value(time_value, self.time_format) if time_value is not None else None
        return [(event_time, fields)]


class NoneParser:
    """Keeps the whole body as a single 'message' field"""

    def parse(self, text: str) -> List[ParsedRecord]:
        return [(None, {'message': text.rstrip('\n')})]


def build_parser(config: PollerConfig) -> Optional[TextParser]:
    """Build the configured text parser, or None for JSON message bodies"""
    if config.parser_format is None:
        return None
    if config.parser_format == 'regexp':
        return RegexpParser(config.parser_expression, config.parser_time_key, config.parser_time_format)
    return NoneParser()
