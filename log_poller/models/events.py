"""
Pydantic models for CloudWatch Logs events, streams and fetch results
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LogEvent(BaseModel):
    """One log record as stored in CloudWatch Logs"""
    model_config = ConfigDict(frozen=True)

    timestamp: int = Field(..., description="Event time in epoch milliseconds, assigned by CloudWatch")
    message: str = Field(..., description="Raw message body")
    ingestion_time: Optional[int] = Field(default=None, description="Ingestion time in epoch milliseconds")

    @property
    def timestamp_seconds(self) -> int:
        """Event time truncated to whole seconds"""
        return self.timestamp // 1000

    @classmethod
    def from_api(cls, event: Dict[str, Any]) -> "LogEvent":
        """Build from a GetLogEvents response entry"""
        return cls(
            timestamp=event['timestamp'],
            message=event.get('message', ''),
            ingestion_time=event.get('ingestionTime')
        )


class LogStreamDescriptor(BaseModel):
    """A log stream to poll, with the recency information discovery provides"""
    model_config = ConfigDict(frozen=True)

    log_stream_name: str = Field(..., min_length=1, description="Stream name within the log group")
    last_event_timestamp: Optional[int] = Field(default=None, description="Epoch milliseconds of the newest event")

    @classmethod
    def from_api(cls, stream: Dict[str, Any]) -> "LogStreamDescriptor":
        """Build from a DescribeLogStreams response entry"""
        return cls(
            log_stream_name=stream['logStreamName'],
            last_event_timestamp=stream.get('lastEventTimestamp')
        )


class FetchResult(BaseModel):
    """Events returned by a single GetLogEvents request and the cursor that follows them"""
    events: List[LogEvent] = Field(default_factory=list)
    next_forward_token: str = Field(..., min_length=1)
