"""
Test utilities for the log poller.

Helpers for seeding moto CloudWatch Logs streams and building API-shaped
responses for mocked clients.
"""

from .cloudwatch_helpers import put_events, events_response, streams_response

__all__ = ['put_events', 'events_response', 'streams_response']
