#!/usr/bin/env python3
"""
Incremental CloudWatch Logs poller
Resolves streams, fetches one page per stream per cycle, emits records and persists cursors
"""

import argparse
import enum
import logging
import signal
import sys
import threading
import time
from typing import Callable, Dict, List, Optional

from log_poller.errors import ConfigurationError, PersistenceError, PollerError, TransientRemoteError
from log_poller.handlers.emitter import RecordEmitter
from log_poller.handlers.parsers import build_parser
from log_poller.handlers.router import JsonLinesRouter, Router
from log_poller.models.config import PollerConfig, load_config
from log_poller.services.cloudwatch import create_logs_client
from log_poller.services.cursor_store import CursorStore
from log_poller.services.event_fetcher import EventFetcher
from log_poller.services.stream_catalog import StreamCatalog
from log_poller.utils.logger import setup_logging

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class Phase(enum.Enum):
    IDLE = 'idle'
    RESOLVING = 'resolving'
    FETCHING = 'fetching'
    STOPPING = 'stopping'


class Ticker:
    """
    Fixed-interval ticker on the monotonic clock.

    Fire times advance by exactly one interval per tick, so a cycle that
    overruns is followed by an immediate catch-up tick instead of a skipped one.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self.next_fire = clock()

    def wait(self, stop_event: threading.Event) -> bool:
        """Block until the next tick; False if a stop was requested instead"""
        delay = self.next_fire - self.clock()
        if delay > 0 and stop_event.wait(delay):
            return False
        if stop_event.is_set():
            return False
        self.next_fire += self.interval
        return True


class SchedulerState:
    """Mutable loop state, only changed by the scheduler loop (stop_event excepted)"""

    def __init__(self, ticker: Ticker):
        self.ticker = ticker
        self.phase = Phase.IDLE
        self.cycles = 0
        self.stop_event = threading.Event()


def compute_start_timestamp(start_days_ago: Optional[int], now: Optional[float] = None) -> Optional[int]:
    """
    Start-time horizon in epoch milliseconds, truncated to whole seconds

    Returns None when no horizon is configured.
    """
    if start_days_ago is None:
        return None
    if now is None:
        now = time.time()
    return int(now - start_days_ago * SECONDS_PER_DAY) * 1000


class PollScheduler:
    """
    Drives StreamCatalog -> EventFetcher -> RecordEmitter -> CursorStore once per interval.

    Streams are polled sequentially. A stop request is honoured between
    streams, never in the middle of one stream's fetch-emit-persist unit.
    """

    def __init__(self, catalog: StreamCatalog, fetcher: EventFetcher, emitter: RecordEmitter,
                 fetch_interval: float, clock: Callable[[], float] = time.monotonic):
        self.catalog = catalog
        self.fetcher = fetcher
        self.emitter = emitter
        self.state = SchedulerState(Ticker(fetch_interval, clock))
        self._thread = None

    @property
    def stopping(self) -> bool:
        return self.state.stop_event.is_set()

    def run_cycle(self) -> Dict[str, int]:
        """
        Poll every resolved stream once

        Returns:
            Cycle statistics: streams, successful_streams, failed_streams, events_emitted
        """
        stats = {'streams': 0, 'successful_streams': 0, 'failed_streams': 0, 'events_emitted': 0}

        self.state.phase = Phase.RESOLVING
        try:
            streams = self.catalog.resolve()
        except PollerError as e:
            logger.warning(f"Could not resolve log streams, skipping this cycle: {str(e)}")
            self.state.phase = Phase.IDLE
            return stats
        except Exception as e:
            logger.error(f"Unexpected error resolving log streams, skipping this cycle: {str(e)}", exc_info=True)
            self.state.phase = Phase.IDLE
            return stats

        self.state.phase = Phase.FETCHING
        for stream in streams:
            if self.stopping:
                logger.info("Shutdown requested, leaving remaining streams for the next run")
                break

            stats['streams'] += 1
            log_stream_name = stream.log_stream_name
            try:
                stats['events_emitted'] += self.fetcher.poll_stream(log_stream_name, self.emitter.emit_events)
                stats['successful_streams'] += 1
            except TransientRemoteError as e:
                logger.warning(f"Fetch failed for stream '{log_stream_name}' (code: {e.error_code}), retrying next cycle: {str(e)}")
                stats['failed_streams'] += 1
            except PersistenceError as e:
                logger.error(f"Cursor persistence failed for stream '{log_stream_name}', keeping previous cursor: {str(e)}")
                stats['failed_streams'] += 1
            except Exception as e:
                logger.error(f"Unexpected error polling stream '{log_stream_name}': {str(e)}", exc_info=True)
                stats['failed_streams'] += 1

        self.state.phase = Phase.STOPPING if self.stopping else Phase.IDLE
        return stats

    def run(self) -> None:
        """Run cycles until stop() is called"""
        logger.info(f"Starting poll loop (interval: {self.state.ticker.interval}s)")

        while self.state.ticker.wait(self.state.stop_event):
            stats = self.run_cycle()
            self.state.cycles += 1
            logger.info(f"Cycle {self.state.cycles} complete. Streams: {stats['streams']} "
                        f"(Success: {stats['successful_streams']}, Failed: {stats['failed_streams']}), "
                        f"Records emitted: {stats['events_emitted']}")

        self.state.phase = Phase.STOPPING
        logger.info(f"Poll loop stopped after {self.state.cycles} cycles")

    def stop(self) -> None:
        """Request a graceful stop; the current stream unit is allowed to finish"""
        self.state.stop_event.set()

    def start(self) -> None:
        """Run the poll loop on a dedicated thread"""
        self._thread = threading.Thread(target=self.run, name='log-poller')
        self._thread.start()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the loop and wait for the poller thread to exit"""
        self.stop()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def build_scheduler(config: PollerConfig, router: Optional[Router] = None, logs_client=None) -> PollScheduler:
    """Wire all poller components from a validated configuration"""
    if logs_client is None:
        logs_client = create_logs_client(config)
    if router is None:
        router = JsonLinesRouter()

    # Computed once; never re-derived per cycle
    from_event_timestamp = compute_start_timestamp(config.start_days_ago)
    if from_event_timestamp is not None:
        logger.info(f"Streams without a cursor start at {from_event_timestamp} ({config.start_days_ago} days ago)")

    catalog = StreamCatalog(
        logs_client,
        config.log_group_name,
        config.log_stream_name,
        use_prefix=config.use_log_stream_name_prefix,
        from_event_timestamp=from_event_timestamp
    )
    fetcher = EventFetcher(
        logs_client,
        CursorStore(config.state_file),
        config.log_group_name,
        from_event_timestamp=from_event_timestamp,
        limit=config.fetch_limit
    )
    emitter = RecordEmitter(router, config.tag, parser=build_parser(config))
    return PollScheduler(catalog, fetcher, emitter, config.fetch_interval)


def setup_signal_handlers(scheduler: PollScheduler) -> None:
    """Setup signal handlers for graceful shutdown"""
    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down after the current stream...")
        scheduler.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Incremental CloudWatch Logs poller')
    parser.add_argument('--tag', help='Tag for emitted records (POLLER_TAG)')
    parser.add_argument('--log-group-name', help='Log group to read (LOG_GROUP_NAME)')
    parser.add_argument('--log-stream-name', help='Log stream name or prefix (LOG_STREAM_NAME)')
    parser.add_argument('--use-log-stream-name-prefix', action='store_true', default=None,
                        help='Discover streams by name prefix (USE_LOG_STREAM_NAME_PREFIX)')
    parser.add_argument('--state-file', help='Base path for cursor files (STATE_FILE)')
    parser.add_argument('--fetch-interval', type=float, help='Seconds between cycles (FETCH_INTERVAL)')
    parser.add_argument('--start-days-ago', type=int, help='Start-time horizon for new streams (START_DAYS_AGO)')
    parser.add_argument('--fetch-limit', type=int, help='Maximum events per request (FETCH_LIMIT)')
    parser.add_argument('--region', help='AWS region (AWS_REGION)')
    parser.add_argument('--http-proxy', help='Proxy URL (HTTP_PROXY_URL)')
    parser.add_argument('--parser-format', choices=['regexp', 'none'], help='Text parser (PARSER_FORMAT)')
    parser.add_argument('--parser-expression', help='Regular expression for the regexp parser (PARSER_EXPRESSION)')
    parser.add_argument('--log-level', help='Logging level (LOG_LEVEL)')
    parser.add_argument('--once', action='store_true', help='Run a single cycle and exit')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for standalone execution
    """
    args = parse_args(argv)

    overrides = {key: value for key, value in vars(args).items() if key != 'once'}
    try:
        config = load_config(overrides)
    except ConfigurationError as e:
        setup_logging()
        logger.error(str(e))
        return 1

    setup_logging(config.log_level)
    try:
        scheduler = build_scheduler(config)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    if args.once:
        stats = scheduler.run_cycle()
        logger.info(f"Single cycle complete. Streams: {stats['streams']}, Failed: {stats['failed_streams']}, Records emitted: {stats['events_emitted']}")
        return 0 if stats['failed_streams'] == 0 else 2

    setup_signal_handlers(scheduler)
    scheduler.run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
