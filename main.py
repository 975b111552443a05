#!/usr/bin/env python3
"""logplot — tail a log file and serve numeric samples to live plot clients."""

import argparse
import logging
import os
import signal
import sys
import threading

from apscheduler.schedulers.background import BackgroundScheduler
from watchdog.observers import Observer

from logplot.config import ConfigError, load_config, resolve_log_level
from logplot.cursors import CursorTracker
from logplot.extractor import Extractor
from logplot.ingest import FileChangeNotifier, IngestLoop
from logplot.patterns import load_pattern_set
from logplot.retention import RetentionBuffer
from logplot.stats import IngestStats
from logplot.tailer import FileTailer
from logplot.web import create_app, run_server

logger = logging.getLogger("logplot")


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live log plotter")
    parser.add_argument("-i", "--log-file", required=True, help="The input log file")
    parser.add_argument("-c", "--config", required=True, help="Plot config file in YAML")
    parser.add_argument(
        "-d", "--max-duration", type=float, default=None,
        help="Maximum retained history in seconds of log time (default: unbounded)",
    )
    parser.add_argument(
        "-b", "--from-beginning", action="store_true",
        help="Read the log from its start instead of only new lines",
    )
    parser.add_argument("--host", default=None, help="HTTP bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="HTTP port (default: 3030)")
    parser.add_argument("--static-dir", default=None, help="Directory with the dashboard page")
    return parser


def main(argv=None) -> int:
    try:
        level = resolve_log_level(os.environ.get("LOG_LEVEL", "INFO"))
        level_error = None
    except ConfigError as e:
        level, level_error = logging.INFO, e
    logging.basicConfig(
        level=level,
        format="%(asctime)s [LOGPLOT] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    args = build_cli_parser().parse_args(argv)
    try:
        if level_error is not None:
            raise level_error
        config = load_config(args)
        pattern_set = load_pattern_set(config.config_file)
        tailer = FileTailer(config.log_file, config.from_beginning, config.chunk_size)
        tailer.open()
    except (ConfigError, OSError) as e:
        logger.error("Startup failed: %s", e)
        return 1

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    buffer = RetentionBuffer(config.max_duration)
    cursors = CursorTracker()
    stats = IngestStats()
    loop = IngestLoop(
        tailer, Extractor(pattern_set), buffer, shutdown_event,
        poll_interval=config.poll_interval, stats=stats, stats_period=config.stats_period,
    )

    notifier = FileChangeNotifier(config.log_file, loop.wake)
    observer = Observer()
    observer.schedule(notifier, notifier.watched_dir, recursive=False)
    observer.start()

    scheduler = BackgroundScheduler()
    scheduler.add_job(cursors.reap, "interval", seconds=max(config.cursor_idle_seconds / 2, 1.0),
                      args=[config.cursor_idle_seconds])
    scheduler.start()

    app = create_app(pattern_set, buffer, cursors, stats, config.static_dir)
    web_thread = threading.Thread(target=run_server, args=(app, config.host, config.port), daemon=True)
    web_thread.start()
    logger.info("Serving on http://%s:%d (max duration: %s)",
                config.host, config.port, config.max_duration or "unbounded")

    try:
        loop.run()
    finally:
        logger.info("Shutting down...")
        scheduler.shutdown(wait=False)
        observer.stop()
        observer.join(timeout=5)
        tailer.close()

    logger.info("Finish")
    return 0


if __name__ == "__main__":
    sys.exit(main())
