"""
Debug logger for the Z.AI reasoning transformer.

Mirrors every stage of the diagnostic build to a plain-text session file:
~/.claude-code-router/logs/zai-transformer-<timestamp>.log

Lines are buffered in memory and written by a single background writer
thread, either when the buffer grows past its ceiling or when a short
debounce timer fires, so request processing never waits on disk I/O. The
file is rotated to zai-transformer-<timestamp>-part<N>.log once it reaches
the configured size.
"""

import atexit
import logging
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from config import DEFAULT_LOG_DIRECTORY, DEFAULT_MAX_LOG_SIZE
from logging_utils import colorize

logger = logging.getLogger(__name__)

# Counters wrap well below the largest integer a JSON consumer can represent exactly
COUNTER_RESET_THRESHOLD = 2 ** 53 - 1000

DEFAULT_MAX_BUFFER_LINES = 1000
DEFAULT_FLUSH_INTERVAL = 0.1  # seconds


def _session_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


def _completed_future() -> Future:
    future: Future = Future()
    future.set_result(None)
    return future


class DebugLogger:
    """Buffered, rotating, non-blocking session log with request/response counters."""

    def __init__(
        self,
        log_directory: Union[str, Path] = DEFAULT_LOG_DIRECTORY,
        max_log_size: int = DEFAULT_MAX_LOG_SIZE,
        max_buffer_lines: int = DEFAULT_MAX_BUFFER_LINES,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL,
        echo: bool = True,
        session_timestamp: Optional[str] = None,
    ):
        self.log_directory = Path(log_directory).expanduser()
        self.max_log_size = max_log_size
        self.max_buffer_lines = max_buffer_lines
        self.flush_interval = flush_interval
        self.echo = echo
        self.session_timestamp = session_timestamp or _session_timestamp()
        self.log_file = self.log_directory / f"zai-transformer-{self.session_timestamp}.log"

        # Owned by the writer thread
        self.rotation_counter = 0

        self._lock = threading.Lock()
        self._buffer: List[str] = []
        self._timer: Optional[threading.Timer] = None
        self._request_counter = 0
        self._response_counter = 0
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zai-log-writer")

        try:
            self.log_directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("   [LOG WRITE ERROR] Cannot create %s: %s", self.log_directory, exc)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def log(self, message: str = "") -> None:
        """Append one line to the buffer and echo it to the console."""
        if self.echo:
            logger.info(colorize(message))

        with self._lock:
            self._buffer.append(f"{message}\n")
            force = len(self._buffer) > self.max_buffer_lines
            if not force and self._timer is None and not self._closed:
                self._timer = threading.Timer(self.flush_interval, self._on_timer)
                self._timer.daemon = True
                self._timer.start()

        if force:
            self.flush()

    def flush(self, wait: bool = False) -> Future:
        """
        Hand the buffered lines to the writer thread.

        Chunks are submitted under the lock, so writes land in the file in the
        order they were logged. With ``wait=True`` the call blocks until every
        chunk submitted so far has been written.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

            chunk = "".join(self._buffer)
            self._buffer = []

            if self._closed:
                future = None
            else:
                future = self._executor.submit(self._write, chunk)

        if future is None:
            # Late lines after close() are written inline
            self._write(chunk)
            return _completed_future()

        if wait:
            future.result()
        return future

    def next_request_id(self) -> int:
        with self._lock:
            self._request_counter += 1
            if self._request_counter >= COUNTER_RESET_THRESHOLD:
                self._request_counter = 1
            return self._request_counter

    @property
    def current_request_id(self) -> int:
        """Id of the most recent request (responses belong to the last request seen)."""
        with self._lock:
            return self._request_counter

    def next_response_id(self) -> str:
        """Unique id for a response object: ``<epoch ms>-<counter>``."""
        with self._lock:
            self._response_counter += 1
            if self._response_counter >= COUNTER_RESET_THRESHOLD:
                self._response_counter = 1
            counter = self._response_counter
        return f"{int(time.time() * 1000)}-{counter}"

    def close(self) -> None:
        """Write everything still buffered and stop the writer thread."""
        self.flush(wait=True)
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._executor.shutdown(wait=True)
        # Lines logged between the last flush and shutdown
        self.flush()

    # ------------------------------------------------------------------
    # Writer thread
    # ------------------------------------------------------------------

    def _on_timer(self) -> None:
        with self._lock:
            self._timer = None
        self.flush()

    def _rotate_if_needed(self) -> None:
        """Rename the current file to a numbered part once it reaches the size limit."""
        try:
            if not self.log_file.exists():
                return
            size = self.log_file.stat().st_size
            if size < self.max_log_size:
                return

            self.rotation_counter += 1
            rotated = self.log_file.with_name(
                f"zai-transformer-{self.session_timestamp}-part{self.rotation_counter}.log"
            )
            os.replace(self.log_file, rotated)

            message = (
                f"   [LOG ROTATION] Size limit reached ({size / 1024 / 1024:.2f} MB) - "
                f"Continuing in: {self.log_file.name}"
            )
            if self.echo:
                logger.info(colorize(message))
            with open(self.log_file, "w", encoding="utf-8") as handle:
                handle.write(f"{message}\n   [CONTINUATION] Log file part {self.rotation_counter + 1}\n")
        except OSError as exc:
            logger.error("   [LOG ROTATION ERROR] %s", exc)

    def _write(self, chunk: str) -> None:
        if not chunk:
            return

        self._rotate_if_needed()

        try:
            with open(self.log_file, "a", encoding="utf-8") as handle:
                handle.write(chunk)
        except OSError as exc:
            logger.error("   [LOG WRITE ERROR] %s", exc)


_shared_debug_logger: Optional[DebugLogger] = None
_debug_logger_lock = threading.Lock()


def get_debug_logger(
    log_directory: Union[str, Path] = DEFAULT_LOG_DIRECTORY,
    max_log_size: int = DEFAULT_MAX_LOG_SIZE,
) -> DebugLogger:
    """Return shared debug logger (creating if needed)."""
    global _shared_debug_logger

    if _shared_debug_logger is not None:
        return _shared_debug_logger

    with _debug_logger_lock:
        if _shared_debug_logger is None:
            _shared_debug_logger = DebugLogger(log_directory=log_directory, max_log_size=max_log_size)
            atexit.register(shutdown_debug_logger)
    return _shared_debug_logger


def shutdown_debug_logger() -> None:
    """Close shared debug logger."""
    global _shared_debug_logger
    with _debug_logger_lock:
        instance, _shared_debug_logger = _shared_debug_logger, None
    if instance is not None:
        instance.close()
