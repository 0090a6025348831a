"""Throttling and retry helpers for calls to the AI provider."""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import groq
import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 502, 503, 504}
RETRYABLE_MESSAGES = ('timeout', 'temporarily unavailable', 'rate limit')
WINDOW_SECONDS = 60


class RequestQueue:
    """FIFO queue that runs calls one at a time within a per-minute budget.

    Each call waits until the current minute window has budget left and at
    least `min_delay` seconds have passed since the previous call.
    """

    def __init__(self, rate_limit=60, min_delay=1.0, clock=time.monotonic, sleep=time.sleep):
        self.rate_limit = rate_limit
        self.min_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._executor = None
        self._executor_lock = threading.Lock()

        self.request_count = 0
        self.window_start = clock()
        self.last_request_time = None

    def configure(self, rate_limit=None, min_delay=None):
        if rate_limit is not None:
            self.rate_limit = rate_limit
        if min_delay is not None:
            self.min_delay = min_delay

    def _worker(self):
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='ai-queue')
            return self._executor

    def add(self, fn, *args, **kwargs):
        """Queue `fn` and block until it has run; returns its result or raises"""
        future = self._worker().submit(self._run, fn, args, kwargs)
        return future.result()

    def _run(self, fn, args, kwargs):
        self._wait_for_slot()
        self.request_count += 1
        self.last_request_time = self._clock()
        return fn(*args, **kwargs)

    def _wait_for_slot(self):
        now = self._clock()

        # Reset counter every minute
        if now - self.window_start > WINDOW_SECONDS:
            self.request_count = 0
            self.window_start = now

        if self.request_count >= self.rate_limit:
            wait = WINDOW_SECONDS - (now - self.window_start)
            if wait > 0:
                logger.info('AI rate limit reached, waiting %.1fs', wait)
                self._sleep(wait)
            self.request_count = 0
            self.window_start = self._clock()

        if self.last_request_time is not None:
            since_last = self._clock() - self.last_request_time
            if since_last < self.min_delay:
                self._sleep(self.min_delay - since_last)

    def shutdown(self):
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None


def is_retryable_error(error):
    if isinstance(error, (requests.ConnectionError, requests.Timeout, groq.APIConnectionError,
                          ConnectionError, TimeoutError)):
        return True

    status = getattr(error, 'status_code', None) or getattr(error, 'status', None)
    response = getattr(error, 'response', None)
    if status is None and response is not None:
        status = getattr(response, 'status_code', None)
    if status in RETRYABLE_STATUS:
        return True

    message = str(error).lower()
    return any(text in message for text in RETRYABLE_MESSAGES)


def with_retry(fn, max_retries=3, initial_delay=1.0, max_delay=10.0, backoff_multiplier=2,
               retry_condition=None, on_retry=None, sleep=time.sleep):
    """Call `fn` with exponential backoff, re-raising the last error"""

    max_retries = max(1, max_retries)
    for attempt in range(1, max_retries + 1):
        try:
            return fn()
        except Exception as e:
            if retry_condition is not None and not retry_condition(e):
                raise

            if attempt == max_retries:
                logger.error('Failed after %d attempts: %s', max_retries, e)
                raise

            delay = min(initial_delay * backoff_multiplier ** (attempt - 1), max_delay)
            logger.info('Retry attempt %d/%d after %.2fs', attempt, max_retries, delay)

            if on_retry:
                on_retry(attempt, e)

            sleep(delay)
