from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

TRANSIENT_HTTP_STATUS = {408, 425, 429, 500, 502, 503, 504}


def should_retry_http_status(status_code: int) -> bool:
    return int(status_code) in TRANSIENT_HTTP_STATUS


def should_retry_exception(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return should_retry_http_status(exc.response.status_code)
    return isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError))


def with_retry(
    *,
    operation: str,
    call: Callable[[], httpx.Response],
    max_attempts: int,
    base_delay_seconds: float,
    max_delay_seconds: float,
    logger: logging.Logger,
    sleep: Callable[[float], None] = time.sleep,
) -> httpx.Response:
    attempts = max(1, int(max_attempts))
    base_delay = max(0.1, float(base_delay_seconds))
    max_delay = max(base_delay, float(max_delay_seconds))

    attempt = 1
    while True:
        try:
            response = call()
            response.raise_for_status()
            return response
        except Exception as exc:
            if attempt >= attempts or not should_retry_exception(exc):
                raise
            delay = min(max_delay, base_delay * (2 ** (attempt - 1)))
            logger.warning(
                "Retrying HTTP operation after transient failure",
                extra={
                    "event": "http_retry_scheduled",
                    "operation": operation,
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "delay_seconds": delay,
                    "error": repr(exc),
                },
            )
            sleep(delay)
            attempt += 1
