"""
Retry with exponential backoff for collaborator clients
"""

import logging
from typing import Tuple, Type

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
):
    """
    Retry an async callable on failure, doubling the delay each attempt.

    Only `retry_on` errors are retried; the last one is re-raised once
    `max_retries` retries are exhausted.
    """
    return retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
