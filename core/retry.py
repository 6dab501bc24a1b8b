"""Retry Controller: bounded, fixed-delay retries around one account's submission."""

import logging
import time
from typing import Callable

from core.exceptions import ConfigurationError, SubmissionError
from core.models import ExecutionResult, SubmissionReceipt

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def with_retry(
    account_id: str,
    attempt_fn: Callable[[], SubmissionReceipt],
    max_retries: int,
    delay_ms: int,
    sleep: Callable[[float], None] = time.sleep,
    clock_ms: Callable[[], int] = _now_ms,
) -> ExecutionResult:
    """
    Call attempt_fn until it succeeds, at most max_retries + 1 times.

    Only SubmissionError is retried, after a fixed delay_ms pause. A
    ConfigurationError fails immediately. When retries run out the result
    carries the last error only.
    """
    max_retries = max(0, int(max_retries))
    last_error = "no attempt made"
    attempts = 0

    for attempt in range(max_retries + 1):
        attempts = attempt + 1
        try:
            receipt = attempt_fn()
        except ConfigurationError as e:
            logger.error(f"{account_id}: not retrying configuration error: {e}")
            return ExecutionResult.failed(account_id, str(e), clock_ms(), attempts=attempts)
        except SubmissionError as e:
            last_error = str(e)
            if attempt < max_retries:
                logger.warning(
                    f"Retrying execution for {account_id} "
                    f"(attempt {attempts}/{max_retries + 1}): {last_error}"
                )
                sleep(delay_ms / 1000.0)
            continue

        return ExecutionResult(
            success=True,
            account_id=account_id,
            timestamp_ms=clock_ms(),
            tx_digest=receipt.digest,
            attempts=attempts,
        )

    logger.error(f"All {attempts} attempts exhausted for {account_id}: {last_error}")
    return ExecutionResult.failed(account_id, last_error, clock_ms(), attempts=attempts)
