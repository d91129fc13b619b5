"""Fixed-delay retry policy for flaky network-backed installs."""

import time
from typing import Callable

from flatpakmigrator.models import OperationResult


class RetryPolicy:
    """Retries an operation a bounded number of times with a constant pause."""

    def __init__(self, logger, max_attempts: int = 3, delay_seconds: float = 2.0, sleep=time.sleep):
        self.logger = logger
        self.max_attempts = max(1, max_attempts)
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def with_retry(self, operation: Callable[[], OperationResult], label: str) -> OperationResult:
        for attempt in range(1, self.max_attempts + 1):
            result = operation()
            if result.ok:
                return OperationResult(ok=True, message=result.message, attempts=attempt)

            self.logger.debug("Attempt %s/%s for %s failed: %s", attempt, self.max_attempts, label, result.message)
            if attempt < self.max_attempts:
                self.logger.warning(
                    "Installation failed for %s. Retrying in %.1fs (attempt %s/%s).",
                    label,
                    self.delay_seconds,
                    attempt + 1,
                    self.max_attempts,
                )
                self.sleep(self.delay_seconds)

        return OperationResult(
            ok=False,
            message=f"Failed to install {label} after {self.max_attempts} attempts",
            attempts=self.max_attempts,
        )
