from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

import httpx

from pipeline_orchestrator.core.errors import RetryError

T = TypeVar("T")

log = logging.getLogger(__name__)

# Client errors that may clear on their own
TRANSIENT_CLIENT_STATUS = (408, 429)


def is_transient(error: BaseException) -> bool:
    """Network failures, 5xx and unexpected responses are retried. Other 4xx are final."""
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return status >= 500 or status in TRANSIENT_CLIENT_STATUS
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with a constant delay between attempts.

    attempts: total number of invocations before giving up.
    delay: milliseconds to sleep between attempts.
    empty: treat a falsy result as a failure.
    retry_on: decides whether an exception is retried or raised as is.
    """
    attempts: int = 10
    delay: int = 10000
    empty: bool = False
    retry_on: Callable[[BaseException], bool] = field(default=is_transient, compare=False, repr=False)
    logger: logging.Logger = field(default=log, compare=False, repr=False)

    async def call(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        remaining = self.attempts
        self.logger.debug("Executing <%s> with <%s> retries", name, self.attempts)

        while True:
            try:
                result = await operation()
            except Exception as e:
                if not self.retry_on(e):
                    self.logger.debug("Not retrying <%s>: %s", name, e)
                    raise
                remaining -= 1
                if remaining <= 0:
                    raise RetryError(name, self.attempts, e) from e
                self.logger.debug("Retrying <%s> (exception) in <%s> seconds: %s", name, self.delay / 1000, e)
            else:
                if result or not self.empty:
                    return result
                remaining -= 1
                if remaining <= 0:
                    raise RetryError(name, self.attempts)
                self.logger.debug("Retrying <%s> (empty) in <%s> seconds", name, self.delay / 1000)

            await asyncio.sleep(self.delay / 1000)
