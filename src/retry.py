import asyncio
import logging


logger = logging.getLogger(__name__)


class RetryPolicy:
    """Bounded retry with exponential or linear backoff for async calls."""

    def __init__(self, max_attempts: int = 3, backoff: str = "exponential", base_delay_ms: int = 1000, retry_on=(Exception,)):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if backoff not in ("exponential", "linear"):
            raise ValueError(f"Unknown backoff: {backoff}")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.base_delay_ms = base_delay_ms
        self.retry_on = tuple(retry_on)

    def delay_for(self, attempt: int) -> int:
        """Delay in ms after the `attempt`-th failure (1-based)."""
        if self.backoff == "exponential":
            return self.base_delay_ms * (2 ** attempt)
        return self.base_delay_ms * attempt

    async def run(self, fn, *args, description: str = "operation", **kwargs):
        attempt = 0
        while True:
            try:
                return await fn(*args, **kwargs)
            except self.retry_on as e:
                attempt += 1
                if attempt >= self.max_attempts:
                    logger.error("✖ %s failed after %d attempts: %s", description, attempt, e)
                    raise
                delay = self.delay_for(attempt)
                logger.warning("⚠️ %s attempt %d failed, retrying in %dms: %s", description, attempt, delay, e)
                await asyncio.sleep(delay / 1000)
