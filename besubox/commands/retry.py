"""
Retry and timeout utilities for JSON-RPC calls.
"""

import asyncio
from typing import Any, Callable, Optional

import aiohttp

from besubox.commands.constants import (
    DEFAULT_CONNECTION_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF,
    DEFAULT_RETRY_DELAY,
    QUICK_CONNECTION_TIMEOUT,
    QUICK_READ_TIMEOUT,
)

TRANSIENT_ERRORS = (
    ConnectionError,
    asyncio.TimeoutError,
    aiohttp.ClientConnectionError,
)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        delay: float = DEFAULT_RETRY_DELAY,
        backoff: float = DEFAULT_RETRY_BACKOFF,
        connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        exceptions: tuple = TRANSIENT_ERRORS,
    ):
        self.max_attempts = max(1, max_attempts)
        self.delay = delay
        self.backoff = backoff
        self.connection_timeout = connection_timeout
        self.read_timeout = read_timeout
        self.exceptions = exceptions

    def client_timeout(self) -> aiohttp.ClientTimeout:
        """Build the aiohttp timeout matching this configuration."""
        return aiohttp.ClientTimeout(
            total=self.read_timeout, connect=self.connection_timeout
        )


async def retry_async_call(
    func: Callable, *args, config: Optional[RetryConfig] = None, **kwargs
) -> Any:
    """
    Retry an async function call with the given configuration.

    Args:
        func: The async function to call
        *args: Positional arguments for the function
        config: RetryConfig instance
        **kwargs: Keyword arguments for the function

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries fail
    """
    retry_config = config or RetryConfig()
    current_delay = retry_config.delay

    for attempt in range(retry_config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except retry_config.exceptions:
            if attempt == retry_config.max_attempts - 1:
                raise
            await asyncio.sleep(current_delay)
            current_delay *= retry_config.backoff


# Common retry configurations
NETWORK_RETRY_CONFIG = RetryConfig()

# Liveness checks must stay bounded, so they never retry
LIVENESS_CONFIG = RetryConfig(
    max_attempts=1,
    delay=0,
    backoff=1,
    connection_timeout=QUICK_CONNECTION_TIMEOUT,
    read_timeout=QUICK_READ_TIMEOUT,
)
