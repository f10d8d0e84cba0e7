"""
Async retry helpers shared by the chain adapter and the verification client.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type

from chain_adapters.base_adapter import TransientError

logger = logging.getLogger(__name__)


async def retry_async(func: Callable[..., Awaitable], *args,
                      max_retries: int = 3, base_delay: float = 1.0,
                      retry_on: Tuple[Type[BaseException], ...] = (TransientError,),
                      **kwargs):
    """
    Await func(*args, **kwargs), retrying on retry_on with exponential backoff.

    The last error is re-raised once max_retries attempts have failed so the
    caller decides how to degrade.
    """
    attempts = max(1, max_retries)
    for attempt in range(attempts):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt == attempts - 1:
                logger.warning(f"⚠️  Max retries reached for {getattr(func, '__name__', func)}: {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.debug(f"Transient error in {getattr(func, '__name__', func)}, retrying in {delay}s: {e}")
            await asyncio.sleep(delay)

