import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from .exceptions import ProviderTransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
    exceptions: Tuple[Type[BaseException], ...] = (ProviderTransientError,)
) -> T:
    """Retry function with exponential backoff"""
    name = getattr(func, "__name__", repr(func))
    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            if attempt == max_retries:
                if max_retries:
                    logger.warning(f"Max retries ({max_retries}) exceeded for {name}: {e}")
                raise

            delay = min(base_delay * (backoff_factor ** attempt), max_delay)
            logger.warning(f"Attempt {attempt + 1} failed for {name}: {e}. Retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
