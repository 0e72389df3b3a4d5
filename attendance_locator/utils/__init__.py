from .rate_limiter import MinIntervalRateLimiter

__all__ = ['MinIntervalRateLimiter']
