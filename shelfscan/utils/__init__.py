# Utils: limiters
from shelfscan.utils.limiter import ConcurrencyLimiter, SlidingWindowRateLimiter

__all__ = [
    "ConcurrencyLimiter",
    "SlidingWindowRateLimiter",
]
