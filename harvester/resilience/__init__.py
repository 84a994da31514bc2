"""
Run-level safeguards: delta computation, throttling and checkpointing.
"""

from .checkpoint import CheckpointStore
from .delta_filter import DeltaFilter
from .rate_limiter import RateLimiter

__all__ = [
    'CheckpointStore',
    'DeltaFilter',
    'RateLimiter'
]
