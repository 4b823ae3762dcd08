"""
Configuration for taskmill pools.

Usage:
    from taskmill.config import load_pool_config

    config = load_pool_config("taskmill.yaml", pool_size=4)
    pool = Pool(config=config)

Environment variables use the TASKMILL_ prefix and the upper-cased field
name, e.g. TASKMILL_POOL_SIZE=8 or TASKMILL_BACKEND=thread.
"""

from .schemas import PoolConfig, START_METHODS
from .loader import ENV_PREFIX, build_config, load_pool_config

__all__ = [
    "PoolConfig",
    "START_METHODS",
    "ENV_PREFIX",
    "build_config",
    "load_pool_config",
]
