"""
Domain abstractions for sincpro_future.
"""

from sincpro_future.domain.executor import ExecutorInterface
from sincpro_future.domain.future import FutureInterface, FutureState

__all__ = ["ExecutorInterface", "FutureInterface", "FutureState"]
