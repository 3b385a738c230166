"""
Infrastructure components: the future itself and the threads that settle it.
"""

from sincpro_future.infrastructure.event_loop import EventLoop
from sincpro_future.infrastructure.future import CompletableFuture
from sincpro_future.infrastructure.stage import Stage
from sincpro_future.infrastructure.worker import Worker

__all__ = ["CompletableFuture", "EventLoop", "Stage", "Worker"]
