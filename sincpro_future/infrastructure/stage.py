"""
Stage component: one link in a chain of futures.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

from sincpro_future.domain.executor import ExecutorInterface

if TYPE_CHECKING:
    from sincpro_future.infrastructure.future import CompletableFuture

logger = logging.getLogger(__name__)

# (dependent, upstream value, upstream error) -> None; settles the dependent.
StageAction = Callable[["CompletableFuture[Any]", Any, Optional[BaseException]], None]


class Stage:
    """
    A continuation registered on an upstream future, plus the dependent
    future it settles.

    Stages that do not handle errors never run their action for a rejected
    upstream: the dependent is rejected with the same error instead.
    """

    def __init__(
        self,
        dependent: "CompletableFuture[Any]",
        action: StageAction,
        executor: Optional[ExecutorInterface] = None,
        handles_errors: bool = False,
    ) -> None:
        self.dependent = dependent
        self._action = action
        self._executor = executor
        self._handles_errors = handles_errors

    def fire(self, value: Any, error: Optional[BaseException]) -> None:
        """Deliver the upstream outcome. Only KeyboardInterrupt or SystemExit escape."""
        if error is not None and not self._handles_errors:
            self.dependent.complete_exceptionally(error)
            return

        if self._executor is None:
            self._run(value, error)
            return

        try:
            self._executor.submit(self._run, value, error)
        except Exception as e:
            logger.debug(f"Executor refused stage: {e!r}")
            self.dependent.complete_exceptionally(e)

    def _run(self, value: Any, error: Optional[BaseException]) -> None:
        # Dependents are completable by anyone, so it may already be settled.
        if self.dependent.is_done():
            return
        try:
            self._action(self.dependent, value, error)
        except BaseException as e:
            logger.debug(f"Stage function failed: {e!r}")
            self.dependent.complete_exceptionally(e)
            # KeyboardInterrupt and SystemExit still reach the caller once recorded.
            if not isinstance(e, Exception):
                raise
