"""
Examples demonstrating completable futures: scheduling a task and waiting for
it, supplying a value, and chaining stages.
"""

import asyncio
import logging
import time

from sincpro_future import CompletionError, run_async, run_async_task, shutdown, supply_async

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def long_running_task() -> None:
    """Simulates a blocking operation, then reports it finished."""
    time.sleep(1.0)
    logger.info("done")


async def my_task(duration: float) -> str:
    logger.info(f"Starting coroutine, will sleep for {duration} seconds")
    await asyncio.sleep(duration)
    return f"Task completed after {duration} seconds"


def main():
    try:
        # Example 1: schedule a side-effecting task and wait for it
        run_async(long_running_task).join()

        # Example 2: same, inline, with the report as a chained stage
        run_async(lambda: time.sleep(1.0)).then_run(lambda: logger.info("done")).join()

        # Example 3: supply a value
        result = supply_async(lambda: "done").join()
        assert result == "done"

        # Example 4: chain stages
        chained = supply_async(lambda: "done").then_apply(lambda s: s + "A").then_apply(lambda s: s + "B")
        logger.info(f"Chained result: {chained.join()}")

        # Example 5: a failure skips the rest of the chain
        def failing_supplier() -> str:
            raise RuntimeError("supplier failed")

        try:
            supply_async(failing_supplier).then_apply(lambda s: s + "A").join()
        except CompletionError as e:
            logger.warning(f"Chain failed as expected: {e.cause!r}")

        # Example 6: coroutine with timeout
        try:
            run_async_task(my_task(3.0), timeout=1.0)
        except TimeoutError:
            logger.warning("Task timed out as expected")

    finally:
        # Clean shutdown
        shutdown()


if __name__ == "__main__":
    main()
