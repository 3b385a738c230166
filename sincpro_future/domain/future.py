"""
Future domain abstractions and value objects.
"""

from enum import Enum
from typing import Any, Callable, Optional, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


class FutureState(Enum):
    """Lifecycle of a future. Every state but PENDING is terminal."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_settled(self) -> bool:
        return self is not FutureState.PENDING


@runtime_checkable
class FutureInterface(Protocol[T]):
    """
    Interface for the Future component.
    Defines the contract that all Future implementations must follow.
    """

    @property
    def state(self) -> FutureState:
        """Current state of the future."""
        ...

    def complete(self, value: T) -> bool:
        """
        Fulfill the future with a value.

        Returns:
            True if this call settled the future, False if it was already settled
        """
        ...

    def complete_exceptionally(self, error: BaseException) -> bool:
        """
        Reject the future with an error.

        Returns:
            True if this call settled the future, False if it was already settled
        """
        ...

    def then_apply(self, fn: Callable[[T], Any]) -> "FutureInterface[Any]":
        """Chain a transformation of the value."""
        ...

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Block until the future settles and return its value.

        Raises:
            ExecutionError: If the future was rejected
            TimeoutError: If the future did not settle within timeout seconds
        """
        ...

    def join(self) -> T:
        """
        Block until the future settles and return its value.

        Raises:
            CompletionError: If the future was rejected
        """
        ...
