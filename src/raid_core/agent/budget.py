"""
Tool-call budget tracking.

The BudgetTracker counts tool invocations against a ceiling fixed at session
start. It never drops calls silently: when a call does not fit, try_consume()
returns False and consume() raises BudgetExhaustedError, which the session
turns into limit_reached so the operator can extend the ceiling or stop.

Extensions are additive: extend(n) raises the ceiling by n on top of the
current one.
"""

import logging

from raid_core.agent.types import BudgetState
from raid_core.exceptions import BudgetExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class BudgetTracker:
    """
    Counts tool calls against a limit.

    Attributes:
        used: Tool calls consumed so far
        limit: Current ceiling
        initial_limit: Ceiling configured at session start
        extensions_granted: Number of operator-granted extensions

    Example:
        ```python
        budget = BudgetTracker(limit=3)
        budget.try_consume()   # True, used=1
        budget.try_consume(2)  # True, used=3
        budget.try_consume()   # False, used stays 3
        budget.extend()        # limit=6, extensions_granted=1
        ```
    """

    def __init__(self, limit: int = DEFAULT_LIMIT) -> None:
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")
        self.used = 0
        self.limit = limit
        self.initial_limit = limit
        self.extensions_granted = 0

    def try_consume(self, n: int = 1) -> bool:
        """
        Consume n tool calls if they fit under the limit.

        Args:
            n: Number of calls to consume

        Returns:
            True if consumed (used increased by n), False otherwise
        """
        if n < 0:
            raise ValueError(f"cannot consume a negative number of calls ({n})")
        if self.used + n > self.limit:
            logger.info(f"Tool call budget exhausted ({self.used}/{self.limit})")
            return False
        self.used += n
        return True

    def consume(self, n: int = 1) -> None:
        """
        Consume n tool calls.

        Raises:
            BudgetExhaustedError: If they do not fit; used is unchanged
        """
        if not self.try_consume(n):
            raise BudgetExhaustedError(self.used, self.limit)

    def extend(self, amount: int | None = None) -> int:
        """
        Grant an operator extension.

        Args:
            amount: Calls to add to the ceiling (default: the initial limit)

        Returns:
            The new limit
        """
        if amount is None:
            amount = self.initial_limit
        if amount <= 0:
            raise ValueError(f"extension must be positive, got {amount}")
        self.limit += amount
        self.extensions_granted += 1
        logger.info(
            f"Budget extended by {amount} to {self.limit} "
            f"(extension #{self.extensions_granted})"
        )
        return self.limit

    @property
    def remaining(self) -> int:
        return self.limit - self.used

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    @property
    def state(self) -> BudgetState:
        return BudgetState(
            used=self.used,
            limit=self.limit,
            initial_limit=self.initial_limit,
            extensions_granted=self.extensions_granted,
        )

    @classmethod
    def from_state(cls, state: BudgetState) -> "BudgetTracker":
        """Rebuild a tracker exactly as it was snapshotted."""
        tracker = cls(limit=state.initial_limit)
        tracker.used = state.used
        tracker.limit = state.limit
        tracker.extensions_granted = state.extensions_granted
        return tracker
