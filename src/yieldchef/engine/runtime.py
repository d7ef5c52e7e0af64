"""Execution environment: clock, atomic transactions and deferred external calls.

Every stateful component registers with an Environment. A transaction
snapshots all registered components and restores them if the body raises,
so an operation either commits every effect or none of them.
"""

import copy
import logging
from contextlib import contextmanager
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


def tracked_state(component: Any) -> dict:
    """Instance attributes covered by transactions.

    A component lists append-only records it commits itself (an event log,
    for instance) in `untracked_attrs`; those are neither copied nor restored.
    """
    skip = getattr(component, "untracked_attrs", ())
    return {k: v for k, v in vars(component).items() if k not in skip}


class ManualClock:
    """Monotonic clock advanced explicitly (tests and simulations)."""

    def __init__(self, start: int = 0):
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Clock cannot move backwards: advance({seconds})")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards: {timestamp} < {self._now}")
        self._now = int(timestamp)
        return self._now


class Environment:
    """Serial execution environment shared by the ledger and its collaborators."""

    def __init__(self, clock=None):
        self.clock = clock if clock is not None else ManualClock()
        self._components: List[Any] = []
        self._depth = 0

    def now(self) -> int:
        return self.clock.now()

    def register(self, component: Any) -> None:
        """Add a component whose instance state is covered by transactions."""
        if not any(c is component for c in self._components):
            self._components.append(component)

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def _snapshot(self) -> List[Tuple[Any, dict]]:
        # Components, the environment and the clock are shared references:
        # only their contents are copied, never the objects themselves.
        memo = {id(self): self, id(self.clock): self.clock}
        for component in self._components:
            memo[id(component)] = component
        return [(c, copy.deepcopy(tracked_state(c), memo)) for c in self._components]

    @staticmethod
    def _restore(snapshot: List[Tuple[Any, dict]]) -> None:
        for component, state in snapshot:
            skip = getattr(component, "untracked_attrs", ())
            untracked = {k: v for k, v in vars(component).items() if k in skip}
            component.__dict__.clear()
            component.__dict__.update(state)
            component.__dict__.update(untracked)

    @contextmanager
    def transaction(self):
        """Run the body atomically; nested transactions join the outer one."""
        if self._depth:
            yield
            return

        snapshot = self._snapshot()
        self._depth += 1
        try:
            yield
        except BaseException as exc:
            self._restore(snapshot)
            logger.debug("Transaction rolled back: %r", exc)
            raise
        finally:
            self._depth -= 1


class CallQueue:
    """External calls recorded during an operation and run after its effects.

    `defer` returns nothing, so an operation cannot read an external result
    before its own bookkeeping is complete.
    """

    def __init__(self):
        self._calls: List[Tuple[Callable, tuple, dict]] = []
        self._flushed = False

    def defer(self, fn: Callable, *args, **kwargs) -> None:
        if self._flushed:
            raise RuntimeError("CallQueue already flushed")
        self._calls.append((fn, args, kwargs))

    def __len__(self) -> int:
        return len(self._calls)

    def flush(self) -> None:
        self._flushed = True
        calls, self._calls = self._calls, []
        for fn, args, kwargs in calls:
            fn(*args, **kwargs)
