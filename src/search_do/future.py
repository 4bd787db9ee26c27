"""
ActionFuture - single-assignment result of one asynchronous action.

The executor running the action calls resolve() or reject() exactly once.
Any number of callers may block on get(), await the future, or register
listeners, before or after it resolves; every listener runs exactly once.

Example:
    future = ActionFuture.submit(executor, client.search, request)

    future.on_complete(lambda response, error: ...) \\
          .on_success(lambda response: ...) \\
          .on_failure(lambda error: ...)

    response = future.get("30s")
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import math
import re
import threading
from datetime import timedelta
from typing import Any, Awaitable, Callable, Generic, TypeVar

from .errors import (
    ActionFailedError,
    CancelledError,
    IllegalStateError,
    TimeoutError,
    unwrap_cause,
)
from .types import FutureState

T = TypeVar("T")

__all__ = ["ActionFuture", "parse_timeout"]

logger = logging.getLogger(__name__)

_TIME_VALUE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(nanos|micros|ms|s|m|h|d)\s*$", re.IGNORECASE)

_UNIT_SECONDS = {
    "nanos": 1e-9,
    "micros": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_COMPLETE = "complete"
_SUCCESS = "success"
_FAILURE = "failure"


def parse_timeout(timeout: float | timedelta | str | None) -> float | None:
    """
    Normalize a timeout to seconds.

    Args:
        timeout: None (wait forever), seconds as int/float, a timedelta, or
            a time value string such as "500ms", "30s", "1m" ("-1" waits
            forever)

    Returns:
        Seconds, or None for no limit. Values at or above
        threading.TIMEOUT_MAX also mean no limit.

    Raises:
        ValueError: If the timeout is negative, not finite, or cannot be parsed
        TypeError: If the timeout has an unsupported type
    """
    if timeout is None:
        return None

    if isinstance(timeout, bool):
        raise TypeError("timeout must be a number, timedelta or time value string")

    if isinstance(timeout, timedelta):
        seconds = timeout.total_seconds()
    elif isinstance(timeout, (int, float)):
        seconds = float(timeout)
    elif isinstance(timeout, str):
        if timeout.strip() == "-1":
            return None
        match = _TIME_VALUE.match(timeout)
        if match is None:
            raise ValueError(f"Invalid time value: {timeout!r} (expected e.g. '500ms', '30s', '1m')")
        seconds = float(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
    else:
        raise TypeError(
            f"timeout must be a number, timedelta or time value string, got {type(timeout).__name__}"
        )

    if not math.isfinite(seconds):
        raise ValueError(f"timeout must be finite: {timeout!r}")
    if seconds < 0:
        raise ValueError(f"timeout cannot be negative: {timeout!r}")
    if seconds >= threading.TIMEOUT_MAX:
        return None
    return seconds


class ActionFuture(Awaitable[T], Generic[T]):
    """
    Future for the outcome of one asynchronous action.

    State moves once from PENDING to COMPLETED or FAILED. The transition
    and listener registration share one lock, so a listener registered
    while the future resolves is still called exactly once.

    Listener kinds:
        on_complete: listener(value, error), error is None on success
        on_success: listener(value), skipped on failure
        on_failure: listener(error), skipped on success

    A listener that raises is logged; the remaining listeners still run.
    """

    __slots__ = (
        "_condition",
        "_state",
        "_value",
        "_error",
        "_cancelled",
        "_listeners",
    )

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._state = FutureState.PENDING
        self._value: T | None = None
        self._error: BaseException | None = None
        self._cancelled = False
        self._listeners: list[tuple[str, Callable[..., Any]]] = []

    # -- State -----------------------------------------------------------

    @property
    def state(self) -> FutureState:
        """Current lifecycle state."""
        return self._state

    @property
    def root_failure(self) -> BaseException | None:
        """The originating error if the action failed, else None."""
        if self._error is None:
            return None
        return unwrap_cause(self._error)

    def done(self) -> bool:
        """Whether the future reached a terminal state."""
        return self._state is not FutureState.PENDING

    def cancelled(self) -> bool:
        """Whether the future was cancelled before it resolved."""
        return self._cancelled

    # -- Executor side ---------------------------------------------------

    def resolve(self, value: T) -> bool:
        """
        Complete the future with a value.

        Returns:
            True, or False if the future was cancelled first

        Raises:
            IllegalStateError: If the future already resolved
        """
        return self._transition(FutureState.COMPLETED, value, None)

    def reject(self, error: BaseException) -> bool:
        """
        Fail the future with an error.

        Returns:
            True, or False if the future was cancelled first

        Raises:
            IllegalStateError: If the future already resolved
            TypeError: If error is not an exception
        """
        if not isinstance(error, BaseException):
            raise TypeError(f"error must be an exception, got {type(error).__name__}")
        return self._transition(FutureState.FAILED, None, error)

    def cancel(self) -> bool:
        """
        Cancel the action if it has not resolved yet.

        A cancelled future fails with CancelledError. A later resolve() or
        reject() from the executor is ignored.

        Returns:
            True if the future was cancelled, False if it had already resolved
        """
        return self._transition(FutureState.FAILED, None, CancelledError(), cancelling=True)

    def _transition(
        self,
        state: FutureState,
        value: Any,
        error: BaseException | None,
        *,
        cancelling: bool = False,
    ) -> bool:
        with self._condition:
            if self._state is not FutureState.PENDING:
                if cancelling:
                    return False
                if self._cancelled:
                    logger.debug("Ignoring %s of cancelled %r", state.value, self)
                    return False
                raise IllegalStateError(
                    f"Future is already {self._state.value}; it cannot be resolved twice"
                )

            self._state = state
            self._value = value
            self._error = error
            self._cancelled = cancelling

            listeners = self._listeners
            self._listeners = []
            self._condition.notify_all()

        logger.debug("%r transitioned; notifying %d listeners", self, len(listeners))
        for kind, listener in listeners:
            self._notify(kind, listener)
        return True

    # -- Caller side -----------------------------------------------------

    def get(self, timeout: float | timedelta | str | None = None) -> T:
        """
        Block until the action resolves.

        Args:
            timeout: Maximum wait (see parse_timeout); None waits forever

        Returns:
            The action's value

        Raises:
            ActionFailedError: If the action failed; root_failure holds the cause
            TimeoutError: If the timeout elapsed first; the future is unchanged
        """
        seconds = parse_timeout(timeout)

        with self._condition:
            if not self._condition.wait_for(self.done, timeout=seconds):
                timeout_ms = int(seconds * 1000) if seconds is not None else None
                raise TimeoutError(
                    f"Timed out after {timeout_ms}ms waiting for action", timeout_ms=timeout_ms
                )

        if self._error is not None:
            raise self._failure()
        return self._value  # type: ignore

    def _failure(self) -> ActionFailedError:
        # one new wrapper per raise; only the underlying error is shared
        return ActionFailedError(f"Action failed: {self._error}", self._error)  # type: ignore[arg-type]

    def on_complete(self, listener: Callable[[T | None, BaseException | None], Any]) -> ActionFuture[T]:
        """
        Register listener(value, error) for either outcome.

        Runs immediately, before returning, if the future already resolved.

        Returns:
            Always this future, for chaining
        """
        return self._add_listener(_COMPLETE, listener)

    def on_success(self, listener: Callable[[T], Any]) -> ActionFuture[T]:
        """Register listener(value), called only if the action succeeds."""
        return self._add_listener(_SUCCESS, listener)

    def on_failure(self, listener: Callable[[BaseException], Any]) -> ActionFuture[T]:
        """Register listener(error), called only if the action fails."""
        return self._add_listener(_FAILURE, listener)

    def _add_listener(self, kind: str, listener: Callable[..., Any]) -> ActionFuture[T]:
        if not callable(listener):
            raise TypeError("listener must be callable")

        with self._condition:
            if self._state is FutureState.PENDING:
                self._listeners.append((kind, listener))
                return self

        self._notify(kind, listener)
        return self

    def _discard_listener(self, kind: str, listener: Callable[..., Any]) -> None:
        with self._condition:
            if (kind, listener) in self._listeners:
                self._listeners.remove((kind, listener))

    def _notify(self, kind: str, listener: Callable[..., Any]) -> None:
        # state, value and error never change after the transition
        try:
            if kind == _COMPLETE:
                listener(self._value, self._error)
            elif kind == _SUCCESS and self._state is FutureState.COMPLETED:
                listener(self._value)
            elif kind == _FAILURE and self._state is FutureState.FAILED:
                listener(self._error)
        except Exception:
            logger.exception("Listener %r raised while notifying %r", listener, self)

    # -- Integration -----------------------------------------------------

    def __await__(self):
        """Await the outcome from asyncio; raises like get()."""
        return self._wrap_asyncio().__await__()

    def _wrap_asyncio(self) -> asyncio.Future[T]:
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[T] = loop.create_future()

        def _settle(value: Any, error: BaseException | None) -> None:
            if waiter.done():
                return
            if error is None:
                waiter.set_result(value)
            else:
                waiter.set_exception(self._failure())

        def _forward(value: Any, error: BaseException | None) -> None:
            loop.call_soon_threadsafe(_settle, value, error)

        self.on_complete(_forward)
        # the listener is dropped once the waiter is done, including on cancel
        waiter.add_done_callback(lambda _: self._discard_listener(_COMPLETE, _forward))
        return waiter

    @classmethod
    def from_concurrent(cls, future: concurrent.futures.Future[T]) -> ActionFuture[T]:
        """
        Adapt a concurrent.futures.Future.

        Cancelling the returned ActionFuture also tries to cancel the
        source future.
        """
        action: ActionFuture[T] = cls()

        def _transfer(source: concurrent.futures.Future[T]) -> None:
            if source.cancelled():
                action.cancel()
                return
            error = source.exception()
            if error is not None:
                action.reject(error)
            else:
                action.resolve(source.result())

        action.on_failure(lambda error: future.cancel() if isinstance(error, CancelledError) else None)
        future.add_done_callback(_transfer)
        return action

    @classmethod
    def submit(
        cls,
        executor: concurrent.futures.Executor,
        fn: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> ActionFuture[T]:
        """Run fn on an executor and return its ActionFuture."""
        return cls.from_concurrent(executor.submit(fn, *args, **kwargs))

    def __repr__(self) -> str:
        status = "cancelled" if self._cancelled else self._state.value
        return f"ActionFuture({status})"
