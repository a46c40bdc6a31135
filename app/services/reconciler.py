# app/services/reconciler.py
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from app.core.logger import logger

T = TypeVar("T")


@dataclass(frozen=True)
class Delivery(Generic[T]):
    """
    Outcome of the latest request of a kind: either a value or an error.
    """
    kind: str
    token: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


class RequestReconciler(Generic[T]):
    """
    Keeps only the most recent request of one kind alive.

    Every submit() cancels the previous in-flight call and mints a new
    token. When a call completes, its result is delivered only if its token
    is still the latest one; anything else is a superseded response and is
    dropped silently (submit() returns None). Cancellation is best-effort:
    the token check alone decides which result wins.

    One instance per request kind, owned by whoever owns the displayed
    state.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.latest_token = 0
        self._active: Optional[asyncio.Future] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def in_flight(self) -> bool:
        return self._active is not None and not self._active.done()

    def is_current(self, token: int) -> bool:
        return token == self.latest_token

    def cancel(self) -> None:
        """
        Supersede whatever is in flight without issuing a new request.
        """
        if self._active is not None:
            self._active.cancel()
            self._active = None
        self.latest_token += 1

    async def submit(self, call: Callable[[], Awaitable[T]]) -> Optional[Delivery[T]]:
        """
        Issue `call()` as the new latest request of this kind.

        Returns a Delivery (value or error) if this request is still the
        latest when it completes, None if it was superseded or cancelled.
        """
        if self._active is not None:
            self._active.cancel()

        self.latest_token += 1
        token = self.latest_token
        task = asyncio.ensure_future(call())
        self._active = task
        logger.debug(f"[{self.kind}] issued request #{token}")

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            # The caller went away; its call goes with it.
            task.cancel()
            if self._active is task:
                self._active = None
            raise

        if token != self.latest_token:
            self._consume(task)
            logger.debug(
                f"[{self.kind}] dropping superseded response #{token} "
                f"(latest is #{self.latest_token})"
            )
            return None

        self._active = None

        if task.cancelled():
            logger.debug(f"[{self.kind}] request #{token} was cancelled")
            return None

        error = task.exception()
        if error is not None:
            return Delivery(kind=self.kind, token=token, error=error)
        return Delivery(kind=self.kind, token=token, value=task.result())

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _consume(task: asyncio.Future) -> None:
        # Retrieve a dropped task's exception so asyncio does not log it.
        if not task.cancelled():
            task.exception()
