# app/services/suggestions.py
import asyncio
from typing import Awaitable, Callable, List, Optional

from app.core.errors import PlannerError
from app.core.logger import logger
from app.services.reconciler import RequestReconciler

Lookup = Callable[[str], Awaitable[List[str]]]


class SuggestionDebouncer:
    """
    Location search suggestions for one input field.

    A lookup is issued only once the input has been stable for
    `interval_ms`; every change restarts the wait. Inputs shorter than
    `min_chars` (after trimming) clear the suggestions and issue nothing.
    Issued lookups go through a RequestReconciler, so a slow answer for an
    old query never replaces a newer one.
    """

    def __init__(
        self,
        lookup: Lookup,
        interval_ms: float = 200.0,
        min_chars: int = 2,
        enabled: bool = True,
        name: str = "suggestions",
    ) -> None:
        self._lookup = lookup
        self.interval_ms = interval_ms
        self.min_chars = min_chars
        self.enabled = enabled
        self.text = ""
        self.suggestions: List[str] = []
        self.error: Optional[str] = None
        self.loading = False
        self._reconciler: RequestReconciler[List[str]] = RequestReconciler(name)
        self._pending: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def update(self, text: str) -> Optional[asyncio.Task]:
        """
        Record a new input value. Returns the debounce cycle scheduled for
        it, or None when no lookup will happen.
        """
        self.text = text
        if not self.enabled:
            return None

        self._cancel_pending()
        self.loading = False

        query = (text or "").strip()
        if len(query) < self.min_chars:
            self._reconciler.cancel()
            self.suggestions = []
            self.error = None
            return None

        self._pending = asyncio.ensure_future(self._fire_when_quiet(query))
        return self._pending

    async def wait(self, cycle: Optional[asyncio.Task] = None) -> bool:
        """
        Wait for a debounce cycle (the pending one by default).

        True if it committed suggestions or an error, False if it was
        superseded by a later input or nothing was pending.
        """
        task = cycle or self._pending
        if task is None:
            return False
        await asyncio.wait({task})
        if task.cancelled():
            return False
        return task.result()

    def close(self) -> None:
        self._cancel_pending()
        self._reconciler.cancel()
        self.loading = False

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _fire_when_quiet(self, query: str) -> bool:
        await asyncio.sleep(self.interval_ms / 1000.0)

        self.loading = True
        self.error = None
        delivery = await self._reconciler.submit(lambda: self._lookup(query))
        if delivery is None:
            return False

        self.loading = False
        if delivery.error is not None:
            if not isinstance(delivery.error, PlannerError):
                raise delivery.error
            logger.warning(f"Suggestion lookup for '{query}' failed: {delivery.error}")
            self.error = str(delivery.error)
            self.suggestions = []
        else:
            self.suggestions = list(delivery.value or [])
            logger.debug(f"{len(self.suggestions)} suggestion(s) for '{query}'")
        return True
