"""Propagation scheduler: two independent debounced notification channels.

Each channel keeps only the latest payload. Every push cancels the channel's
pending timer and starts a new quiet window; when the window elapses the
latest payload is delivered once. Intermediate payloads are discarded, never
queued (last-write-wins, no at-least-once guarantee).

Every push records the product id it belongs to. Just before delivery the
channel compares it with the engine's current product id and silently drops
the payload if the session has moved on. Timers are not cancelled on a
product change; the identity check is what makes late timers harmless.

Timers run on an asyncio event loop (``loop.call_later``). With no running
loop the payload is kept pending and delivered by the next ``flush()``.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Hashable, List, Optional, Tuple

from allocation_types import AllocationResult
from domain_types import Unit

logger = logging.getLogger(__name__)

QUANTITY_WINDOW_S: float = 0.5
SELECTION_WINDOW_S: float = 0.3

QuantityCallback = Callable[[float], Any]
BatchSelectCallback = Callable[[List[int], List[float], float, Unit], Any]


class DebouncedChannel:
    """One last-write-wins debounced channel."""

    def __init__(
        self,
        name: str,
        window_s: float,
        deliver: Callable[..., Any],
        current_key: Callable[[], Hashable],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if window_s < 0:
            raise ValueError(f"{name}: debounce window must be >= 0 (got {window_s})")
        self.name = name
        self.window_s = float(window_s)
        self._deliver = deliver
        self._current_key = current_key
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[Tuple[Hashable, Tuple[Any, ...]]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def _event_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def push(self, key: Hashable, *payload: Any) -> None:
        """Replace the pending payload and restart the quiet window."""
        self._cancel_timer()
        self._pending = (key, payload)
        loop = self._event_loop()
        if loop is None:
            logger.debug("%s: no running event loop, payload held until flush()", self.name)
            return
        self._handle = loop.call_later(self.window_s, self._fire)

    def _fire(self) -> None:
        self._handle = None
        if self._pending is None:
            return
        key, payload = self._pending
        self._pending = None
        current = self._current_key()
        if key != current:
            logger.debug("%s: dropping notification for stale product %r (current %r)", self.name, key, current)
            return
        logger.debug("%s: delivering %r", self.name, payload)
        self._deliver(*payload)

    def flush(self) -> None:
        """Deliver the pending payload now (same staleness check)."""
        self._cancel_timer()
        self._fire()

    def cancel(self) -> None:
        """Drop the pending payload without delivering it."""
        self._cancel_timer()
        self._pending = None


class PropagationScheduler:
    """Debounces ledger changes into quantity and selection notifications."""

    def __init__(
        self,
        current_product: Callable[[], Hashable],
        on_quantity_change: Optional[QuantityCallback] = None,
        on_batch_select: Optional[BatchSelectCallback] = None,
        quantity_window_s: float = QUANTITY_WINDOW_S,
        selection_window_s: float = SELECTION_WINDOW_S,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.quantity: Optional[DebouncedChannel] = None
        self.selection: Optional[DebouncedChannel] = None
        if on_quantity_change is not None:
            self.quantity = DebouncedChannel(
                "quantity", quantity_window_s, on_quantity_change, current_product, loop
            )
        if on_batch_select is not None:
            self.selection = DebouncedChannel(
                "selection", selection_window_s, on_batch_select, current_product, loop
            )

    def _channels(self) -> List[DebouncedChannel]:
        return [c for c in (self.quantity, self.selection) if c is not None]

    def notify(self, product_id: Hashable, result: AllocationResult) -> None:
        """Record the latest totals for both channels."""
        if self.quantity is not None:
            self.quantity.push(product_id, result["totalSelected"])
        if self.selection is not None:
            self.selection.push(
                product_id,
                list(result["batchIds"]),
                list(result["quantities"]),
                result["totalSelected"],
                result["unit"],
            )

    @property
    def pending(self) -> bool:
        return any(c.pending for c in self._channels())

    def flush(self) -> None:
        for channel in self._channels():
            channel.flush()

    def close(self) -> None:
        for channel in self._channels():
            channel.cancel()
