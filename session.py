"""Session reset controller.

Watches the caller-supplied (productId, targetQuantity) pair and decides what
happens to the ledger. Comparison is against the last pair this controller
*processed*, so re-sending the same pair any number of times is a no-op.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional

from ledger import AllocationLedger

logger = logging.getLogger(__name__)

SessionTransition = Literal["initialized", "product_changed", "target_changed", "unchanged"]


class SessionResetController:
    def __init__(self, ledger: AllocationLedger) -> None:
        self.ledger = ledger
        self.product_id: Optional[int] = None
        self.target_quantity: float = 0.0
        self._started = False

    @property
    def active(self) -> bool:
        return self._started

    def sync(self, product_id: int, target_quantity: float) -> SessionTransition:
        """Apply a (product, target) update.

        * first pair: empty ledger, target set
        * product changed: ledger and over-limit messages cleared, target set
        * only target changed: ledger kept, target set
        * same pair: nothing happens
        """
        target_quantity = float(target_quantity)
        if not self._started:
            self.ledger.clear()
            self._started = True
            self.product_id = product_id
            self.target_quantity = target_quantity
            logger.info("session started for product %s (target %s)", product_id, target_quantity)
            return "initialized"

        if product_id != self.product_id:
            self.ledger.clear()
            logger.info("product changed %s -> %s; ledger cleared", self.product_id, product_id)
            self.product_id = product_id
            self.target_quantity = target_quantity
            return "product_changed"

        if target_quantity != self.target_quantity:
            logger.info("target for product %s changed %s -> %s", product_id, self.target_quantity, target_quantity)
            self.target_quantity = target_quantity
            return "target_changed"

        return "unchanged"

    def retarget(self, target_quantity: float) -> None:
        """Record a target the engine derived itself (e.g. after a unit switch)."""
        self.target_quantity = float(target_quantity)

    def end(self) -> None:
        self.ledger.clear()
        self._started = False
        self.product_id = None
        self.target_quantity = 0.0
