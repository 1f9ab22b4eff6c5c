"""
Domain type definitions for batch allocation.
"""
from __future__ import annotations

from typing import Literal, TypedDict, NotRequired


Unit = Literal["kg", "g", "lb", "oz", "l", "ml", "pcs", "box", "pack", "bag"]

BatchStatus = Literal["active", "inactive"]


class Batch(TypedDict):
    id: int
    productId: int
    quantity: float  # in nativeUnit
    nativeUnit: Unit
    expiryDate: str  # yyyy-MM-dd
    unitPrice: float  # per canonical reference unit (e.g. per kg)
    status: BatchStatus
    batchNumber: NotRequired[str]
    purchaseDate: NotRequired[str]  # yyyy-MM-dd


class AllocationTarget(TypedDict):
    productId: int
    targetQuantity: float
    displayUnit: Unit
