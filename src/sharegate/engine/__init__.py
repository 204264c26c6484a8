"""Item lifecycle engine: allocation, gating, accounting, sweeping."""

from sharegate.engine.accountant import ViewAccountant
from sharegate.engine.gate import AccessGate
from sharegate.engine.ids import IdAllocator
from sharegate.engine.migration import seal_legacy_content
from sharegate.engine.service import ShareService
from sharegate.engine.sweeper import LifecycleSweeper, SweepScheduler

__all__ = [
    "AccessGate",
    "IdAllocator",
    "LifecycleSweeper",
    "ShareService",
    "SweepScheduler",
    "ViewAccountant",
    "seal_legacy_content",
]
