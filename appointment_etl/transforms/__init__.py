"""
Per-client transform strategies.
"""

from .base_strategy import GenericStrategy, TransformStrategy
from .bracketed_codes import BracketedCodeStrategy
from .registry import StrategyRegistry
from .status_sync import AppointmentStatusSync, StatusSyncStrategy

__all__ = [
    "TransformStrategy",
    "GenericStrategy",
    "BracketedCodeStrategy",
    "StatusSyncStrategy",
    "AppointmentStatusSync",
    "StrategyRegistry",
]
