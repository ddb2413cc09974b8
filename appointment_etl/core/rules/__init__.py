"""
Appointment validation battery.
"""

from .rule_engine import AppointmentValidator, BatchRule

__all__ = [
    "AppointmentValidator",
    "BatchRule",
]
