"""
Deactivation component.

Unsubscribe by email (active -> inactive).
"""

from src.components.deactivation.component import run, run_unsubscribe
from src.components.deactivation.models import UnsubscribeInput, UnsubscribeOutput

__all__ = [
    "run",
    "run_unsubscribe",
    "UnsubscribeInput",
    "UnsubscribeOutput",
]
