"""
Confirmation component.

Token validation and pending -> validated promotion.
"""

from src.components.confirmation.component import run, run_confirm
from src.components.confirmation.models import ConfirmInput, ConfirmOutput

__all__ = [
    "run",
    "run_confirm",
    "ConfirmInput",
    "ConfirmOutput",
]
