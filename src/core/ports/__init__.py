# Newsletter backend: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailPort,
    EmailResult,
    EmailStatus,
)

__all__ = [
    "EmailPort",
    "EmailResult",
    "EmailStatus",
]
