"""
Token issuer component.

Attaches confirmation tokens to subscribers in response to queue events.
"""

from src.components.token_issuer.component import (
    build_confirmation_url,
    parse_validation_message,
    run,
    run_issue_token,
    run_process_message,
)
from src.components.token_issuer.models import (
    IssueOutcome,
    IssueTokenInput,
    IssueTokenOutput,
    MalformedMessageError,
)
from src.components.token_issuer.ports import ConfirmationMailerPort

__all__ = [
    # Component
    "run",
    "run_issue_token",
    "run_process_message",
    # Pure functions
    "parse_validation_message",
    "build_confirmation_url",
    # Models
    "IssueOutcome",
    "IssueTokenInput",
    "IssueTokenOutput",
    # Errors
    "MalformedMessageError",
    # Ports
    "ConfirmationMailerPort",
]
