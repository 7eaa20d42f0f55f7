"""
Public newsletter endpoints.

Endpoints:
- POST /subscribe - Create a pending subscriber and queue token issuance
- GET /confirm - Confirm an email address with the emailed token
- POST /unsubscribe - Deactivate a subscriber by email

Every response uses the {"success": bool, "message": str} envelope; the
HTTP status carries the outcome class.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import JSONResponse

from src.api.deps import get_clock, get_queue, get_queue_drainer, get_store
from src.api.schemas import ApiResponse, SubscribeRequest, UnsubscribeRequest
from src.components.confirmation import ConfirmInput
from src.components.confirmation import run as run_confirmation
from src.components.deactivation import UnsubscribeInput
from src.components.deactivation import run as run_deactivation
from src.components.subscribers.models import (
    INPUT_ERROR_CODES,
    INVALID_TOKEN,
    NOT_FOUND,
    TOKEN_EXPIRED,
    ErrorDetail,
)
from src.components.subscribers.ports import ClockPort, SubscriberStorePort
from src.components.subscription import SubscribeInput
from src.components.subscription import run as run_subscription
from src.components.subscription.ports import ValidationQueuePort

router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    400: {"model": ApiResponse, "description": "Invalid input or token"},
    404: {"model": ApiResponse, "description": "Subscriber not found"},
    500: {"model": ApiResponse, "description": "Storage failure"},
}


# --- Helper Functions ---


def envelope(status_code: int, success: bool, message: str) -> JSONResponse:
    body = ApiResponse(success=success, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def status_for_error(error: ErrorDetail) -> int:
    """Map a component error code to its HTTP status."""
    if error.code in INPUT_ERROR_CODES or error.code in (INVALID_TOKEN, TOKEN_EXPIRED):
        return status.HTTP_400_BAD_REQUEST
    if error.code == NOT_FOUND:
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_envelope(errors: list[ErrorDetail]) -> JSONResponse:
    if not errors:
        return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, False, "Unexpected error")
    error = errors[0]
    return envelope(status_for_error(error), False, error.message)


# --- Subscribe Endpoint ---


@router.post(
    "/subscribe",
    response_model=ApiResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
    summary="Subscribe to newsletter",
    description="Create a pending subscriber. A validation email is sent asynchronously.",
)
def subscribe(
    request_body: SubscribeRequest,
    background_tasks: BackgroundTasks,
    store: SubscriberStorePort = Depends(get_store),
    queue: ValidationQueuePort = Depends(get_queue),
    clock: ClockPort = Depends(get_clock),
    drain: Callable[[], object] | None = Depends(get_queue_drainer),
) -> JSONResponse:
    """
    Subscribe an email address.

    Already-subscribed addresses return 200 with success; nothing is written.
    With the in-memory queue, the token issuer runs after the response.
    """
    result = run_subscription(
        SubscribeInput(email=request_body.email),
        store=store,
        queue=queue,
        now=clock.now(),
    )

    if not result.success:
        return error_envelope(result.errors)

    if result.already_subscribed:
        return envelope(status.HTTP_200_OK, True, "Email is already subscribed")

    if drain is not None and result.queued:
        background_tasks.add_task(drain)

    return envelope(
        status.HTTP_201_CREATED,
        True,
        "Successfully subscribed. Validation email will be sent shortly.",
    )


# --- Confirm Endpoint ---


@router.get(
    "/confirm",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Confirm email address",
    description="Validate the token from the confirmation email.",
)
def confirm(
    subscriber_id: str | None = Query(default=None, alias="id"),
    token: str | None = Query(default=None),
    store: SubscriberStorePort = Depends(get_store),
    clock: ClockPort = Depends(get_clock),
) -> JSONResponse:
    """
    Confirm a subscriber's email address.

    Expired and invalid tokens are both 400, with distinct messages.
    """
    result = run_confirmation(
        ConfirmInput(subscriber_id=subscriber_id, token=token),
        store=store,
        now=clock.now(),
    )

    if not result.success:
        return error_envelope(result.errors)

    return envelope(status.HTTP_200_OK, True, "Email successfully validated")


# --- Unsubscribe Endpoint ---


@router.post(
    "/unsubscribe",
    response_model=ApiResponse,
    responses=ERROR_RESPONSES,
    summary="Unsubscribe from newsletter",
    description="Deactivate the subscriber registered with this email.",
)
def unsubscribe(
    request_body: UnsubscribeRequest,
    store: SubscriberStorePort = Depends(get_store),
    clock: ClockPort = Depends(get_clock),
) -> JSONResponse:
    """
    Unsubscribe an email address.

    Idempotent: unsubscribing an inactive subscriber succeeds again.
    """
    result = run_deactivation(
        UnsubscribeInput(email=request_body.email),
        store=store,
        now=clock.now(),
    )

    if not result.success:
        return error_envelope(result.errors)

    return envelope(status.HTTP_200_OK, True, "Successfully unsubscribed")
