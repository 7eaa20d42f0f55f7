from pydantic import BaseModel, Field


class SubscribeRequest(BaseModel):
    """Request body for newsletter subscription."""

    email: str = Field(..., description="Email address to subscribe")


class UnsubscribeRequest(BaseModel):
    """Request body for unsubscribing."""

    email: str = Field(..., description="Email address to deactivate")


class ApiResponse(BaseModel):
    """Response envelope shared by every endpoint."""

    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable message")
