"""Pydantic schemas for signal submission and moderation."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SignalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class SubmitSignalResponse(BaseModel):
    success: bool = True
    id: str = Field(..., description="Identifier assigned to the pending signal.")
    message: str = "Signal submitted for review!"


class ModerationActionRequest(BaseModel):
    """Approve/reject request addressing a pending signal by id."""

    id: str = Field(..., min_length=1, description="Identifier of the pending signal.")


class ModerationActionResponse(BaseModel):
    success: bool = True
