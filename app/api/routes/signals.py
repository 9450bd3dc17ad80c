from typing import Any

from fastapi import APIRouter, Body, Depends, status

from app.api.dependencies import get_moderation_service
from app.core.rate_limit import enforce_submission_rate_limit
from app.schemas.signal import SubmitSignalResponse
from app.services.moderation_service import ModerationService

router = APIRouter(tags=["Signals"])


@router.get("/signals")
def list_published_signals(
    service: ModerationService = Depends(get_moderation_service),
) -> list[dict[str, Any]]:
    """Return every approved signal, in approval order."""

    return service.list_approved()


@router.post(
    "/signals",
    response_model=SubmitSignalResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_submission_rate_limit)],
)
def submit_signal(
    payload: Any = Body(None, description="Signal object with at least title and startTime."),
    service: ModerationService = Depends(get_moderation_service),
) -> SubmitSignalResponse:
    """Queue a signal for moderation.

    The request is rate limited per client before the payload is validated.

    Returns:
        SubmitSignalResponse carrying the id assigned to the pending signal.

    Raises:
        ValidationAppError: 400 when title/startTime are missing or invalid.
        RateLimitAppError: 429 when the client exceeded its submission budget.
        PersistenceAppError: 500 when the pending queue could not be saved.
    """

    signal_id = service.submit(payload)
    return SubmitSignalResponse(id=signal_id)
