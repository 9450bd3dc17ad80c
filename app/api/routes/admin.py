from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from app.api.dependencies import get_moderation_service
from app.core.auth import require_admin
from app.schemas.signal import ModerationActionRequest, ModerationActionResponse
from app.services.moderation_service import ModerationService
from app.utils.admin_view import render_admin_dashboard

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("", response_class=HTMLResponse)
def admin_dashboard(service: ModerationService = Depends(get_moderation_service)) -> HTMLResponse:
    """Render the approval dashboard for pending signals."""

    return HTMLResponse(render_admin_dashboard(service.list_pending(), service.counts()))


@router.get("/pending")
def list_pending_signals(
    service: ModerationService = Depends(get_moderation_service),
) -> list[dict[str, Any]]:
    """Return signals awaiting review, oldest first."""

    return service.list_pending()


@router.post("/approve", response_model=ModerationActionResponse)
def approve_signal(
    body: ModerationActionRequest,
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationActionResponse:
    """Publish a pending signal.

    Raises:
        NotFoundAppError: 404 when the id is not in the pending queue.
        PersistenceAppError: 500 when the move could not be saved.
    """

    service.approve(body.id)
    return ModerationActionResponse()


@router.post("/reject", response_model=ModerationActionResponse)
def reject_signal(
    body: ModerationActionRequest,
    service: ModerationService = Depends(get_moderation_service),
) -> ModerationActionResponse:
    """Discard a pending signal."""

    service.reject(body.id)
    return ModerationActionResponse()
