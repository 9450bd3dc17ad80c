"""Shared FastAPI dependencies for route modules."""

from __future__ import annotations

from pathlib import Path

from app.adapters.storage.json_file import JsonFileSignalStore
from app.core.config import settings
from app.services.moderation_service import ModerationService

_service: ModerationService | None = None
_service_data_dir: Path | None = None


def get_moderation_service() -> ModerationService:
    """Return the process-wide moderation service.

    A single instance is shared so its per-collection locks serialize every
    mutation in this process. Rebuilt if the data directory setting changes
    (primarily in tests).
    """

    global _service, _service_data_dir

    data_dir = Path(settings.app.data_dir)
    if _service is None or _service_data_dir != data_dir:
        _service = ModerationService(JsonFileSignalStore(data_dir))
        _service_data_dir = data_dir
    return _service
