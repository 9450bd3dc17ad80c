"""JSON file signal store.

Each collection lives in ``<data_dir>/<name>.json`` as a pretty-printed JSON
array. Writes replace the whole file: content is written to a temporary file
in the same directory and moved into place with ``os.replace`` so readers
never observe a half-written collection.

Notes:
- Not safe across processes: two processes writing the same collection race
  and the last write wins. In-process callers must serialize mutations.
- Read failures degrade to an empty list and are logged, never raised.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from app.adapters.storage.base import AbstractSignalStore, Collection, SignalRecord

logger = logging.getLogger(__name__)


class JsonFileSignalStore(AbstractSignalStore):
    """Store collections as JSON arrays on the local filesystem."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, name: Collection) -> Path:
        return self._data_dir / f"{Collection(name).value}.json"

    def read_collection(self, name: Collection) -> list[SignalRecord]:
        path = self.path_for(name)
        if not path.is_file():
            return []

        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error(
                "store.read_failed",
                extra={
                    "collection": Collection(name).value,
                    "path": str(path),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return []

        if not isinstance(parsed, list):
            logger.error(
                "store.read_failed",
                extra={
                    "collection": Collection(name).value,
                    "path": str(path),
                    "error_type": "NotAnArray",
                    "error_msg": f"expected a JSON array, got {type(parsed).__name__}",
                },
            )
            return []

        return [record for record in parsed if isinstance(record, dict)]

    def write_collection(self, name: Collection, records: list[SignalRecord]) -> bool:
        path = self.path_for(name)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            content = json.dumps(list(records), indent=2, ensure_ascii=False)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{path.stem}-",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error(
                "store.write_failed",
                extra={
                    "collection": Collection(name).value,
                    "path": str(path),
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False

        logger.debug(
            "store.written",
            extra={"collection": Collection(name).value, "size": len(records)},
        )
        return True
