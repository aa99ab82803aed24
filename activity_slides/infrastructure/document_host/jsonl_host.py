from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path

import structlog

from activity_slides.domain.ports import ExportOutcome

logger = structlog.get_logger(__name__)


class JsonlDocumentHost:
    """
    File-backed document: every appended page becomes one JSON line.
    Exporting hands back a file:// URL of the document itself.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def append_page(self, title: str, body: str) -> None:
        record = {
            "title": title,
            "body": body,
            "appended_at": datetime.now(timezone.utc).isoformat(),
        }
        await asyncio.to_thread(self._append_line, json.dumps(record, ensure_ascii=False))
        logger.debug("page_appended", path=str(self.path), title=title)

    async def request_export(self) -> ExportOutcome:
        if not self.path.exists():
            return ExportOutcome(status="aborted")
        return ExportOutcome(status="completed", url=self.path.resolve().as_uri())

    def _append_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fp:
            fp.write(line + "\n")
