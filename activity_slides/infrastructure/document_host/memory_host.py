from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from activity_slides.domain.ports import ExportOutcome


@dataclass
class InMemoryDocumentHost:
    """
    Append-only page list. `fail_on_page` makes the n-th append (1-based)
    raise, `export_status` controls what the export dialog answers.
    """
    pages: List[Tuple[str, str]] = field(default_factory=list)
    export_status: str = "completed"
    export_url: str = "memory://document.pdf"
    fail_on_page: Optional[int] = None
    append_calls: int = 0
    export_calls: int = 0

    async def append_page(self, title: str, body: str) -> None:
        self.append_calls += 1
        if self.fail_on_page is not None and self.append_calls == self.fail_on_page:
            raise RuntimeError(f"append rejected on page {self.append_calls}")
        self.pages.append((title, body))

    async def request_export(self) -> ExportOutcome:
        self.export_calls += 1
        if self.export_status != "completed":
            return ExportOutcome(status=self.export_status)
        return ExportOutcome(status="completed", url=self.export_url)
