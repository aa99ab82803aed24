from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

from activity_slides.domain.links import LinkRole
from activity_slides.domain.schemas import GeneratedDeck


class ActivityBackendProtocol(Protocol):
    async def fetch_activity(self, activity_id: str) -> Optional[Dict[str, Any]]: ...

    async def generate_content(self, activity_id: str, grade_label: str) -> GeneratedDeck: ...

    async def upload_pdf(self, activity_id: str, pdf_name: str, export_url: str) -> Dict[str, Any]: ...

    async def persist_links(
        self,
        activity_id: str,
        links: Mapping[LinkRole, str],
        pdf: Mapping[str, Any],
    ) -> Dict[str, Any]: ...

    async def create_variation(
        self,
        activity_id: str,
        grade_index: int,
        links: Mapping[LinkRole, str],
        pdf: Mapping[str, Any],
    ) -> Dict[str, Any]: ...


@dataclass(frozen=True)
class ExportOutcome:
    status: str  # "completed" | "aborted"
    url: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.status != "completed"


class DocumentHostProtocol(Protocol):
    async def append_page(self, title: str, body: str) -> None: ...

    async def request_export(self) -> ExportOutcome: ...
