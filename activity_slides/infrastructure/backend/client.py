from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx
import structlog

from activity_slides.core.settings import settings
from activity_slides.domain.exceptions import InvalidDataError, TransportFailureError
from activity_slides.domain.links import LinkRole
from activity_slides.domain.schemas import GeneratedDeck
from activity_slides.infrastructure.observability.context_vars import (
    CORRELATION_ID_HEADER,
    get_correlation_id,
)

logger = structlog.get_logger(__name__)


def _extract_error_message(payload: Any, response_text: str) -> str:
    """Best-effort message from the shapes the backend has been seen to return."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error.strip():
            return error.strip()
        if payload.get("message"):
            return str(payload["message"])
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            return ", ".join(str(item) for item in errors)
    text = (response_text or "").strip()
    return text[:300] if text else "Unknown error"


def _raise_from_http_error(response: httpx.Response) -> None:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    raise TransportFailureError(
        _extract_error_message(payload, response.text),
        status_code=response.status_code,
        details=payload,
    )


def _normalize_deck(data: Any) -> GeneratedDeck:
    """
    The generation endpoint answers `{"slides": [{section: [text, ...]}]}`;
    `{"sections": {...}}` is accepted as well.
    """
    if isinstance(data, dict):
        if isinstance(data.get("sections"), dict):
            return GeneratedDeck(sections=_clean_sections(data["sections"]))
        slides = data.get("slides")
        if isinstance(slides, list) and slides and isinstance(slides[0], dict):
            return GeneratedDeck(sections=_clean_sections(slides[0]))
        if isinstance(slides, dict):
            return GeneratedDeck(sections=_clean_sections(slides))
    raise InvalidDataError("Invalid response format from slide generation", ["slides"])


def _clean_sections(raw: Mapping[str, Any]) -> Dict[str, List[str]]:
    sections: Dict[str, List[str]] = {}
    for tag, items in raw.items():
        if isinstance(items, list):
            sections[str(tag)] = [str(item) for item in items if item is not None]
    return sections


class AsyncActivityBackendClient:
    """
    HTTP adapter for the activity backend (lookup, slide generation, PDF
    upload, link persistence and variations). All endpoints are JSON POSTs.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        user_id: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.ACTIVITY_API_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.ACTIVITY_API_TIMEOUT_SECONDS
        self.user_id = user_id if user_id is not None else settings.ACTIVITY_API_USER_ID
        self._managed_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.timeout_seconds)

    async def __aenter__(self) -> "AsyncActivityBackendClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._managed_client:
            await self.client.aclose()

    async def fetch_activity(self, activity_id: str) -> Optional[Dict[str, Any]]:
        """Returns the raw activity record, or None when the backend has no such activity."""
        response = await self._post("/fetchActivity", {"activityId": activity_id})
        if response.status_code == 404:
            return None
        if not response.is_success:
            _raise_from_http_error(response)

        data = self._json(response)
        record = data.get("activityData") if isinstance(data, dict) else None
        if record is None:
            return None
        logger.debug("activity_fetched", activity_id=activity_id)
        return record

    async def generate_content(self, activity_id: str, grade_label: str) -> GeneratedDeck:
        response = await self._post(
            "/generateSlides", {"activityId": activity_id, "gradeLevel": grade_label}
        )
        if not response.is_success:
            _raise_from_http_error(response)
        return _normalize_deck(self._json(response))

    async def upload_pdf(self, activity_id: str, pdf_name: str, export_url: str) -> Dict[str, Any]:
        response = await self._post(
            "/uploadPdf",
            {"pdfUrl": export_url, "activityId": activity_id, "pdfName": pdf_name},
        )
        if not response.is_success:
            _raise_from_http_error(response)
        data = self._json(response)
        logger.info("pdf_uploaded", activity_id=activity_id, pdf_url=data.get("pdfUrl"))
        return {
            "name": pdf_name,
            "source": data.get("pdfUrl"),
            "thumbnail": data.get("thumbnailUrl"),
        }

    async def persist_links(
        self,
        activity_id: str,
        links: Mapping[LinkRole, str],
        pdf: Mapping[str, Any],
    ) -> Dict[str, Any]:
        body = {
            "activityId": activity_id,
            "userID": self.user_id,
            "slides": {
                "pdf": dict(pdf),
                "slideUrl": links.get(LinkRole.PUBLIC_VIEW, ""),
                "editableSlideUrl": links.get(LinkRole.TEMPLATE, ""),
                "collaborationUrl": links.get(LinkRole.COLLABORATION, ""),
            },
        }
        response = await self._post("/updateActivitySlides", body)
        if not response.is_success:
            _raise_from_http_error(response)
        return self._json(response)

    async def create_variation(
        self,
        activity_id: str,
        grade_index: int,
        links: Mapping[LinkRole, str],
        pdf: Mapping[str, Any],
    ) -> Dict[str, Any]:
        body = {
            "activityId": activity_id,
            "ageGroup": [grade_index],
            "userID": self.user_id,
            "inheritCreatorID": settings.VARIATION_INHERIT_CREATOR_ID,
            "variation": settings.VARIATION_DESCRIPTION_DEFAULT,
            "slides": {
                "publicViewLink": links.get(LinkRole.PUBLIC_VIEW, ""),
                "collaborationLink": links.get(LinkRole.COLLABORATION, ""),
                "templateLink": links.get(LinkRole.TEMPLATE, ""),
                "pdf": dict(pdf),
            },
        }
        response = await self._post("/createVariation", body)
        if not response.is_success:
            _raise_from_http_error(response)
        return self._json(response)

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        url = self.base_url + path
        headers = {CORRELATION_ID_HEADER: get_correlation_id()}
        try:
            return await self.client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("backend_transport_failed", path=path, error=str(exc))
            raise TransportFailureError(f"Could not reach backend: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise TransportFailureError(
                "Backend returned a non-JSON body", status_code=response.status_code
            ) from exc
        return data if isinstance(data, dict) else {"data": data}
