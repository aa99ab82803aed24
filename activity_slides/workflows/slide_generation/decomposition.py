from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Union

import structlog

from activity_slides.domain.schemas import GeneratedDeck

logger = structlog.get_logger(__name__)

# Fixed display order of the generated deck.
SECTION_ORDER: Sequence[str] = ("play", "reflect", "connect", "grow")


@dataclass(frozen=True)
class InsertionUnit:
    section_tag: str
    body_text: str


def _sections_of(payload: Union[GeneratedDeck, Mapping[str, Any], None]) -> Mapping[str, Any]:
    if payload is None:
        return {}
    if isinstance(payload, GeneratedDeck):
        return payload.sections
    sections = payload.get("sections", payload)
    return sections if isinstance(sections, Mapping) else {}


def decompose(payload: Union[GeneratedDeck, Mapping[str, Any], None]) -> List[InsertionUnit]:
    """
    Flattens a generated deck into insertion units, section by section in
    SECTION_ORDER and item by item within each section. Missing or empty
    sections contribute nothing.
    """
    sections = _sections_of(payload)
    unknown = [tag for tag in sections if tag not in SECTION_ORDER]
    if unknown:
        logger.debug("deck_sections_ignored", sections=unknown)

    units: List[InsertionUnit] = []
    for tag in SECTION_ORDER:
        items = sections.get(tag)
        if not items or isinstance(items, (str, bytes)):
            continue
        for item in items:
            if item is None:
                continue
            units.append(InsertionUnit(section_tag=tag, body_text=str(item)))
    return units
