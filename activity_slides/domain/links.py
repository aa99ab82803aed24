"""Classification of document share links.

The host issues three links per document from its "Share" menu; each one
has a recognisable URL shape. Classification is a pure total function:
every string maps to exactly one LinkKind.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Mapping


class LinkKind(str, Enum):
    EMPTY = "empty"
    COLLABORATION = "collaboration"
    TEMPLATE = "template"
    PUBLIC_VIEW = "public view"
    UNKNOWN = "unknown"


class LinkRole(str, Enum):
    COLLABORATION = "collaboration"
    TEMPLATE = "template"
    PUBLIC_VIEW = "public_view"

    @property
    def expected_kind(self) -> LinkKind:
        return _EXPECTED_KIND[self]

    @property
    def display_name(self) -> str:
        return _EXPECTED_KIND[self].value


_EXPECTED_KIND = {
    LinkRole.COLLABORATION: LinkKind.COLLABORATION,
    LinkRole.TEMPLATE: LinkKind.TEMPLATE,
    LinkRole.PUBLIC_VIEW: LinkKind.PUBLIC_VIEW,
}

# Checked in this order; the first match wins.
_COLLABORATION_RE = re.compile(r"/edit\?")
_TEMPLATE_RE = re.compile(r"/view\?.*mode=preview")
_PUBLIC_VIEW_RE = re.compile(r"/view\?(?!.*mode=preview)")


def classify(raw: str | None) -> LinkKind:
    text = raw or ""
    if text == "":
        return LinkKind.EMPTY
    if _COLLABORATION_RE.search(text):
        return LinkKind.COLLABORATION
    if _TEMPLATE_RE.search(text):
        return LinkKind.TEMPLATE
    if _PUBLIC_VIEW_RE.search(text):
        return LinkKind.PUBLIC_VIEW
    return LinkKind.UNKNOWN


def links_valid(links: Mapping[LinkRole, str]) -> bool:
    return all(classify(links.get(role, "")) is role.expected_kind for role in LinkRole)
