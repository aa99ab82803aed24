"""Side-channel advisories.

In-flight operations narrate directly into an AdvisoryBoard instead of going
through the control-state engine. Entries may carry a deadline after which
they read as hidden; the per-link "Link valid!" confirmation uses that to
expire on its own.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from activity_slides.core.settings import settings
from activity_slides.domain.links import LinkKind, LinkRole, classify
from activity_slides.domain.schemas import HIDDEN, AdvisoryName, AdvisoryView, Tone

VALID_LINK_MESSAGE = "Link valid!"

LINK_ADVISORIES: Dict[LinkRole, AdvisoryName] = {
    LinkRole.COLLABORATION: AdvisoryName.COLLABORATION_LINK,
    LinkRole.TEMPLATE: AdvisoryName.TEMPLATE_LINK,
    LinkRole.PUBLIC_VIEW: AdvisoryName.PUBLIC_VIEW_LINK,
}


@dataclass(frozen=True)
class _Entry:
    view: AdvisoryView
    expires_at: Optional[float] = None


class AdvisoryBoard:
    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[AdvisoryName, _Entry] = {}

    def set(self, name: AdvisoryName, view: AdvisoryView, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        self._entries[name] = _Entry(view=view, expires_at=expires_at)

    def show(self, name: AdvisoryName, message: str, tone: Tone = Tone.INFO) -> None:
        self.set(name, AdvisoryView(visible=True, message=message, tone=tone))

    def hide(self, name: AdvisoryName) -> None:
        self._entries.pop(name, None)

    def clear(self, names: Iterable[AdvisoryName]) -> None:
        for name in names:
            self.hide(name)

    def has(self, name: AdvisoryName) -> bool:
        return self.get(name).visible

    def get(self, name: AdvisoryName) -> AdvisoryView:
        entry = self._entries.get(name)
        if entry is None:
            return HIDDEN
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[name]
            return HIDDEN
        return entry.view

    def visible(self) -> Dict[AdvisoryName, AdvisoryView]:
        out: Dict[AdvisoryName, AdvisoryView] = {}
        for name in list(self._entries):
            view = self.get(name)
            if view.visible:
                out[name] = view
        return out


def link_advisory(role: LinkRole, raw: str) -> Optional[AdvisoryView]:
    """
    Advisory for a freshly edited link field. None means "leave whatever is
    shown": unrecognised text gets no message of its own.
    """
    kind = classify(raw)
    if kind is LinkKind.EMPTY:
        return HIDDEN
    if kind is role.expected_kind:
        return AdvisoryView(visible=True, message=VALID_LINK_MESSAGE, tone=Tone.POSITIVE)
    if kind is LinkKind.UNKNOWN:
        return None
    return AdvisoryView(
        visible=True,
        message=f"You entered a {kind.value} link. Please enter a {role.display_name} link.",
        tone=Tone.WARN,
    )


class LinkValidationTransientAlert:
    """Per-role advisory; the positive confirmation expires after `ttl_seconds`."""

    def __init__(self, board: AdvisoryBoard, role: LinkRole, ttl_seconds: Optional[float] = None):
        self.board = board
        self.role = role
        self.name = LINK_ADVISORIES[role]
        self.ttl_seconds = settings.LINK_VALID_ALERT_SECONDS if ttl_seconds is None else ttl_seconds

    def on_link_changed(self, raw: str) -> AdvisoryView:
        view = link_advisory(self.role, raw)
        if view is None:
            return self.board.get(self.name)
        if not view.visible:
            self.board.hide(self.name)
            return view
        ttl = self.ttl_seconds if view.tone is Tone.POSITIVE else None
        # a new edit replaces the previous entry and its pending expiry
        self.board.set(self.name, view, ttl_seconds=ttl)
        return view
