"""Activity selection toggle.

Unselected -> Verifying -> Selected | Unselected(with error)

The primary identification action is a toggle: while Selected it drops the
activity locally (no network call); otherwise it verifies the typed id.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from activity_slides.domain.exceptions import ActivityNotFoundError, ActivitySlidesError
from activity_slides.domain.schemas import Activity
from activity_slides.domain.validation import parse_activity

logger = structlog.get_logger(__name__)

FetchActivity = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]


class SelectionState(str, Enum):
    UNSELECTED = "unselected"
    VERIFYING = "verifying"
    SELECTED = "selected"


@dataclass(frozen=True)
class ActivitySelection:
    state: SelectionState = SelectionState.UNSELECTED
    activity: Optional[Activity] = None
    error: Optional[ActivitySlidesError] = None

    @property
    def is_selected(self) -> bool:
        return self.state is SelectionState.SELECTED

    @property
    def input_locked(self) -> bool:
        return self.state is not SelectionState.UNSELECTED

    def begin_verification(self) -> "ActivitySelection":
        return ActivitySelection(state=SelectionState.VERIFYING)

    def resolve(self, activity: Activity) -> "ActivitySelection":
        return ActivitySelection(state=SelectionState.SELECTED, activity=activity)

    def fail(self, error: ActivitySlidesError) -> "ActivitySelection":
        return ActivitySelection(state=SelectionState.UNSELECTED, error=error)

    def reset(self) -> "ActivitySelection":
        return ActivitySelection()


async def verify(activity_id: str, fetch_activity: FetchActivity) -> Activity:
    """
    Looks the activity up and validates it.
    Raises ActivityNotFoundError, InvalidDataError or TransportFailureError.
    """
    record = await fetch_activity(activity_id)
    if record is None:
        logger.info("activity_not_found", activity_id=activity_id)
        raise ActivityNotFoundError(activity_id)

    activity = parse_activity(record, requested_id=activity_id)
    logger.info(
        "activity_verified",
        activity_id=activity.id,
        title=activity.title,
        grade_groups=activity.grade_groups,
    )
    return activity


async def toggle(
    selection: ActivitySelection,
    activity_id: str,
    fetch_activity: FetchActivity,
    on_state: Optional[Callable[[ActivitySelection], None]] = None,
) -> ActivitySelection:
    """
    Runs the identification action once and returns the resulting selection.
    `on_state` observes the intermediate Verifying state.
    Failures never propagate: they land in `selection.error`.
    """
    if selection.is_selected:
        logger.info("activity_deselected", activity_id=selection.activity.id if selection.activity else None)
        return selection.reset()

    verifying = selection.begin_verification()
    if on_state is not None:
        on_state(verifying)

    try:
        activity = await verify(activity_id.strip(), fetch_activity)
    except ActivitySlidesError as exc:
        logger.warning("activity_verification_failed", activity_id=activity_id, error=str(exc))
        return verifying.fail(exc)
    return verifying.resolve(activity)
