"""Derived control state.

`compute` maps a SignalSnapshot to the full ControlState. It is pure and
total: the rendering layer calls it after every signal change and shows the
result as-is, so no stale combination of labels and flags can survive.

Precedence, highest first:

1. Anything in flight (database, generation, export): every control is
   disabled and loading with a generic label. Advisories are deferred to the
   in-flight operation, which narrates through the side channel.
2. Awaiting the operator's export confirmation: every control disabled; the
   update-links control explains what it is waiting for.
3. Otherwise each group (identification, generation, variation, link update)
   is derived independently from the same three booleans.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from activity_slides.domain.grades import grade_label
from activity_slides.domain.links import links_valid
from activity_slides.domain.schemas import (
    ENGINE_ADVISORIES,
    HIDDEN,
    AdvisoryName,
    AdvisoryView,
    ControlName,
    ControlState,
    ControlView,
    SignalSnapshot,
    Tone,
)

WORKING_LABEL = "Talking to backend..."
WAITING_FOR_EXPORT_LABEL = "Waiting for export"
WAITING_FOR_EXPORT_MESSAGE = "Waiting for you to export the PDF..."

FETCH_ACTIVITY_LABEL = "Fetch Activity by ID"
USE_OTHER_ACTIVITY_LABEL = "Use other activity"

GENERATE_LABEL = "Generate slides"
GENERATE_SELECTED_LABEL = "Generate slides for selected activity"
CREATE_VARIATION_LABEL = "Create variation"
CREATE_VARIATION_SELECTED_LABEL = "Create variation for selected activity"
UPDATE_LINKS_LABEL = "Update slide links"

SELECT_ACTIVITY_FIRST_MESSAGE = "Select an activity first! Scroll to the top."
SELECT_GRADE_LEVEL_GENERATE_MESSAGE = (
    "Select a grade level first. This is used to generate age-appropriate slides."
)
SELECT_GRADE_LEVEL_VARIATION_MESSAGE = "Select a grade level to create a variation."
SINGLE_GRADE_GROUP_MESSAGE = (
    "The selected activity only has one age group. Find the parent activity to create a variation."
)
INVALID_LINKS_VARIATION_MESSAGE = "Enter valid slide links to create a variation."
PASTE_LINKS_MESSAGE = (
    'Copy links from the "Share" menu into the text boxes above to update activity.'
)
GENERATION_ORDER_WARNING = (
    "If you interact with the document while slides are generating, they may generate out of order."
)

_Group = Tuple[ControlView, AdvisoryView]


def _warn(message: str) -> AdvisoryView:
    return AdvisoryView(visible=True, message=message, tone=Tone.WARN)


def _disabled(label: str) -> ControlView:
    return ControlView(disabled=True, label=label)


def _all_busy(label: str) -> Dict[ControlName, ControlView]:
    controls = {name: ControlView(disabled=True, label=label, loading=True) for name in ControlName}
    controls[ControlName.IDENTIFY] = ControlView(disabled=True, label=label, loading=True, variant="secondary")
    return controls


def _identify_group(snapshot: SignalSnapshot) -> ControlView:
    if snapshot.activity is not None:
        return ControlView(disabled=False, label=USE_OTHER_ACTIVITY_LABEL, variant="secondary")
    return ControlView(
        disabled=not snapshot.activity_id_input.strip(),
        label=FETCH_ACTIVITY_LABEL,
        variant="primary",
    )


def _generation_group(has_activity: bool, grade: Optional[str]) -> _Group:
    if not has_activity:
        return _disabled(GENERATE_LABEL), _warn(SELECT_ACTIVITY_FIRST_MESSAGE)
    if grade is None:
        return _disabled(GENERATE_SELECTED_LABEL), _warn(SELECT_GRADE_LEVEL_GENERATE_MESSAGE)
    return ControlView(disabled=False, label=f"Generate slides for {grade}"), HIDDEN


def _variation_group(
    has_activity: bool, grade: Optional[str], links_ok: bool, multiple_grades: bool
) -> _Group:
    if not has_activity:
        return _disabled(CREATE_VARIATION_LABEL), _warn(SELECT_ACTIVITY_FIRST_MESSAGE)
    if grade is None:
        return _disabled(CREATE_VARIATION_SELECTED_LABEL), _warn(SELECT_GRADE_LEVEL_VARIATION_MESSAGE)
    if not multiple_grades:
        return _disabled(CREATE_VARIATION_LABEL), _warn(SINGLE_GRADE_GROUP_MESSAGE)
    if not links_ok:
        return _disabled(f"Create variation for {grade}"), _warn(INVALID_LINKS_VARIATION_MESSAGE)
    return ControlView(disabled=False, label=f"Create variation for {grade}"), HIDDEN


def _update_links_group(has_activity: bool, links_ok: bool) -> _Group:
    if not has_activity:
        return _disabled(UPDATE_LINKS_LABEL), _warn(SELECT_ACTIVITY_FIRST_MESSAGE)
    if not links_ok:
        return _disabled(UPDATE_LINKS_LABEL), _warn(PASTE_LINKS_MESSAGE)
    return ControlView(disabled=False, label=UPDATE_LINKS_LABEL), HIDDEN


def compute(snapshot: SignalSnapshot) -> ControlState:
    locked = snapshot.activity is not None
    busy = snapshot.busy

    if busy.any_in_flight:
        return ControlState(
            controls=_all_busy(WORKING_LABEL),
            advisories={name: HIDDEN for name in ENGINE_ADVISORIES},
            activity_id_locked=True,
            advisories_deferred=True,
        )

    if busy.awaiting_export:
        advisories = {name: HIDDEN for name in ENGINE_ADVISORIES}
        advisories[AdvisoryName.UPDATE_LINKS_INFO] = AdvisoryView(
            visible=True, message=WAITING_FOR_EXPORT_MESSAGE, tone=Tone.INFO
        )
        return ControlState(
            controls=_all_busy(WAITING_FOR_EXPORT_LABEL),
            advisories=advisories,
            activity_id_locked=True,
        )

    has_activity = snapshot.activity is not None
    grade = grade_label(snapshot.selected_grade_index)
    links_ok = links_valid(snapshot.links)
    multiple_grades = has_activity and snapshot.activity.has_multiple_grade_groups

    generate, generate_info = _generation_group(has_activity, grade)
    variation, variation_info = _variation_group(has_activity, grade, links_ok, multiple_grades)
    update_links, update_links_info = _update_links_group(has_activity, links_ok)

    return ControlState(
        controls={
            ControlName.IDENTIFY: _identify_group(snapshot),
            ControlName.GENERATE_SLIDES: generate,
            ControlName.CREATE_VARIATION: variation,
            ControlName.UPDATE_LINKS: update_links,
        },
        advisories={
            AdvisoryName.GENERATE_INFO: generate_info,
            AdvisoryName.VARIATION_INFO: variation_info,
            AdvisoryName.UPDATE_LINKS_INFO: update_links_info,
        },
        activity_id_locked=locked,
    )
