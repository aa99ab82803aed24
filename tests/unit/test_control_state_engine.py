from __future__ import annotations

import itertools

import pytest

from activity_slides.domain import control_state as engine
from activity_slides.domain.links import LinkRole
from activity_slides.domain.schemas import (
    Activity,
    AdvisoryName,
    BusyFlags,
    ControlName,
    SignalSnapshot,
    Tone,
)

VALID_LINKS = {
    LinkRole.COLLABORATION: "https://host/design/a/edit?utm=1",
    LinkRole.TEMPLATE: "https://host/design/a/view?mode=preview",
    LinkRole.PUBLIC_VIEW: "https://host/design/a/view?utm=1",
}
EMPTY_LINKS = {role: "" for role in LinkRole}

PARENT = Activity(id="A", title="Shadow tag", grade_groups=[1, 2])
SINGLE = Activity(id="B", title="Leaf pile", grade_groups=[2])


def _snapshot(**kwargs) -> SignalSnapshot:
    return SignalSnapshot(**kwargs)


def test_activity_without_grade_or_links_names_missing_preconditions() -> None:
    state = engine.compute(
        _snapshot(activity=PARENT, selected_grade_index=None, links=EMPTY_LINKS, busy=BusyFlags())
    )

    generate = state.control(ControlName.GENERATE_SLIDES)
    assert generate.disabled is True
    assert "Select a grade level" in state.advisory(AdvisoryName.GENERATE_INFO).message

    variation = state.control(ControlName.CREATE_VARIATION)
    assert variation.disabled is True
    assert "Select a grade level" in state.advisory(AdvisoryName.VARIATION_INFO).message

    update = state.control(ControlName.UPDATE_LINKS)
    assert update.disabled is True
    assert '"Share" menu' in state.advisory(AdvisoryName.UPDATE_LINKS_INFO).message


def test_nothing_selected_asks_for_activity_first_everywhere() -> None:
    state = engine.compute(_snapshot())

    for name in (AdvisoryName.GENERATE_INFO, AdvisoryName.VARIATION_INFO, AdvisoryName.UPDATE_LINKS_INFO):
        advisory = state.advisory(name)
        assert advisory.visible is True
        assert advisory.tone is Tone.WARN
        assert advisory.message == engine.SELECT_ACTIVITY_FIRST_MESSAGE
    assert state.control(ControlName.GENERATE_SLIDES).label == engine.GENERATE_LABEL
    assert state.activity_id_locked is False


def test_identify_control_needs_typed_id_until_selected() -> None:
    blank = engine.compute(_snapshot(activity_id_input="  "))
    assert blank.control(ControlName.IDENTIFY).disabled is True
    assert blank.control(ControlName.IDENTIFY).label == engine.FETCH_ACTIVITY_LABEL

    typed = engine.compute(_snapshot(activity_id_input="66a16fe0"))
    assert typed.control(ControlName.IDENTIFY).disabled is False
    assert typed.control(ControlName.IDENTIFY).variant == "primary"

    selected = engine.compute(_snapshot(activity=PARENT))
    identify = selected.control(ControlName.IDENTIFY)
    assert identify.disabled is False
    assert identify.label == engine.USE_OTHER_ACTIVITY_LABEL
    assert identify.variant == "secondary"
    assert selected.activity_id_locked is True


def test_everything_ready_enables_all_actions_with_grade_labels() -> None:
    state = engine.compute(_snapshot(activity=PARENT, selected_grade_index=2, links=VALID_LINKS))

    assert state.control(ControlName.GENERATE_SLIDES).disabled is False
    assert state.control(ControlName.GENERATE_SLIDES).label == "Generate slides for 1-2"
    assert state.control(ControlName.CREATE_VARIATION).disabled is False
    assert state.control(ControlName.CREATE_VARIATION).label == "Create variation for 1-2"
    assert state.control(ControlName.UPDATE_LINKS).disabled is False
    assert all(not advisory.visible for advisory in state.advisories.values())


def test_update_links_does_not_need_a_grade() -> None:
    state = engine.compute(_snapshot(activity=PARENT, links=VALID_LINKS))
    assert state.control(ControlName.UPDATE_LINKS).disabled is False
    assert state.control(ControlName.GENERATE_SLIDES).disabled is True


def test_invalid_links_block_variation_after_grade_is_chosen() -> None:
    state = engine.compute(_snapshot(activity=PARENT, selected_grade_index=3, links=EMPTY_LINKS))
    assert state.control(ControlName.CREATE_VARIATION).disabled is True
    assert state.advisory(AdvisoryName.VARIATION_INFO).message == engine.INVALID_LINKS_VARIATION_MESSAGE
    assert state.control(ControlName.GENERATE_SLIDES).disabled is False


@pytest.mark.parametrize("grade", [None, 0, 1, 2, 3, 7, 42, -1])
@pytest.mark.parametrize("links", [VALID_LINKS, EMPTY_LINKS])
def test_single_grade_group_activity_never_enables_variation(grade, links) -> None:
    state = engine.compute(_snapshot(activity=SINGLE, selected_grade_index=grade, links=links))
    assert state.control(ControlName.CREATE_VARIATION).disabled is True


def test_single_grade_group_advisory_points_to_parent_activity() -> None:
    state = engine.compute(_snapshot(activity=SINGLE, selected_grade_index=1, links=VALID_LINKS))
    assert state.advisory(AdvisoryName.VARIATION_INFO).message == engine.SINGLE_GRADE_GROUP_MESSAGE


def test_out_of_range_grade_counts_as_unselected() -> None:
    state = engine.compute(_snapshot(activity=PARENT, selected_grade_index=99, links=VALID_LINKS))
    assert state.control(ControlName.GENERATE_SLIDES).disabled is True
    assert state.control(ControlName.GENERATE_SLIDES).label == engine.GENERATE_SELECTED_LABEL


_BUSY_FIELDS = ("database_in_flight", "generation_in_flight", "awaiting_export", "export_in_flight")


@pytest.mark.parametrize(
    "flags",
    [
        dict(zip(_BUSY_FIELDS, combo))
        for combo in itertools.product([False, True], repeat=len(_BUSY_FIELDS))
        if any(combo)
    ],
)
@pytest.mark.parametrize("activity", [None, PARENT, SINGLE])
@pytest.mark.parametrize("links", [VALID_LINKS, EMPTY_LINKS])
def test_any_busy_flag_disables_every_control(flags, activity, links) -> None:
    state = engine.compute(
        _snapshot(
            activity=activity,
            activity_id_input="A",
            selected_grade_index=2,
            links=links,
            busy=BusyFlags(**flags),
        )
    )
    for name in ControlName:
        control = state.control(name)
        assert control.disabled is True
        assert control.loading is True


def test_in_flight_defers_advisories_and_uses_generic_label() -> None:
    state = engine.compute(
        _snapshot(activity=PARENT, links=VALID_LINKS, busy=BusyFlags(database_in_flight=True, awaiting_export=True))
    )
    assert state.advisories_deferred is True
    assert all(not advisory.visible for advisory in state.advisories.values())
    assert {control.label for control in state.controls.values()} == {engine.WORKING_LABEL}


def test_awaiting_export_names_what_it_waits_for() -> None:
    state = engine.compute(_snapshot(activity=PARENT, links=VALID_LINKS, busy=BusyFlags(awaiting_export=True)))
    assert state.advisories_deferred is False
    assert state.control(ControlName.UPDATE_LINKS).label == engine.WAITING_FOR_EXPORT_LABEL
    assert {control.label for control in state.controls.values()} == {engine.WAITING_FOR_EXPORT_LABEL}
    assert all(control.disabled and control.loading for control in state.controls.values())
    info = state.advisory(AdvisoryName.UPDATE_LINKS_INFO)
    assert info.visible is True
    assert info.tone is Tone.INFO


def test_compute_is_deterministic() -> None:
    snapshot = _snapshot(activity=PARENT, selected_grade_index=1, links=VALID_LINKS)
    assert engine.compute(snapshot) == engine.compute(snapshot)
