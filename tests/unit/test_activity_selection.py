import asyncio
from typing import Any, Dict, List, Optional

import pytest

from activity_slides.domain import selection as selection_flow
from activity_slides.domain.exceptions import (
    ActivityNotFoundError,
    InvalidDataError,
    TransportFailureError,
)
from activity_slides.domain.selection import ActivitySelection, SelectionState
from activity_slides.domain.validation import find_activity_problems, parse_activity


class _FakeBackend:
    def __init__(self, records: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.records = records or {}
        self.error = error
        self.calls: List[str] = []

    async def fetch_activity(self, activity_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append(activity_id)
        if self.error is not None:
            raise self.error
        return self.records.get(activity_id)


GOOD_RECORD = {"_id": "A1", "title": "Shadow tag", "age_group": [1, 2, 3]}


def test_find_activity_problems_lists_every_offending_field() -> None:
    problems = find_activity_problems({"title": "  ", "other": 1})
    assert problems == ["title must not be empty.", "Missing property: age_group"]


@pytest.mark.parametrize("age_group", [[], "1,2", [1, "2"], [True], None])
def test_parse_activity_rejects_malformed_grade_groups(age_group) -> None:
    with pytest.raises(InvalidDataError) as excinfo:
        parse_activity({"_id": "A1", "title": "x", "age_group": age_group}, requested_id="A1")
    assert excinfo.value.problems


def test_parse_activity_falls_back_to_requested_id() -> None:
    activity = parse_activity({"title": " Leaf pile ", "age_group": [2]}, requested_id="B7")
    assert activity.id == "B7"
    assert activity.title == "Leaf pile"
    assert activity.grade_groups == [2]


def test_toggle_selects_verified_activity_and_reports_verifying_state() -> None:
    backend = _FakeBackend(records={"A1": GOOD_RECORD})
    observed: List[SelectionState] = []

    async def _run() -> ActivitySelection:
        return await selection_flow.toggle(
            ActivitySelection(), " A1 ", backend.fetch_activity, on_state=lambda s: observed.append(s.state)
        )

    result = asyncio.run(_run())

    assert observed == [SelectionState.VERIFYING]
    assert result.state is SelectionState.SELECTED
    assert result.input_locked is True
    assert result.activity is not None
    assert result.activity.grade_groups == [1, 2, 3]
    assert backend.calls == ["A1"]


def test_toggle_not_found_returns_to_unselected_with_error() -> None:
    backend = _FakeBackend()
    result = asyncio.run(selection_flow.toggle(ActivitySelection(), "missing", backend.fetch_activity))

    assert result.state is SelectionState.UNSELECTED
    assert result.input_locked is False
    assert isinstance(result.error, ActivityNotFoundError)


def test_toggle_invalid_record_returns_to_unselected_with_error() -> None:
    backend = _FakeBackend(records={"A1": {"_id": "A1", "title": ""}})
    result = asyncio.run(selection_flow.toggle(ActivitySelection(), "A1", backend.fetch_activity))

    assert result.state is SelectionState.UNSELECTED
    assert isinstance(result.error, InvalidDataError)
    assert "Missing property: age_group" in result.error.problems


def test_toggle_transport_failure_is_captured() -> None:
    backend = _FakeBackend(error=TransportFailureError("boom", status_code=502))
    result = asyncio.run(selection_flow.toggle(ActivitySelection(), "A1", backend.fetch_activity))

    assert result.state is SelectionState.UNSELECTED
    assert isinstance(result.error, TransportFailureError)


def test_toggle_while_selected_resets_without_network_call() -> None:
    backend = _FakeBackend(records={"A1": GOOD_RECORD})
    selected = asyncio.run(selection_flow.toggle(ActivitySelection(), "A1", backend.fetch_activity))

    result = asyncio.run(selection_flow.toggle(selected, "A1", backend.fetch_activity))

    assert result == ActivitySelection()
    assert backend.calls == ["A1"]
