from __future__ import annotations

from typing import Any, Callable, List, Mapping, NamedTuple

import structlog

from activity_slides.domain.exceptions import InvalidDataError
from activity_slides.domain.schemas import Activity

logger = structlog.get_logger(__name__)


class _RequiredField(NamedTuple):
    key: str
    is_valid: Callable[[Any], bool]
    error: str


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _grade_group_list(value: Any) -> bool:
    if not isinstance(value, list) or not value:
        return False
    return all(isinstance(item, int) and not isinstance(item, bool) for item in value)


# Properties every activity fetched from the backend MUST have.
REQUIRED_ACTIVITY_FIELDS: List[_RequiredField] = [
    _RequiredField("title", _non_empty_string, "title must not be empty."),
    _RequiredField("age_group", _grade_group_list, "age_group must be a non-empty list of numbers."),
]


def find_activity_problems(data: Mapping[str, Any]) -> List[str]:
    problems: List[str] = []
    for field in REQUIRED_ACTIVITY_FIELDS:
        if field.key not in data:
            problems.append(f"Missing property: {field.key}")
        elif not field.is_valid(data[field.key]):
            problems.append(field.error)
    return problems


def parse_activity(data: Any, requested_id: str) -> Activity:
    """
    Builds an Activity from a raw backend record or raises InvalidDataError.
    The record id falls back to the id that was requested.
    """
    if not isinstance(data, Mapping):
        logger.error("activity_data_invalid", activity_id=requested_id, problems=["record is not an object"])
        raise InvalidDataError("Activity record is not an object", ["record is not an object"])

    problems = find_activity_problems(data)
    if problems:
        logger.error(
            "activity_data_invalid",
            activity_id=str(data.get("_id") or requested_id),
            problems=" | ".join(problems),
        )
        raise InvalidDataError("Important activity data is missing or invalid", problems)

    return Activity(
        id=str(data.get("_id") or requested_id),
        title=str(data["title"]).strip(),
        grade_groups=list(data["age_group"]),
    )
