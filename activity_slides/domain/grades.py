from typing import Dict, List, Optional

# Positional: activity records store grade groups as indices into this list.
GRADE_LEVELS: List[str] = ["all", "PK-K", "1-2", "3-5", "MS", "HS", "Higher Ed", "Workforce/PD"]

# Grades the operator can currently pick when generating slides or variations.
SELECTABLE_GRADE_INDICES: List[int] = [1, 2, 3]


def is_valid_grade_index(index: Optional[int]) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(GRADE_LEVELS)


def grade_label(index: Optional[int]) -> Optional[str]:
    if not is_valid_grade_index(index):
        return None
    return GRADE_LEVELS[index]


def grade_index(label: str) -> Optional[int]:
    text = str(label or "").strip().lower()
    for index, candidate in enumerate(GRADE_LEVELS):
        if candidate.lower() == text:
            return index
    return None


def grade_selector_options() -> List[Dict[str, object]]:
    return [{"label": GRADE_LEVELS[index], "value": index} for index in SELECTABLE_GRADE_INDICES]
