"""
Domain schemas for the slide helper using Pydantic.
Snapshots and control states are frozen: they are derived fresh on every
signal change and never patched in place.
"""
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from activity_slides.domain.links import LinkRole


class Activity(BaseModel):
    """
    A verified activity. Only ever constructed from a record that passed
    validation, so every field is populated.
    """
    id: str = Field(alias="_id", min_length=1)
    title: str = Field(min_length=1)
    grade_groups: List[int] = Field(alias="age_group", min_length=1)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def has_multiple_grade_groups(self) -> bool:
        return len(self.grade_groups) > 1


class GeneratedDeck(BaseModel):
    """Generated slide text keyed by section tag, each section in display order."""
    sections: Dict[str, List[str]] = {}

    model_config = ConfigDict(frozen=True)


class BusyFlags(BaseModel):
    database_in_flight: bool = False
    generation_in_flight: bool = False
    generation_progress: int = Field(default=0, ge=0, le=100)
    awaiting_export: bool = False
    export_in_flight: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def any_in_flight(self) -> bool:
        return self.database_in_flight or self.generation_in_flight or self.export_in_flight

    @property
    def any_busy(self) -> bool:
        return self.any_in_flight or self.awaiting_export


def _empty_links() -> Dict[LinkRole, str]:
    return {role: "" for role in LinkRole}


class SignalSnapshot(BaseModel):
    """The complete, immutable set of inputs the control-state engine reads."""
    activity: Optional[Activity] = None
    activity_id_input: str = ""
    selected_grade_index: Optional[int] = None
    links: Dict[LinkRole, str] = Field(default_factory=_empty_links)
    busy: BusyFlags = Field(default_factory=BusyFlags)

    model_config = ConfigDict(frozen=True)


class Tone(str, Enum):
    INFO = "info"
    WARN = "warn"
    POSITIVE = "positive"


class ControlName(str, Enum):
    IDENTIFY = "identify"
    GENERATE_SLIDES = "generate_slides"
    CREATE_VARIATION = "create_variation"
    UPDATE_LINKS = "update_links"


class AdvisoryName(str, Enum):
    # Derived by the engine
    GENERATE_INFO = "generate_info"
    VARIATION_INFO = "variation_info"
    UPDATE_LINKS_INFO = "update_links_info"
    # Written directly by in-flight operations
    VERIFY_RESULT = "verify_result"
    GENERATION_STATUS = "generation_status"
    UPDATE_LINKS_RESULT = "update_links_result"
    VARIATION_RESULT = "variation_result"
    COLLABORATION_LINK = "collaboration_link"
    TEMPLATE_LINK = "template_link"
    PUBLIC_VIEW_LINK = "public_view_link"


ENGINE_ADVISORIES = (
    AdvisoryName.GENERATE_INFO,
    AdvisoryName.VARIATION_INFO,
    AdvisoryName.UPDATE_LINKS_INFO,
)


class ControlView(BaseModel):
    disabled: bool
    label: str
    loading: bool = False
    variant: str = "primary"

    model_config = ConfigDict(frozen=True)


class AdvisoryView(BaseModel):
    visible: bool = False
    message: str = ""
    tone: Tone = Tone.WARN

    model_config = ConfigDict(frozen=True)


HIDDEN = AdvisoryView()


class ControlState(BaseModel):
    controls: Dict[ControlName, ControlView]
    advisories: Dict[AdvisoryName, AdvisoryView]
    activity_id_locked: bool = False
    # True while an operation is in flight: the operation narrates through
    # the side channel and the engine's advisories must not be shown.
    advisories_deferred: bool = False

    model_config = ConfigDict(frozen=True)

    def control(self, name: ControlName) -> ControlView:
        return self.controls[name]

    def advisory(self, name: AdvisoryName) -> AdvisoryView:
        return self.advisories.get(name, HIDDEN)
