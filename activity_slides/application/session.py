"""Operator session: owns the signals and runs the asynchronous actions.

Every entry point checks its control against the engine first and flips a
busy flag before suspending, so at most one backend/host operation is ever
in flight. Result and progress messages go straight to the advisory board.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

import structlog

from activity_slides.application.advisories import (
    AdvisoryBoard,
    LinkValidationTransientAlert,
)
from activity_slides.domain import selection as selection_flow
from activity_slides.domain.control_state import GENERATION_ORDER_WARNING, compute
from activity_slides.domain.exceptions import (
    ActionUnavailableError,
    ActivityNotFoundError,
    ActivitySlidesError,
    ExportAbortedError,
    InvalidDataError,
    TransportFailureError,
)
from activity_slides.domain.grades import grade_label
from activity_slides.domain.links import LinkRole
from activity_slides.domain.ports import (
    ActivityBackendProtocol,
    DocumentHostProtocol,
    ExportOutcome,
)
from activity_slides.domain.schemas import (
    ENGINE_ADVISORIES,
    Activity,
    AdvisoryName,
    AdvisoryView,
    BusyFlags,
    ControlName,
    ControlState,
    SignalSnapshot,
    Tone,
)
from activity_slides.domain.selection import ActivitySelection
from activity_slides.infrastructure.observability.context_vars import set_activity_id
from activity_slides.workflows.slide_generation.pipeline import (
    BatchInsertionPipeline,
    PipelineResult,
    RunStatus,
)

logger = structlog.get_logger(__name__)

RESULT_ADVISORIES = (
    AdvisoryName.VERIFY_RESULT,
    AdvisoryName.GENERATION_STATUS,
    AdvisoryName.UPDATE_LINKS_RESULT,
    AdvisoryName.VARIATION_RESULT,
)

CONTROL_ADVISORIES = {
    ControlName.GENERATE_SLIDES: AdvisoryName.GENERATE_INFO,
    ControlName.CREATE_VARIATION: AdvisoryName.VARIATION_INFO,
    ControlName.UPDATE_LINKS: AdvisoryName.UPDATE_LINKS_INFO,
}

EXPORT_CANCELLED_MESSAGE = (
    "PDF export cancelled. No updates were made. If this was a mistake, start the update "
    "again and confirm the export when the PDF export menu appears."
)
GENERATION_FAILED_MESSAGE = "Error generating slides. Please try again."
UPDATE_LINKS_FAILED_MESSAGE = "An unexpected error occurred while updating slides. Please try again."
VARIATION_FAILED_MESSAGE = "Unexpected error occurred while creating variation. See logs."

Listener = Callable[[ControlState], None]


class SlideSession:
    def __init__(
        self,
        backend: ActivityBackendProtocol,
        host: DocumentHostProtocol,
        pipeline_factory: Optional[Callable[[], BatchInsertionPipeline]] = None,
        clock: Optional[Callable[[], float]] = None,
        link_alert_seconds: Optional[float] = None,
    ):
        self.backend = backend
        self.host = host
        self.pipeline_factory = pipeline_factory or BatchInsertionPipeline
        self.board = AdvisoryBoard(clock=clock)
        self.link_alerts = {
            role: LinkValidationTransientAlert(self.board, role, ttl_seconds=link_alert_seconds)
            for role in LinkRole
        }

        self.activity_id_input = ""
        self.selection = ActivitySelection()
        self.selected_grade_index: Optional[int] = None
        self.links: Dict[LinkRole, str] = {role: "" for role in LinkRole}
        self.busy = BusyFlags()
        self.pipeline: Optional[BatchInsertionPipeline] = None
        self._listeners: List[Listener] = []

    # -- derived view -------------------------------------------------

    @property
    def activity(self) -> Optional[Activity]:
        return self.selection.activity if self.selection.is_selected else None

    def snapshot(self) -> SignalSnapshot:
        return SignalSnapshot(
            activity=self.activity,
            activity_id_input=self.activity_id_input,
            selected_grade_index=self.selected_grade_index,
            links=dict(self.links),
            busy=self.busy,
        )

    def controls(self) -> ControlState:
        return compute(self.snapshot())

    def advisories(self) -> Dict[AdvisoryName, AdvisoryView]:
        """Engine advisories merged with the side channel; only visible ones are returned."""
        state = self.controls()
        merged: Dict[AdvisoryName, AdvisoryView] = {}
        if not state.advisories_deferred:
            merged.update({name: view for name, view in state.advisories.items() if view.visible})
        for name, view in self.board.visible().items():
            if name in ENGINE_ADVISORIES and not state.advisories_deferred:
                continue
            merged[name] = view
        return merged

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        if not self._listeners:
            return
        state = self.controls()
        for listener in list(self._listeners):
            listener(state)

    # -- signal edits -------------------------------------------------

    def set_activity_id_input(self, text: str) -> None:
        if self.controls().activity_id_locked:
            raise ActionUnavailableError("activity_id_input", "the activity id is locked")
        self.activity_id_input = str(text or "")
        self._notify()

    def select_grade(self, index: Optional[int]) -> None:
        self._require_idle("grade_selector")
        self.selected_grade_index = index
        self._notify()

    def set_link(self, role: LinkRole, raw: str) -> AdvisoryView:
        self._require_idle(f"{role.value}_link")
        self.links[role] = str(raw or "")
        view = self.link_alerts[role].on_link_changed(self.links[role])
        self._notify()
        return view

    # -- actions ------------------------------------------------------

    async def toggle_activity(self) -> ActivitySelection:
        """Fetch-and-verify the typed id, or drop the current activity."""
        self._require(ControlName.IDENTIFY)
        self.board.clear(RESULT_ADVISORIES)

        if self.selection.is_selected:
            self.selection = await selection_flow.toggle(
                self.selection, self.activity_id_input, self.backend.fetch_activity
            )
            set_activity_id(None)
            self._notify()
            return self.selection

        with self._busy(database_in_flight=True):
            self.selection = await selection_flow.toggle(
                self.selection,
                self.activity_id_input,
                self.backend.fetch_activity,
                on_state=self._set_selection,
            )

        error = self.selection.error
        if error is None and self.selection.activity is not None:
            set_activity_id(self.selection.activity.id)
            self.board.show(AdvisoryName.VERIFY_RESULT, "Activity found!", Tone.POSITIVE)
        else:
            self.board.show(AdvisoryName.VERIFY_RESULT, _verify_failure_message(error), Tone.WARN)
        self._notify()
        return self.selection

    async def generate_slides(self) -> Optional[PipelineResult]:
        self._require(ControlName.GENERATE_SLIDES)
        activity = self.activity
        grade = grade_label(self.selected_grade_index)
        self.board.clear(RESULT_ADVISORIES)

        result: Optional[PipelineResult] = None
        with self._busy(generation_in_flight=True):
            self.board.show(AdvisoryName.GENERATE_INFO, GENERATION_ORDER_WARNING, Tone.WARN)
            self.board.show(AdvisoryName.GENERATION_STATUS, "Connecting to the slide generator...")
            self._set_progress(0)
            logger.info("slide_generation_started", activity_id=activity.id, grade=grade)
            # abandonable while the backend is still generating
            self.pipeline = self.pipeline_factory()
            try:
                deck = await self.backend.generate_content(activity.id, grade)
                self.board.show(AdvisoryName.GENERATION_STATUS, "Generating slides...")
                result = await self.pipeline.run(deck, self.host.append_page, on_progress=self._set_progress)
            except ActivitySlidesError as exc:
                logger.error("slide_generation_failed", activity_id=activity.id, error=str(exc))
                self.board.show(AdvisoryName.GENERATION_STATUS, GENERATION_FAILED_MESSAGE, Tone.WARN)
            except Exception:
                logger.exception("slide_generation_crashed", activity_id=activity.id)
                self.board.show(AdvisoryName.GENERATION_STATUS, GENERATION_FAILED_MESSAGE, Tone.WARN)
            else:
                self._report_generation(result)
            finally:
                self.pipeline = None
                self.board.hide(AdvisoryName.GENERATE_INFO)
                self._set_progress(0)
        self._notify()
        return result

    def abandon_generation(self) -> bool:
        """Abandons the current insertion run if no slide has been sent yet."""
        if self.pipeline is None:
            return False
        return self.pipeline.abandon()

    def request_link_update(self) -> None:
        """Starts a link update: waits for the operator to confirm the PDF export."""
        self._require(ControlName.UPDATE_LINKS)
        self.board.clear(RESULT_ADVISORIES)
        self.busy = self.busy.model_copy(update={"awaiting_export": True})
        logger.info("link_update_requested", activity_id=self.activity.id)
        self._notify()

    def abandon_link_update(self) -> bool:
        if not self.busy.awaiting_export:
            return False
        self.busy = self.busy.model_copy(update={"awaiting_export": False})
        self.board.show(AdvisoryName.UPDATE_LINKS_RESULT, EXPORT_CANCELLED_MESSAGE, Tone.INFO)
        logger.info("link_update_abandoned", activity_id=self.activity.id if self.activity else None)
        self._notify()
        return True

    async def export_and_update_links(self) -> bool:
        if not self.busy.awaiting_export:
            raise ActionUnavailableError(ControlName.UPDATE_LINKS.value, "no link update was requested")
        activity = self.activity
        links = dict(self.links)
        self.busy = self.busy.model_copy(update={"awaiting_export": False})

        try:
            with self._busy(export_in_flight=True):
                self.board.show(AdvisoryName.UPDATE_LINKS_INFO, "Waiting for the PDF export...")
                outcome = await self._export()
            if outcome.aborted:
                self.board.show(AdvisoryName.UPDATE_LINKS_RESULT, EXPORT_CANCELLED_MESSAGE, Tone.INFO)
                return False

            with self._busy(database_in_flight=True):
                self.board.show(AdvisoryName.UPDATE_LINKS_INFO, "Updating slides in the database...")
                pdf = await self.backend.upload_pdf(activity.id, activity.title, outcome.url)
                await self.backend.persist_links(activity.id, links, pdf)
        except TransportFailureError as exc:
            logger.error("link_update_failed", activity_id=activity.id, error=str(exc))
            self.board.show(
                AdvisoryName.UPDATE_LINKS_RESULT, f"Error updating slides: {exc.message}", Tone.WARN
            )
            return False
        except ActivitySlidesError as exc:
            logger.error("link_update_failed", activity_id=activity.id, error=str(exc))
            self.board.show(AdvisoryName.UPDATE_LINKS_RESULT, UPDATE_LINKS_FAILED_MESSAGE, Tone.WARN)
            return False
        except Exception:
            logger.exception("link_update_crashed", activity_id=activity.id)
            self.board.show(AdvisoryName.UPDATE_LINKS_RESULT, UPDATE_LINKS_FAILED_MESSAGE, Tone.WARN)
            return False
        finally:
            self.board.hide(AdvisoryName.UPDATE_LINKS_INFO)
            self._notify()

        logger.info("links_persisted", activity_id=activity.id)
        self.board.show(AdvisoryName.UPDATE_LINKS_RESULT, "Slides updated successfully!", Tone.POSITIVE)
        self._notify()
        return True

    async def create_variation(self) -> bool:
        self._require(ControlName.CREATE_VARIATION)
        activity = self.activity
        grade_index = self.selected_grade_index
        links = dict(self.links)
        self.board.clear(RESULT_ADVISORIES)

        try:
            with self._busy(export_in_flight=True):
                self.board.show(AdvisoryName.VARIATION_INFO, "Exporting PDF...")
                outcome = await self._export()
            if outcome.aborted:
                self.board.show(AdvisoryName.VARIATION_RESULT, EXPORT_CANCELLED_MESSAGE, Tone.INFO)
                return False

            with self._busy(database_in_flight=True):
                self.board.show(AdvisoryName.VARIATION_INFO, "Creating variation...")
                pdf = await self.backend.upload_pdf(activity.id, activity.title, outcome.url)
                await self.backend.create_variation(activity.id, grade_index, links, pdf)
        except TransportFailureError as exc:
            logger.error("variation_failed", activity_id=activity.id, error=str(exc))
            self.board.show(
                AdvisoryName.VARIATION_RESULT, f"Error creating variation: {exc.message}", Tone.WARN
            )
            return False
        except ActivitySlidesError as exc:
            logger.error("variation_failed", activity_id=activity.id, error=str(exc))
            self.board.show(AdvisoryName.VARIATION_RESULT, VARIATION_FAILED_MESSAGE, Tone.WARN)
            return False
        except Exception:
            logger.exception("variation_crashed", activity_id=activity.id)
            self.board.show(AdvisoryName.VARIATION_RESULT, VARIATION_FAILED_MESSAGE, Tone.WARN)
            return False
        finally:
            self.board.hide(AdvisoryName.VARIATION_INFO)
            self._notify()

        logger.info("variation_created", activity_id=activity.id, grade_index=grade_index)
        self.board.show(AdvisoryName.VARIATION_RESULT, "Variation created successfully!", Tone.POSITIVE)
        self._notify()
        return True

    # -- helpers ------------------------------------------------------

    def _require(self, control: ControlName) -> None:
        state = self.controls()
        if state.control(control).disabled:
            advisory = CONTROL_ADVISORIES.get(control)
            reason = state.advisory(advisory).message if advisory else ""
            raise ActionUnavailableError(control.value, reason)

    def _require_idle(self, control: str) -> None:
        if self.busy.any_busy:
            raise ActionUnavailableError(control, "another operation is in progress")

    @contextmanager
    def _busy(self, **flags: bool) -> Iterator[None]:
        self.busy = self.busy.model_copy(update=flags)
        self._notify()
        try:
            yield
        finally:
            self.busy = self.busy.model_copy(update={key: False for key in flags})
            self._notify()

    def _set_selection(self, value: ActivitySelection) -> None:
        self.selection = value
        self._notify()

    def _set_progress(self, value: int) -> None:
        self.busy = self.busy.model_copy(update={"generation_progress": max(0, min(100, int(value)))})
        self._notify()

    async def _export(self) -> ExportOutcome:
        try:
            outcome = await self.host.request_export()
        except ExportAbortedError:
            outcome = ExportOutcome(status="aborted")
        if outcome.aborted:
            logger.info("pdf_export_aborted")
        elif not outcome.url:
            raise InvalidDataError("Export completed without a download URL", ["url"])
        return outcome

    def _report_generation(self, result: PipelineResult) -> None:
        if result.status is RunStatus.DONE:
            self.board.show(AdvisoryName.GENERATION_STATUS, "Slides generated!", Tone.POSITIVE)
        elif result.status is RunStatus.ABANDONED:
            self.board.show(
                AdvisoryName.GENERATION_STATUS,
                "Slide generation cancelled before any slide was added.",
                Tone.INFO,
            )
        else:
            section = result.error.section_tag if result.error else "unknown"
            self.board.show(
                AdvisoryName.GENERATION_STATUS,
                f"Error while adding the {section} slides ({result.completed}/{result.total} added). "
                "Please try again.",
                Tone.WARN,
            )


def _verify_failure_message(error: Optional[ActivitySlidesError]) -> str:
    if isinstance(error, ActivityNotFoundError):
        return "No activity with that ID"
    if isinstance(error, InvalidDataError):
        return "Important activity data is missing or invalid; see console"
    if isinstance(error, TransportFailureError):
        return f"Could not reach the backend: {error.message}"
    return "Could not verify the activity. Please try again."
