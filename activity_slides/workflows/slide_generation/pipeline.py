"""Sequential, paced insertion of generated slides into an append-only document.

Idle -> Running(completed, total) -> Done | Failed(error)
Idle -> Abandoned (only before the first unit is sent)

Units go out strictly one at a time and in decomposition order: the host
appends positionally, so reordering or overlapping calls would scramble the
deck. A failed insert ends the run; units already appended stay appended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Union

import structlog

from activity_slides.core.settings import settings
from activity_slides.domain.exceptions import PipelineInsertionError
from activity_slides.domain.schemas import GeneratedDeck
from activity_slides.workflows.slide_generation.decomposition import InsertionUnit, decompose
from activity_slides.workflows.slide_generation.pacing import InsertionPacer, build_pacer

logger = structlog.get_logger(__name__)

InsertFn = Callable[[str, str], Awaitable[Any]]
ProgressFn = Callable[[int], None]


class RunStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    ABANDONED = "abandoned"


@dataclass
class PipelineRun:
    units: List[InsertionUnit] = field(default_factory=list)
    next_index: int = 0
    completed: int = 0

    @property
    def total(self) -> int:
        return len(self.units)

    def progress(self, floor: int) -> int:
        if self.total == 0:
            return 100
        return min(100, floor + (100 - floor) * self.completed // self.total)


@dataclass(frozen=True)
class PipelineResult:
    status: RunStatus
    completed: int
    total: int
    error: Optional[PipelineInsertionError] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.DONE

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


class BatchInsertionPipeline:
    """
    One pipeline instance drives exactly one run. Start a new instance for
    the next batch.
    """

    def __init__(
        self,
        pacer: Optional[InsertionPacer] = None,
        connected_progress: Optional[int] = None,
    ):
        self.pacer = pacer or build_pacer()
        floor = settings.GENERATION_CONNECTED_PROGRESS if connected_progress is None else connected_progress
        self.connected_progress = max(0, min(100, int(floor)))
        self.status = RunStatus.IDLE
        self.current: Optional[PipelineRun] = None
        self._abandon_requested = False

    @property
    def can_abandon(self) -> bool:
        if self.status is RunStatus.IDLE:
            return True
        return self.status is RunStatus.RUNNING and self.current is not None and self.current.next_index == 0

    def abandon(self) -> bool:
        """Requests abandonment. Only honoured while no unit has been sent."""
        if not self.can_abandon:
            return False
        self._abandon_requested = True
        if self.status is RunStatus.IDLE:
            self.status = RunStatus.ABANDONED
        logger.info("slide_insertion_abandoned")
        return True

    async def run(
        self,
        payload: Union[GeneratedDeck, Mapping[str, Any], None],
        insert: InsertFn,
        on_progress: Optional[ProgressFn] = None,
    ) -> PipelineResult:
        if self.status is RunStatus.ABANDONED:
            return PipelineResult(status=RunStatus.ABANDONED, completed=0, total=len(decompose(payload)))
        if self.status is not RunStatus.IDLE:
            raise RuntimeError(f"Pipeline already used (status={self.status.value})")

        run = PipelineRun(units=decompose(payload))
        self.current = run
        self.status = RunStatus.RUNNING
        report = on_progress or (lambda _value: None)

        logger.info("slide_insertion_started", total=run.total)
        if run.total == 0:
            self.status = RunStatus.DONE
            report(100)
            logger.info("slide_insertion_finished", completed=0, total=0)
            return PipelineResult(status=RunStatus.DONE, completed=0, total=0)

        report(self.connected_progress)

        while run.next_index < run.total:
            await self.pacer.before_insert(run.next_index)
            if run.next_index == 0 and self._abandon_requested:
                self.status = RunStatus.ABANDONED
                return PipelineResult(status=RunStatus.ABANDONED, completed=0, total=run.total)

            unit = run.units[run.next_index]
            run.next_index += 1
            try:
                await insert(unit.section_tag, unit.body_text)
            except Exception as exc:
                error = PipelineInsertionError(unit.section_tag, run.completed, run.total, exc)
                self.status = RunStatus.FAILED
                logger.error(
                    "slide_insertion_failed",
                    section=unit.section_tag,
                    unit_index=run.next_index - 1,
                    completed=run.completed,
                    total=run.total,
                    error=str(exc),
                )
                return PipelineResult(
                    status=RunStatus.FAILED, completed=run.completed, total=run.total, error=error
                )

            run.completed += 1
            logger.info(
                "slide_unit_inserted",
                section=unit.section_tag,
                completed=run.completed,
                total=run.total,
            )
            report(run.progress(self.connected_progress))

        self.status = RunStatus.DONE
        logger.info("slide_insertion_finished", completed=run.completed, total=run.total)
        return PipelineResult(status=RunStatus.DONE, completed=run.completed, total=run.total)
