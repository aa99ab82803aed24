"""Operator CLI: inspect derived control state and drive slide generation."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, List, Optional

from pydantic import ValidationError

from activity_slides.application.session import SlideSession
from activity_slides.core.settings import settings
from activity_slides.domain.control_state import compute
from activity_slides.domain.exceptions import ActivitySlidesError
from activity_slides.domain.grades import grade_index, grade_selector_options
from activity_slides.domain.links import classify
from activity_slides.domain.schemas import ControlName, ControlState, SignalSnapshot
from activity_slides.infrastructure.backend.client import AsyncActivityBackendClient
from activity_slides.infrastructure.document_host.jsonl_host import JsonlDocumentHost
from activity_slides.infrastructure.document_host.memory_host import InMemoryDocumentHost
from activity_slides.infrastructure.observability.context_vars import bind_context, set_correlation_id
from activity_slides.infrastructure.observability.logger_config import configure_structlog
from activity_slides.workflows.slide_generation.pacing import build_pacer
from activity_slides.workflows.slide_generation.pipeline import BatchInsertionPipeline


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="activity-slides", description="Activity slide helper")
    parser.add_argument("--api-url", default=settings.ACTIVITY_API_URL, help="Base URL for the activity backend")
    parser.add_argument("--log-level", default=settings.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    controls = sub.add_parser("controls", help="Print the control state derived from a signal snapshot")
    controls.add_argument("--snapshot", required=True, help="JSON snapshot file, or - for stdin")

    classify_cmd = sub.add_parser("classify", help="Classify share links")
    classify_cmd.add_argument("urls", nargs="+")

    fetch = sub.add_parser("fetch", help="Fetch and verify an activity")
    fetch.add_argument("activity_id")

    generate = sub.add_parser("generate", help="Generate slides into a JSONL document")
    generate.add_argument("activity_id")
    generate.add_argument("--grade", required=True, help="Grade level label, e.g. 1-2")
    generate.add_argument("--out", required=True, help="Path of the JSONL document to append to")
    generate.add_argument(
        "--pacing",
        choices=["fixed", "window"],
        default=settings.INSERTION_PACING_MODE,
        help="Insertion pacing strategy",
    )
    return parser.parse_args(argv)


def _load_snapshot(path: str) -> SignalSnapshot:
    if path == "-":
        raw = sys.stdin.read()
    else:
        with open(path, "r", encoding="utf-8") as fp:
            raw = fp.read()
    return SignalSnapshot.model_validate(json.loads(raw))


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _print_progress(state: ControlState, session: SlideSession, last: List[int]) -> None:
    if not session.busy.generation_in_flight:
        return
    value = session.busy.generation_progress
    if value != last[-1]:
        last.append(value)
        print(f"progress {value:3d}% | {state.control(ControlName.GENERATE_SLIDES).label}")


def _build_pipeline(mode: str) -> BatchInsertionPipeline:
    config = settings.model_copy(update={"INSERTION_PACING_MODE": mode})
    return BatchInsertionPipeline(pacer=build_pacer(config))


async def _fetch(args: argparse.Namespace) -> int:
    async with AsyncActivityBackendClient(base_url=args.api_url) as backend:
        session = SlideSession(backend=backend, host=InMemoryDocumentHost())
        session.set_activity_id_input(args.activity_id)
        selection = await session.toggle_activity()

    if selection.activity is None:
        print(f"❌ {selection.error}")
        return 1
    _dump(selection.activity.model_dump())
    return 0


async def _generate(args: argparse.Namespace) -> int:
    options = grade_selector_options()
    index = grade_index(args.grade)
    if index not in [option["value"] for option in options]:
        labels = ", ".join(str(option["label"]) for option in options)
        print(f"❌ Unknown grade level: {args.grade} (choose one of: {labels})")
        return 2

    async with AsyncActivityBackendClient(base_url=args.api_url) as backend:
        session = SlideSession(
            backend=backend,
            host=JsonlDocumentHost(args.out),
            pipeline_factory=lambda: _build_pipeline(args.pacing),
        )
        session.set_activity_id_input(args.activity_id)
        selection = await session.toggle_activity()
        if selection.activity is None:
            print(f"❌ {selection.error}")
            return 1

        session.select_grade(index)
        seen = [0]
        unsubscribe = session.subscribe(lambda state: _print_progress(state, session, seen))
        try:
            result = await session.generate_slides()
        finally:
            unsubscribe()

    for view in session.advisories().values():
        print(f"[{view.tone.value}] {view.message}")
    if result is None or not result.ok:
        return 1
    print(f"✅ {result.completed} slides appended to {args.out}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_structlog(level=args.log_level)
    set_correlation_id()
    bind_context(command=args.command)

    try:
        if args.command == "controls":
            _dump(compute(_load_snapshot(args.snapshot)).model_dump(mode="json"))
            return 0
        if args.command == "classify":
            _dump({url: classify(url).value for url in args.urls})
            return 0
        if args.command == "fetch":
            return asyncio.run(_fetch(args))
        if args.command == "generate":
            return asyncio.run(_generate(args))
    except (ValidationError, json.JSONDecodeError, OSError) as exc:
        print(f"❌ Invalid input: {exc}")
        return 2
    except ActivitySlidesError as exc:
        print(f"❌ {exc}")
        return 1
    return 2


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()
