"""Command-line entry point.

``python -m video_copilot repair`` reads model output on stdin and prints the
repaired JSON (or the validated category document with ``--category``).
``python -m video_copilot analyze TRANSCRIPT --duration S`` runs a batch and
prints the aggregated result as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from video_copilot.config import resolve_config
from video_copilot.constants import ALL_CATEGORIES, CATEGORY_GROUPS
from video_copilot.core.schemas import get_category_schema
from video_copilot.core.types import BatchResult, VideoAnalysisInput
from video_copilot.exceptions import VideoCopilotError
from video_copilot.orchestrator import create_orchestrator
from video_copilot.response.processor import parse_and_validate_response
from video_copilot.response.repair import repair_json

log = logging.getLogger(__name__)


def batch_to_dict(batch: BatchResult) -> dict[str, Any]:
    return {
        "results": {
            category: (
                None
                if result is None
                else result.model_dump(mode="json", by_alias=True)
            )
            for category, result in batch.results.items()
        },
        "overallScore": batch.overall_score,
        "issues": [i.model_dump(mode="json", by_alias=True) for i in batch.issues],
        "priorityActions": list(batch.priority_actions),
        "failures": dict(batch.failures),
        "cancelled": batch.cancelled,
        "processingTimeMs": batch.processing_time_ms,
    }


def _repair(args: argparse.Namespace) -> int:
    text = sys.stdin.read()
    if args.category is None:
        print(repair_json(text))
        return 0
    model = parse_and_validate_response(
        text, get_category_schema(args.category), args.category
    )
    print(model.model_dump_json(by_alias=True, indent=2))
    return 0


async def _analyze_async(args: argparse.Namespace) -> BatchResult:
    config = resolve_config(
        env_file=args.env_file, model=args.model, api_tier=args.tier
    )
    orchestrator = create_orchestrator(config)
    transcript = Path(args.transcript).read_text(encoding="utf-8")
    inp = VideoAnalysisInput(
        video_id=args.video_id or Path(args.transcript).stem,
        duration=args.duration,
        transcription=transcript,
    )

    def on_progress(percent: int, category: str | None) -> None:
        log.info("Progress %d%% %s", percent, category or "")

    if args.quick:
        categories: tuple[str, ...] | None = CATEGORY_GROUPS["essential"]
    elif args.category:
        categories = tuple(args.category)
    else:
        categories = CATEGORY_GROUPS[args.group]
    return await orchestrator.analyze_video(
        inp, categories, on_progress=on_progress
    )


def _analyze(args: argparse.Namespace) -> int:
    batch = asyncio.run(_analyze_async(args))
    print(json.dumps(batch_to_dict(batch), indent=2))
    return 0 if batch.succeeded else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Video analysis copilot", prog="python -m video_copilot"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    repair = sub.add_parser("repair", help="Repair model JSON read from stdin")
    repair.add_argument(
        "--category",
        choices=ALL_CATEGORIES,
        default=None,
        help="Also normalize and validate against this category's schema",
    )
    repair.set_defaults(handler=_repair)

    analyze = sub.add_parser("analyze", help="Analyse a transcript file")
    analyze.add_argument("transcript", help="Path to a plain-text transcript")
    analyze.add_argument(
        "--duration", type=float, required=True, help="Video duration in seconds"
    )
    analyze.add_argument("--video-id", default=None, help="Defaults to the file stem")
    analyze.add_argument(
        "--quick", action="store_true", help="Only the essential categories"
    )
    analyze.add_argument(
        "--category",
        action="append",
        choices=ALL_CATEGORIES,
        help="Category to run (repeatable)",
    )
    analyze.add_argument(
        "--group",
        choices=sorted(CATEGORY_GROUPS),
        default="all",
        help="Named category group",
    )
    analyze.add_argument("--model", default=None, help="Pin a model, skipping probes")
    analyze.add_argument("--tier", default=None, help="API tier for request pacing")
    analyze.add_argument("--env-file", default=None, help="Optional .env file")
    analyze.set_defaults(handler=_analyze)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return args.handler(args)
    except VideoCopilotError as e:
        log.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
