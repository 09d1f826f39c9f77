"""Input validation and request preparation for a single category run."""

from __future__ import annotations

import dataclasses
import logging

from video_copilot.analysis.knowledge import KnowledgeBaseLoader, format_as_prompt_context
from video_copilot.analysis.prompts import prompt_builder_for
from video_copilot.client.provider import GenerationRequest, InlinePart
from video_copilot.constants import (
    ALL_CATEGORIES,
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    MAX_KEYFRAME_SIZE,
    MAX_KEYFRAMES,
    MAX_TRANSCRIPTION_LENGTH,
    MAX_VIDEO_DURATION,
    MIN_VIDEO_DURATION,
)
from video_copilot.core.schemas import get_category_schema
from video_copilot.core.types import AnalysisOptions, AnalysisTask, VideoAnalysisInput
from video_copilot.exceptions import InvalidInputError

log = logging.getLogger(__name__)


def analysis_input_errors(inp: VideoAnalysisInput) -> list[str]:
    """Every reason ``inp`` is unacceptable; empty when it is valid."""
    errors: list[str] = []
    if not inp.video_id:
        errors.append("video_id is required and must be a string")

    if isinstance(inp.duration, bool) or not isinstance(inp.duration, int | float):
        errors.append("duration is required and must be a number")
    elif inp.duration != inp.duration:  # NaN
        errors.append("duration is required and must be a number")
    else:
        if inp.duration < MIN_VIDEO_DURATION:
            errors.append(
                f"Video duration must be at least {MIN_VIDEO_DURATION} second."
            )
        if inp.duration > MAX_VIDEO_DURATION:
            errors.append(
                f"Video duration exceeds maximum of {MAX_VIDEO_DURATION} seconds."
            )

    if not inp.transcription:
        errors.append("transcription is required and must be a string")
    elif len(inp.transcription) > MAX_TRANSCRIPTION_LENGTH:
        errors.append(
            f"Transcription exceeds maximum length of {MAX_TRANSCRIPTION_LENGTH} characters."
        )

    if len(inp.keyframes) > MAX_KEYFRAMES:
        errors.append(f"Maximum {MAX_KEYFRAMES} keyframes allowed")
    for index, frame in enumerate(inp.keyframes):
        if len(frame.data) > MAX_KEYFRAME_SIZE:
            errors.append(f"Keyframe {index} exceeds maximum size")
    return errors


def validate_analysis_input(inp: VideoAnalysisInput) -> None:
    """Raise ``InvalidInputError`` listing every problem with ``inp``."""
    errors = analysis_input_errors(inp)
    if errors:
        raise InvalidInputError(errors)


def sanitize_input(inp: VideoAnalysisInput) -> VideoAnalysisInput:
    """Truncate the transcript and cap keyframes to what a prompt may carry."""
    transcription = inp.transcription
    if len(transcription) > MAX_TRANSCRIPTION_LENGTH:
        log.warning(
            "Truncating transcription for %s from %d to %d chars",
            inp.video_id,
            len(transcription),
            MAX_TRANSCRIPTION_LENGTH,
        )
        transcription = transcription[:MAX_TRANSCRIPTION_LENGTH]
    keyframes = inp.keyframes[:MAX_KEYFRAMES]
    if transcription is inp.transcription and len(keyframes) == len(inp.keyframes):
        return inp
    return dataclasses.replace(inp, transcription=transcription, keyframes=keyframes)


def build_tasks(
    categories: tuple[str, ...] | list[str] | None = None,
    options: AnalysisOptions | None = None,
) -> list[AnalysisTask]:
    """One task per category, in the order given (default: all eight)."""
    options = options or AnalysisOptions()
    selected = ALL_CATEGORIES if categories is None else tuple(categories)
    unknown = [c for c in selected if c not in ALL_CATEGORIES]
    if unknown:
        raise InvalidInputError([f"Unknown analysis category: {c}" for c in unknown])
    return [
        AnalysisTask(
            category=category,
            build_prompt=prompt_builder_for(category),
            schema=get_category_schema(category),
            options=options,
        )
        for category in selected
    ]


def knowledge_context(
    task: AnalysisTask, loader: KnowledgeBaseLoader | None
) -> str:
    if loader is None or not task.options.include_knowledge_base:
        return ""
    return format_as_prompt_context(loader.load_category(task.category))


def build_request(
    task: AnalysisTask, inp: VideoAnalysisInput, context: str = ""
) -> GenerationRequest:
    """Prompt plus inline keyframes, each captioned with its timestamp."""
    prompt = task.build_prompt(context, inp)
    attachments = tuple(
        InlinePart(
            data=frame.data,
            mime_type=frame.mime_type,
            caption=f"[Keyframe at {frame.timestamp:g}s]",
        )
        for frame in inp.keyframes
    )
    options = task.options
    return GenerationRequest(
        prompt=prompt,
        attachments=attachments,
        temperature=(
            options.temperature
            if options.temperature is not None
            else DEFAULT_TEMPERATURE
        ),
        max_output_tokens=options.max_output_tokens or DEFAULT_MAX_OUTPUT_TOKENS,
        response_schema=task.schema,
    )
