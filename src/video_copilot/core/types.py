"""Core data types that flow through an analysis batch.

Inputs describe the video being analysed, tasks bind a category to its prompt
builder and schema, and ``BatchResult`` is the immutable outcome handed back
to callers. Everything here is a frozen dataclass; containers are tuples or
read-only mapping views so a finished batch cannot be mutated in place.
"""

from __future__ import annotations

import dataclasses
from types import MappingProxyType
import typing

if typing.TYPE_CHECKING:
    from collections.abc import Callable

    from pydantic import BaseModel

    from video_copilot.core.schemas import Issue

T = typing.TypeVar("T")

# --- Minimal guard helpers ---


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None."""
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result type ---

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful outcome."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed outcome, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Analysis input ---


@dataclasses.dataclass(frozen=True, slots=True)
class TranscriptSegment:
    """A timed slice of the transcript."""

    start: float
    end: float
    text: str
    speaker: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class Keyframe:
    """A still frame sent inline alongside the prompt."""

    timestamp: float
    data: bytes
    mime_type: str = "image/jpeg"


@dataclasses.dataclass(frozen=True, slots=True)
class VideoMetadata:
    title: str | None = None
    description: str | None = None
    tags: tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class VideoAnalysisInput:
    """Everything the analyzers know about one video."""

    video_id: str
    duration: float
    transcription: str
    transcription_with_timestamps: str | None = None
    speaker_count: int | None = None
    speaker_summary: str | None = None
    segments: tuple[TranscriptSegment, ...] = ()
    metadata: VideoMetadata | None = None
    keyframes: tuple[Keyframe, ...] = ()

    def __post_init__(self) -> None:
        """Validate structural invariants; content limits are checked later."""
        _require(
            condition=isinstance(self.video_id, str),
            message="must be str",
            field_name="video_id",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.transcription, str),
            message="must be str",
            field_name="transcription",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.keyframes, tuple),
            message="must be a tuple",
            field_name="keyframes",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisOptions:
    """Per-batch knobs shared by every task."""

    include_knowledge_base: bool = True
    temperature: float | None = None
    max_output_tokens: int | None = None
    skip_validation: bool = False
    on_retry_message: Callable[[str], None] | None = None


# --- Tasks and results ---


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisTask:
    """One category of analysis, created once per batch.

    ``build_prompt`` receives the knowledge-base context (possibly empty) and
    the sanitized input and returns the prompt text.
    """

    category: str
    build_prompt: Callable[[str, VideoAnalysisInput], str]
    schema: type[BaseModel]
    options: AnalysisOptions = dataclasses.field(default_factory=AnalysisOptions)

    def __post_init__(self) -> None:
        _require(
            condition=bool(self.category),
            message="must be a non-empty string",
            field_name="category",
        )
        _require(
            condition=callable(self.build_prompt),
            message="must be callable",
            field_name="build_prompt",
            exc=TypeError,
        )


@dataclasses.dataclass(slots=True)
class RetryState:
    """Mutable bookkeeping for a single retry loop."""

    attempt: int = 0
    last_error: BaseException | None = None
    next_delay_ms: int | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class BatchResult:
    """Immutable outcome of a sequential category batch.

    ``results`` holds exactly one entry per requested category, in task
    order. A value is ``None`` only when the category failed terminally or
    was skipped because the batch was cancelled.
    """

    results: typing.Mapping[str, BaseModel | None]
    issues: tuple[Issue, ...] = ()
    overall_score: float | None = None
    priority_actions: tuple[str, ...] = ()
    failures: typing.Mapping[str, str] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )
    cancelled: bool = False
    processing_time_ms: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", _freeze_mapping(self.results))
        object.__setattr__(self, "failures", _freeze_mapping(self.failures))

    @property
    def succeeded(self) -> tuple[str, ...]:
        """Categories that produced a validated result."""
        return tuple(k for k, v in self.results.items() if v is not None)

    @property
    def failed(self) -> tuple[str, ...]:
        """Categories recorded as ``None``."""
        return tuple(k for k, v in self.results.items() if v is None)
