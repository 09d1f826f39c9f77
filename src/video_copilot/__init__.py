"""Reliable multi-category video analysis on top of Gemini."""

import importlib.metadata
import logging

from video_copilot.analysis import KnowledgeBaseLoader, build_tasks
from video_copilot.client import (
    GoogleGenAIProvider,
    ModelProvider,
    RateLimiter,
    RetryPolicy,
    WorkingModelState,
    with_retry,
)
from video_copilot.config import FrozenConfig, resolve_config
from video_copilot.core.schemas import CATEGORY_SCHEMA_REGISTRY, get_category_schema
from video_copilot.core.types import (
    AnalysisOptions,
    AnalysisTask,
    BatchResult,
    Failure,
    Keyframe,
    Result,
    Success,
    TranscriptSegment,
    VideoAnalysisInput,
    VideoMetadata,
)
from video_copilot.exceptions import (
    ConfigurationError,
    ErrorKind,
    InvalidInputError,
    NonRetryableError,
    OperationCancelledError,
    ParseError,
    ProviderError,
    RetryableError,
    SchemaViolationError,
    VideoCopilotError,
)
from video_copilot.orchestrator import CategoryOrchestrator, create_orchestrator
from video_copilot.response import parse_and_validate_response, repair_json
from video_copilot.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("video-copilot")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library logging stays silent unless the application configures handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Orchestration
    "CategoryOrchestrator",
    "create_orchestrator",
    "build_tasks",
    # Configuration
    "FrozenConfig",
    "resolve_config",
    # Provider-facing components
    "ModelProvider",
    "GoogleGenAIProvider",
    "RateLimiter",
    "RetryPolicy",
    "WorkingModelState",
    "with_retry",
    "KnowledgeBaseLoader",
    # Response pipeline
    "repair_json",
    "parse_and_validate_response",
    "CATEGORY_SCHEMA_REGISTRY",
    "get_category_schema",
    # Core types
    "AnalysisOptions",
    "AnalysisTask",
    "BatchResult",
    "Keyframe",
    "TranscriptSegment",
    "VideoAnalysisInput",
    "VideoMetadata",
    "Result",
    "Success",
    "Failure",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "ErrorKind",
    "VideoCopilotError",
    "ConfigurationError",
    "InvalidInputError",
    "OperationCancelledError",
    "ProviderError",
    "RetryableError",
    "NonRetryableError",
    "ParseError",
    "SchemaViolationError",
]
