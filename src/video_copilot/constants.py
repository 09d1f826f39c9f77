"""
Project-wide constants for the video analysis copilot
"""  # noqa: D200, D212, D415

from types import MappingProxyType

# ==============================================================================
# Model and Generation Configuration
# ==============================================================================

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 8192
REQUEST_TIMEOUT_MS = 120_000

# Probed in order when no working model is pinned
FALLBACK_MODELS: tuple[str, ...] = (
    "gemini-3-flash-preview",
    "gemini-3-pro-preview",
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.5-pro",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
)

MODEL_PROBE_PROMPT = "test"

# ==============================================================================
# Retry and Rate Limiting
# ==============================================================================

MAX_RETRIES = 5
RETRY_BASE_DELAY_MS = 2_000
RETRY_MAX_DELAY_MS = 65_000
RETRY_JITTER_RATIO = 0.25

# Free tier default (5 requests/minute)
RATE_LIMIT_DELAY_MS = 12_500

# tier -> (requests per minute, minimum spacing ms, max parallel)
API_TIERS = MappingProxyType(
    {
        "free": (5, 12_500, 1),
        "pay_as_you_go": (60, 1_000, 3),
        "enterprise": (1_000, 100, 10),
    }
)

# ==============================================================================
# Input Limits
# ==============================================================================

_MB = 1024 * 1024

MAX_TRANSCRIPTION_LENGTH = 50_000  # characters
MAX_KEYFRAMES = 10
MAX_KEYFRAME_SIZE = 5 * _MB  # bytes
MIN_VIDEO_DURATION = 1  # seconds
MAX_VIDEO_DURATION = 4 * 60 * 60  # seconds

# ==============================================================================
# Categories and Aggregation
# ==============================================================================

ALL_CATEGORIES: tuple[str, ...] = (
    "core_concepts",
    "scripting",
    "visual_editing",
    "audio_design",
    "seo_metadata",
    "style_guides",
    "tools_workflows",
    "checklists",
)

CATEGORY_GROUPS = MappingProxyType(
    {
        "essential": ("core_concepts", "scripting", "checklists"),
        "visual": ("visual_editing", "style_guides"),
        "optimization": ("seo_metadata", "audio_design"),
        "workflow": ("tools_workflows",),
        "all": ALL_CATEGORIES,
    }
)

# Knowledge base directory for each category
CATEGORY_DIRECTORIES = MappingProxyType(
    {
        category: f"{index:02d}_{category}"
        for index, category in enumerate(ALL_CATEGORIES, start=1)
    }
)

SEVERITY_ORDER = MappingProxyType(
    {"critical": 0, "major": 1, "minor": 2, "suggestion": 3}
)

MAX_PRIORITY_ACTIONS = 5  # across a whole batch

# Progress reporting bounds (percent)
PROGRESS_START = 5
PROGRESS_SPAN = 90
PROGRESS_DONE = 100

# Characters of raw model output kept in error logs
RAW_PREVIEW_CHARS = 2_000
