"""Sequential multi-category analysis with model fallback and failure isolation.

``CategoryOrchestrator.run_batch`` drives a list of ``AnalysisTask`` objects
one after another against a single provider:

- every request waits on the shared ``RateLimiter``;
- the working model is resolved lazily, probing ``FALLBACK_MODELS`` until one
  answers, and is forgotten again when the provider rejects it;
- each call runs under ``with_retry`` and its text goes through the response
  pipeline into a validated category model;
- a task that fails terminally is logged and recorded as ``None`` so the
  remaining categories still run.

``create_orchestrator`` is the composition root: it is the only place where
ambient configuration is resolved.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
import dataclasses
import logging
import random
import time
from typing import TYPE_CHECKING, Any

from video_copilot.analysis.analyzers import (
    build_request,
    build_tasks,
    knowledge_context,
    sanitize_input,
    validate_analysis_input,
)
from video_copilot.analysis.knowledge import KnowledgeBaseLoader
from video_copilot.client.error_handler import is_model_fault
from video_copilot.client.model_state import WorkingModelState
from video_copilot.client.provider import (
    GenerationRequest,
    GoogleGenAIProvider,
    ModelProvider,
)
from video_copilot.client.rate_limiter import RateLimiter
from video_copilot.client.retry import RetryInfo, RetryPolicy, SleepFn, with_retry
from video_copilot.config import FrozenConfig, resolve_config
from video_copilot.constants import (
    CATEGORY_GROUPS,
    FALLBACK_MODELS,
    MAX_PRIORITY_ACTIONS,
    MODEL_PROBE_PROMPT,
    PROGRESS_DONE,
    PROGRESS_SPAN,
    PROGRESS_START,
    RAW_PREVIEW_CHARS,
    SEVERITY_ORDER,
)
from video_copilot.core.types import (
    AnalysisOptions,
    AnalysisTask,
    BatchResult,
    VideoAnalysisInput,
)
from video_copilot.exceptions import (
    ErrorKind,
    NonRetryableError,
    OperationCancelledError,
    ParseError,
    VideoCopilotError,
)
from video_copilot.response.processor import parse_and_validate_response
from video_copilot.telemetry import TelemetryContext, TelemetryContextProtocol

if TYPE_CHECKING:
    from pydantic import BaseModel

    from video_copilot.core.schemas import BaseAnalysis, Issue

log = logging.getLogger(__name__)

# Receives (percent, category) or, while a task backs off, (percent, retry message)
ProgressFn = Callable[[int, str | None], None]

NO_WORKING_MODEL_MESSAGE = (
    "No working Gemini models available. Check API key and model availability."
)


@dataclasses.dataclass(slots=True)
class _TaskTrace:
    """What a failed task leaves behind for the log."""

    attempts: int = 0
    last_raw: str | None = None


def progress_percent(completed: int, total: int) -> int:
    """Map completed tasks onto the 5..95 band reported between start and end."""
    if total <= 0:
        return PROGRESS_START
    return round(completed / total * PROGRESS_SPAN) + PROGRESS_START


def aggregate_issues(results: Sequence[BaseAnalysis]) -> tuple[Issue, ...]:
    """All issues, most severe first; ties keep category order."""
    issues = [issue for result in results for issue in result.issues]
    return tuple(
        sorted(issues, key=lambda i: SEVERITY_ORDER.get(i.severity, len(SEVERITY_ORDER)))
    )


def aggregate_score(results: Sequence[BaseAnalysis]) -> float | None:
    if not results:
        return None
    return sum(r.overall_score for r in results) / len(results)


def aggregate_priority_actions(results: Sequence[BaseAnalysis]) -> tuple[str, ...]:
    actions = dict.fromkeys(a for r in results for a in r.priority_actions)
    return tuple(actions)[:MAX_PRIORITY_ACTIONS]


class CategoryOrchestrator:
    """Runs category tasks sequentially against one model provider.

    The rate limiter and working-model state are shared by every request this
    orchestrator sends; create one orchestrator per provider.
    """

    def __init__(
        self,
        provider: ModelProvider,
        *,
        rate_limiter: RateLimiter | None = None,
        model_state: WorkingModelState | None = None,
        retry_policy: RetryPolicy | None = None,
        knowledge_loader: KnowledgeBaseLoader | None = None,
        default_options: AnalysisOptions | None = None,
        fallback_models: Sequence[str] = FALLBACK_MODELS,
        telemetry: TelemetryContextProtocol | None = None,
        sleep: SleepFn = asyncio.sleep,
        random_fn: Callable[[], float] = random.random,
    ):
        if not fallback_models:
            raise ValueError("fallback_models must not be empty")
        self.provider = provider
        self.rate_limiter = rate_limiter or RateLimiter(sleep=sleep)
        self.model_state = model_state or WorkingModelState()
        self.retry_policy = retry_policy or RetryPolicy()
        self.knowledge_loader = knowledge_loader
        self.default_options = default_options or AnalysisOptions()
        self.fallback_models = tuple(fallback_models)
        self._tele = telemetry or TelemetryContext()
        self._sleep = sleep
        self._random_fn = random_fn

    # --- Model resolution ---

    async def resolve_model(
        self, cancel_event: asyncio.Event | None = None
    ) -> str:
        """Return the pinned model, probing the fallback list when none is set.

        Raises:
            NonRetryableError: When no fallback model answers the probe.
        """
        pinned = self.model_state.get()
        if pinned is not None:
            return pinned

        probe = GenerationRequest(prompt=MODEL_PROBE_PROMPT)
        for model in self.fallback_models:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError()
            try:
                await self.provider.generate(model_name=model, request=probe)
            except Exception as e:
                log.info("Model %s unavailable: %s", model, e)
                self._tele.count("model_probe.failed", model=model)
                continue
            self.model_state.pin(model)
            return model

        raise NonRetryableError(
            NO_WORKING_MODEL_MESSAGE, kind=ErrorKind.API_KEY_INVALID
        )

    # --- Single task ---

    async def _call_model(
        self,
        model: str,
        task: AnalysisTask,
        request: GenerationRequest,
        trace: _TaskTrace,
    ) -> BaseModel:
        trace.attempts += 1
        text = await self.provider.generate(model_name=model, request=request)
        trace.last_raw = text
        return parse_and_validate_response(text, task.schema, task.category)

    async def run_task(
        self,
        task: AnalysisTask,
        inp: VideoAnalysisInput,
        *,
        cancel_event: asyncio.Event | None = None,
        trace: _TaskTrace | None = None,
        on_retry_message: Callable[[str], None] | None = None,
    ) -> BaseModel:
        """Run one task to a validated result, or raise its terminal error.

        A model-level fault clears the working model and reruns the whole
        task once against a freshly probed model. Retry messages go to the
        task's own sink, falling back to ``on_retry_message``.
        """
        trace = trace if trace is not None else _TaskTrace()
        if not task.options.skip_validation:
            validate_analysis_input(inp)
        request = build_request(
            task, inp, knowledge_context(task, self.knowledge_loader)
        )

        sink = task.options.on_retry_message or on_retry_message
        on_retry: Callable[[RetryInfo], None] | None = (
            (lambda info: sink(info.message)) if sink is not None else None
        )

        started = time.perf_counter()
        for rerun in (False, True):
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError()
            await self.rate_limiter.acquire(cancel_event)
            model = await self.resolve_model(cancel_event)
            try:
                result = await with_retry(
                    lambda: self._call_model(model, task, request, trace),
                    policy=self.retry_policy,
                    cancel_event=cancel_event,
                    on_retry=on_retry,
                    context={"category": task.category, "model": model},
                    sleep=self._sleep,
                    random_fn=self._random_fn,
                )
            except OperationCancelledError:
                raise
            except VideoCopilotError as e:
                if rerun or not is_model_fault(e):
                    raise
                log.warning(
                    "Model %s rejected for %s, re-probing: %s",
                    model,
                    task.category,
                    e,
                )
                self.model_state.clear(if_model=model)
                continue
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            return result.model_copy(update={"processing_time_ms": elapsed_ms})

        # Unreachable: the second pass either returns or raises
        raise RuntimeError("task rerun loop exited")

    # --- Batch ---

    async def run_batch(
        self,
        tasks: Sequence[AnalysisTask],
        inp: VideoAnalysisInput,
        *,
        cancel_event: asyncio.Event | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        """Run every task in order and aggregate whatever succeeded.

        Never raises for a single task's failure. Cancellation stops before
        the next task (or interrupts the current wait) and returns the
        partial result with ``cancelled=True``.
        """

        def report(percent: int, category: str | None) -> None:
            if on_progress is not None:
                on_progress(percent, category)

        started = time.perf_counter()
        inp = sanitize_input(inp)
        results: dict[str, BaseModel | None] = {t.category: None for t in tasks}
        failures: dict[str, str] = {}
        cancelled = False
        total = len(tasks)
        report(PROGRESS_START, None)

        with self._tele("batch", tasks=total):
            for index, task in enumerate(tasks):
                if cancel_event is not None and cancel_event.is_set():
                    cancelled = True
                    break
                percent = progress_percent(index, total)
                report(percent, task.category)
                trace = _TaskTrace()
                retry_sink = (
                    None
                    if on_progress is None
                    else lambda message, p=percent: on_progress(p, message)
                )
                try:
                    with self._tele(task.category):
                        results[task.category] = await self.run_task(
                            task,
                            inp,
                            cancel_event=cancel_event,
                            trace=trace,
                            on_retry_message=retry_sink,
                        )
                except OperationCancelledError:
                    log.info("Batch cancelled during %s", task.category)
                    cancelled = True
                    break
                except Exception as e:
                    preview = (
                        e.raw_preview
                        if isinstance(e, ParseError) and e.raw_preview
                        else (trace.last_raw or "")[:RAW_PREVIEW_CHARS]
                    )
                    log.error(
                        "Analysis failed for %s after %d attempt(s): %s; raw preview: %r",
                        task.category,
                        trace.attempts,
                        e,
                        preview,
                    )
                    failures[task.category] = str(e) or type(e).__name__
                    self._tele.count("task.failed", category=task.category)
                else:
                    self._tele.count("task.succeeded", category=task.category)
                report(progress_percent(index + 1, total), task.category)

        present = [r for r in results.values() if r is not None]
        batch = BatchResult(
            results=results,
            issues=aggregate_issues(present),
            overall_score=aggregate_score(present),
            priority_actions=aggregate_priority_actions(present),
            failures=failures,
            cancelled=cancelled,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )
        if batch.overall_score is not None:
            self._tele.gauge("batch.overall_score", batch.overall_score)
        if not cancelled:
            report(PROGRESS_DONE, None)
        log.info(
            "Batch finished: %d succeeded, %d failed%s",
            len(batch.succeeded),
            len(batch.failed),
            " (cancelled)" if cancelled else "",
        )
        return batch

    # --- Convenience entry points ---

    async def analyze_video(
        self,
        inp: VideoAnalysisInput,
        categories: Sequence[str] | None = None,
        *,
        options: AnalysisOptions | None = None,
        cancel_event: asyncio.Event | None = None,
        on_progress: ProgressFn | None = None,
    ) -> BatchResult:
        """Analyse ``inp`` across ``categories`` (default: all eight).

        Raises:
            InvalidInputError: If the input or a category name is invalid.
        """
        options = options or self.default_options
        if not options.skip_validation:
            validate_analysis_input(inp)
        tasks = build_tasks(
            tuple(categories) if categories is not None else None, options
        )
        return await self.run_batch(
            tasks, inp, cancel_event=cancel_event, on_progress=on_progress
        )

    async def quick_analysis(
        self, inp: VideoAnalysisInput, **kwargs: Any
    ) -> BatchResult:
        """Only the essential categories: core concepts, scripting, checklists."""
        return await self.analyze_video(inp, CATEGORY_GROUPS["essential"], **kwargs)

    async def analyze_category(
        self,
        category: str,
        inp: VideoAnalysisInput,
        *,
        options: AnalysisOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BaseModel:
        """Analyse a single category, raising instead of recording ``None``."""
        (task,) = build_tasks((category,), options or self.default_options)
        if not task.options.skip_validation:
            validate_analysis_input(inp)
        return await self.run_task(
            task, sanitize_input(inp), cancel_event=cancel_event
        )

    async def quick_retention_check(self, inp: VideoAnalysisInput) -> BaseModel:
        return await self.analyze_category("core_concepts", inp)

    async def quick_seo_check(self, inp: VideoAnalysisInput) -> BaseModel:
        return await self.analyze_category("seo_metadata", inp)

    async def production_readiness_check(self, inp: VideoAnalysisInput) -> BaseModel:
        return await self.analyze_category("checklists", inp)


def create_orchestrator(
    config: FrozenConfig | None = None,
    *,
    provider: ModelProvider | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> CategoryOrchestrator:
    """Create an orchestrator with optional configuration.

    If no configuration is provided it is resolved from the environment.

    Args:
        config: Optional resolved configuration.
        provider: Optional provider, e.g. a fake in tests. Defaults to
            ``GoogleGenAIProvider`` built from ``config``.
        telemetry: Optional telemetry context.

    Raises:
        ConfigurationError: If no provider is given and no API key is set.
    """
    final_config = config if config is not None else resolve_config()
    log.debug("Creating orchestrator with %s", final_config)

    if provider is None:
        provider = GoogleGenAIProvider(
            final_config.api_key, timeout_ms=final_config.request_timeout_ms
        )
    knowledge_loader = (
        KnowledgeBaseLoader(final_config.knowledge_base_dir)
        if final_config.knowledge_base_dir is not None
        else None
    )
    return CategoryOrchestrator(
        provider,
        rate_limiter=RateLimiter(final_config.rate_limit_delay_ms),
        model_state=WorkingModelState(final_config.model),
        retry_policy=RetryPolicy(
            max_retries=final_config.max_retries,
            base_delay_ms=final_config.retry_base_delay_ms,
            max_delay_ms=final_config.retry_max_delay_ms,
        ),
        knowledge_loader=knowledge_loader,
        default_options=AnalysisOptions(
            temperature=final_config.temperature,
            max_output_tokens=final_config.max_output_tokens,
        ),
        telemetry=telemetry,
    )
