from types import MappingProxyType

import pytest

from video_copilot.core.types import (
    AnalysisOptions,
    AnalysisTask,
    BatchResult,
    VideoAnalysisInput,
)

pytestmark = pytest.mark.unit


def test_batch_result_mappings_are_read_only():
    batch = BatchResult(results={"audio_design": None}, failures={"audio_design": "boom"})

    assert isinstance(batch.results, MappingProxyType)
    with pytest.raises(TypeError):
        batch.results["audio_design"] = None  # type: ignore[index]
    with pytest.raises(TypeError):
        batch.failures["scripting"] = "x"  # type: ignore[index]


def test_batch_result_partitions_categories(document_factory):
    from video_copilot.core.schemas import get_category_schema

    audio = get_category_schema("audio_design").model_validate(document_factory("audio_design"))
    batch = BatchResult(results={"core_concepts": None, "audio_design": audio, "seo_metadata": None})

    assert batch.succeeded == ("audio_design",)
    assert batch.failed == ("core_concepts", "seo_metadata")


def test_input_requires_string_fields():
    with pytest.raises(TypeError, match="video_id"):
        VideoAnalysisInput(video_id=42, duration=10, transcription="t")  # type: ignore[arg-type]


def test_task_requires_category_and_callable():
    with pytest.raises(ValueError, match="category"):
        AnalysisTask(category="", build_prompt=lambda c, i: "", schema=object)  # type: ignore[arg-type]
    with pytest.raises(TypeError, match="build_prompt"):
        AnalysisTask(category="audio_design", build_prompt="nope", schema=object)  # type: ignore[arg-type]


def test_task_options_default():
    task = AnalysisTask(category="audio_design", build_prompt=lambda c, i: "", schema=object)  # type: ignore[arg-type]
    assert task.options == AnalysisOptions()
