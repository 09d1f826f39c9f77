import json

import pytest

from video_copilot.analysis.knowledge import (
    KnowledgeBaseLoader,
    format_as_prompt_context,
)

pytestmark = pytest.mark.unit


def _kb_document(title: str, *, dependencies=(), techniques=7) -> dict:
    return {
        "meta": {
            "title": title,
            "category": "core_concepts",
            "version": "1.0",
            "lastUpdated": "2025-01-01",
            "dependencies": list(dependencies),
        },
        "summary": f"{title} summary.",
        "core_principles": [
            {"principle": "Open loops", "description": "Tease payoffs.", "importance": "high"},
            {"principle": "Minor detail", "description": "Rarely matters.", "importance": "low"},
        ],
        "techniques": [
            {"name": f"Technique {i}", "description": f"Do thing {i}."}
            for i in range(1, techniques + 1)
        ],
    }


@pytest.fixture
def kb_root(tmp_path):
    category_dir = tmp_path / "01_core_concepts"
    category_dir.mkdir()
    (category_dir / "a_hooks.json").write_text(
        json.dumps(_kb_document("Hooks", dependencies=["b_pacing.json"]))
    )
    (category_dir / "b_pacing.json").write_text(json.dumps(_kb_document("Pacing")))
    (category_dir / "c_broken.json").write_text("{not json")
    return tmp_path


def test_load_category_skips_malformed_files(kb_root):
    loader = KnowledgeBaseLoader(kb_root)

    files = loader.load_category("core_concepts")

    assert [f.meta.title for f in files] == ["Hooks", "Pacing"]
    assert files[0].meta.last_updated == "2025-01-01"


def test_files_are_cached_by_path(kb_root):
    loader = KnowledgeBaseLoader(kb_root)
    path = kb_root / "01_core_concepts" / "a_hooks.json"

    first = loader.load_file(path)
    assert loader.load_file(path) is first

    loader.clear_cache()
    assert loader.load_file(path) is not first


def test_missing_directory_and_unknown_category_are_empty(tmp_path):
    loader = KnowledgeBaseLoader(tmp_path)
    assert loader.load_category("scripting") == []
    assert loader.load_category("thumbnails") == []


def test_dependencies_are_followed_once(kb_root):
    loader = KnowledgeBaseLoader(kb_root)

    files = loader.load_with_dependencies(kb_root / "01_core_concepts" / "a_hooks.json")

    assert [f.meta.title for f in files] == ["Hooks", "Pacing"]


def test_prompt_context_keeps_high_importance_and_top_techniques(kb_root):
    files = KnowledgeBaseLoader(kb_root).load_category("core_concepts")

    context = format_as_prompt_context(files)

    assert context.startswith("### Hooks\nHooks summary.")
    assert "**Core Principles:**\n- Open loops: Tease payoffs." in context
    assert "Minor detail" not in context
    assert "- Technique 5: Do thing 5." in context
    assert "Technique 6" not in context
    assert "\n\n---\n\n### Pacing" in context


def test_empty_file_list_formats_to_empty_string():
    assert format_as_prompt_context([]) == ""
