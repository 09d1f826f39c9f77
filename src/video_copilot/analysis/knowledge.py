"""Knowledge-base files rendered as prompt context.

Each category has a directory of JSON documents under the knowledge-base root
(``01_core_concepts``, ``02_scripting`` and so on). Files are parsed with
pydantic, cached by path, and condensed into a markdown section that is
prepended to the category prompt.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from video_copilot.constants import CATEGORY_DIRECTORIES

log = logging.getLogger(__name__)

MAX_TECHNIQUES = 5


class _KBModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class KnowledgeMeta(_KBModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    title: str
    category: str = ""
    version: str = ""
    last_updated: str = ""
    dependencies: list[str] = []


class CorePrinciple(_KBModel):
    principle: str
    description: str
    importance: str = "medium"


class Technique(_KBModel):
    name: str
    description: str
    implementation: list[str] = []
    timing: str | None = None
    examples: list[str] = []


class KnowledgeFile(_KBModel):
    meta: KnowledgeMeta
    summary: str
    core_principles: list[CorePrinciple] = []
    techniques: list[Technique] = []


class KnowledgeBaseLoader:
    """Loads and caches knowledge-base files from ``root``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._cache: dict[Path, KnowledgeFile] = {}

    def load_file(self, path: str | Path) -> KnowledgeFile | None:
        """Parse one file; unreadable or malformed files are logged and skipped."""
        path = Path(path)
        cached = self._cache.get(path)
        if cached is not None:
            return cached
        try:
            parsed = KnowledgeFile.model_validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            log.error("Failed to load knowledge base file %s: %s", path, e)
            return None
        self._cache[path] = parsed
        return parsed

    def load_category(self, category: str) -> list[KnowledgeFile]:
        directory = CATEGORY_DIRECTORIES.get(category)
        if directory is None:
            log.warning("Unknown knowledge base category requested: %s", category)
            return []
        category_path = self.root / directory
        if not category_path.is_dir():
            log.warning("Knowledge base directory missing: %s", category_path)
            return []

        files = [
            loaded
            for path in sorted(category_path.glob("*.json"))
            if (loaded := self.load_file(path)) is not None
        ]
        log.info("Loaded %d knowledge base file(s) for %s", len(files), category)
        return files

    def load_with_dependencies(self, path: str | Path) -> list[KnowledgeFile]:
        """Load ``path`` and, depth-first, every file it declares as a dependency."""
        results: list[KnowledgeFile] = []
        visited: set[Path] = set()
        pending = [Path(path)]
        while pending:
            current = pending.pop()
            if current in visited:
                continue
            visited.add(current)
            loaded = self.load_file(current)
            if loaded is None:
                continue
            results.append(loaded)
            for dependency in reversed(loaded.meta.dependencies):
                resolved = self._resolve_dependency(current, dependency)
                if resolved is not None:
                    pending.append(resolved)
        return results

    def _resolve_dependency(self, current: Path, name: str) -> Path | None:
        candidates = [current.parent / name] + [
            self.root / directory / name for directory in CATEGORY_DIRECTORIES.values()
        ]
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        log.warning("Could not resolve dependency %s from %s", name, current)
        return None

    def clear_cache(self) -> None:
        self._cache.clear()


def format_as_prompt_context(files: list[KnowledgeFile]) -> str:
    """Condense files into markdown: title, summary, high-importance principles, top techniques."""
    sections = []
    for file in files:
        lines = [f"### {file.meta.title}", file.summary]
        if file.core_principles:
            lines.append("\n**Core Principles:**")
            lines.extend(
                f"- {p.principle}: {p.description}"
                for p in file.core_principles
                if p.importance == "high"
            )
        if file.techniques:
            lines.append("\n**Key Techniques:**")
            lines.extend(
                f"- {t.name}: {t.description}" for t in file.techniques[:MAX_TECHNIQUES]
            )
        sections.append("\n".join(lines))
    return "\n\n---\n\n".join(sections)
