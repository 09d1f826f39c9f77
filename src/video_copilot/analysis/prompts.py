"""Prompt builders for the eight analysis categories.

All categories share one layout: role, optional knowledge-base reference,
video information, transcript, the exact JSON shape expected back, rules for
empty results, and the category's analysis checklist. ``CATEGORY_PROMPTS``
holds the per-category parts; ``prompt_builder_for`` binds them into the
``(context, input) -> str`` callable an ``AnalysisTask`` carries.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import json
from types import MappingProxyType
from typing import Any

from video_copilot.core.types import VideoAnalysisInput


@dataclasses.dataclass(frozen=True, slots=True)
class CategoryPrompt:
    role: str
    tasks: tuple[str, ...]
    example_fields: dict[str, Any]
    empty_rules: tuple[str, ...] = ()
    with_timestamps: bool = False
    with_speakers: bool = False
    keyframe_focus: tuple[str, ...] = ()
    metadata_detail: bool = False
    speaker_task: str | None = None
    closing: str = "Identify specific issues with timestamps and provide actionable recommendations."


CATEGORY_PROMPTS = MappingProxyType(
    {
        "core_concepts": CategoryPrompt(
            role="You are a video retention expert analyzing a video for psychological engagement patterns.",
            tasks=(
                "Dopamine loop effectiveness - are there reward cycles that keep viewers engaged?",
                "Pattern interrupts - visual/audio changes that reset attention",
                "Cognitive load balance - is the content under/over stimulating?",
                "Critical drop-off points - where might viewers leave and why?",
                "First 30 seconds hook effectiveness",
            ),
            example_fields={
                "retentionMetrics": {
                    "predictedRetentionRate": 0.75,
                    "dopamineLoopCount": 3,
                    "patternInterruptCount": 4,
                    "cognitiveLoadBalance": "optimal",
                },
                "criticalDropoffPoints": [
                    {"timestamp": 15, "reason": "reason", "suggestedFix": "fix"}
                ],
            },
            empty_rules=(
                'If NO DROPOFF POINTS: return "criticalDropoffPoints": [] or null, NOT a string',
                'If unable to calculate metrics: return "retentionMetrics": null',
            ),
            with_timestamps=True,
            with_speakers=True,
            speaker_task="Speaker dynamics - how do the {n} speakers interact and share screen time?",
        ),
        "scripting": CategoryPrompt(
            role="You are a video scripting expert analyzing script structure and narrative flow.",
            tasks=(
                "Hook strength - does it grab attention in first 5-8 seconds?",
                "Narrative clarity - is the story/information flow logical?",
                "Visual cue integration - are there natural B-roll/graphics opportunities?",
                "Open loops - questions raised that keep viewers watching",
                "Visual gaps - sections that need more visual support",
            ),
            example_fields={
                "scriptMetrics": {
                    "hookStrength": 0.9,
                    "narrativeClarity": 0.85,
                    "visualCueIntegration": 0.8,
                    "openLoopCount": 2,
                },
                "visualGaps": [
                    {
                        "timestamp": {"start": 15, "end": 20},
                        "duration": 5,
                        "suggestedBRoll": "B-roll suggestion",
                    }
                ],
            },
            empty_rules=(
                'If NO VISUAL GAPS: return "visualGaps": [] or null, NOT a string',
                'If unable to calculate metrics: return "scriptMetrics": null',
            ),
            with_timestamps=True,
            with_speakers=True,
            speaker_task="Dialogue flow - evaluate the conversation/interview dynamics between the {n} speakers",
            closing="Provide specific timestamps for issues and recommendations.",
        ),
        "visual_editing": CategoryPrompt(
            role="You are a video editing expert analyzing visual pacing and dynamics.",
            tasks=(
                "3-second rule compliance - do visuals change frequently enough? Estimate based on keyframes.",
                "Pacing rhythm - does the edit speed match content energy?",
                "Dynamic zoom/movement - are static shots avoided?",
                "Transition variety - are cuts, zooms, overlays varied?",
                "Visual consistency - do the keyframes show consistent visual style?",
                "Cognitive load oscillation - are there breathing room moments?",
            ),
            example_fields={
                "pacingMetrics": {
                    "averageCutLength": 3.5,
                    "visualChangeFrequency": 0.28,
                    "dynamicZoomUsage": True,
                    "transitionVariety": 0.7,
                },
                "pacingViolations": [
                    {
                        "timestamp": {"start": 10, "end": 15},
                        "type": "too_static",
                        "suggestion": "Add cut or zoom",
                    }
                ],
            },
            empty_rules=(
                'If NO PACING VIOLATIONS: return "pacingViolations": [] or null, NOT a string',
                'If unable to calculate metrics: return "pacingMetrics": null',
            ),
            keyframe_focus=(
                "Visual composition and framing",
                "Color palette and contrast",
                "Typography/text overlays present",
                "Visual energy level (static vs dynamic)",
                "Shot type (close-up, wide, B-roll, etc.)",
            ),
            closing="Identify pacing violations with specific timestamps and suggest fixes.",
        ),
        "audio_design": CategoryPrompt(
            role="You are an audio design expert analyzing video sound architecture.",
            tasks=(
                "Sound layer opportunities - where could SFX, ambience enhance?",
                "Music timing - are there natural music entry/exit points?",
                "Mix balance indicators - dialogue vs background audio",
                "Silence gaps - unintentional dead air vs dramatic pause",
                "Audio ducking opportunities - where should music lower for speech?",
            ),
            example_fields={
                "audioMetrics": {
                    "layerCount": 3,
                    "musicTiming": 0.8,
                    "mixBalance": 0.75,
                    "silenceGaps": 2,
                },
                "audioIssues": [
                    {
                        "timestamp": {"start": 20, "end": 25},
                        "type": "missing_sfx",
                        "suggestion": "Add whoosh on transition",
                    }
                ],
            },
            empty_rules=(
                'If NO AUDIO ISSUES: return "audioIssues": [] or null, NOT a string',
                'If unable to calculate metrics: return "audioMetrics": null',
            ),
        ),
        "seo_metadata": CategoryPrompt(
            role="You are a YouTube SEO expert analyzing video metadata optimization.",
            tasks=(
                "Title optimization - curiosity triggers, power words, length",
                "Description engineering - mini-blog structure, timestamps, CTR",
                "Tag relevance - keyword targeting, tag variety",
                "Compliance check - no spam, deceptive practices",
                "Searchability - how well does metadata match content?",
            ),
            example_fields={
                "seoMetrics": {
                    "titleScore": 0.7,
                    "descriptionScore": 0.6,
                    "tagRelevance": 0.8,
                    "complianceStatus": "compliant",
                },
                "suggestions": {
                    "titles": ["Alternative title 1", "Alternative title 2"],
                    "description": "Suggested description",
                    "tags": ["tag1", "tag2"],
                },
            },
            empty_rules=('Always provide "seoMetrics" and "suggestions" objects',),
            metadata_detail=True,
            closing="Provide optimized title alternatives, a description and tags.",
        ),
        "style_guides": CategoryPrompt(
            role="You are a video style expert analyzing creator style patterns and visual identity.",
            tasks=(
                "Style detection - which creator style does this most resemble? "
                "(high_energy, vox, lemmino, hormozi, mixed or custom)",
                "Style consistency score - is the detected style maintained throughout?",
                "Style recommendations - what style would suit this content best?",
                "Specific techniques to borrow from reference styles",
                "Areas where style can be elevated with concrete examples",
            ),
            example_fields={
                "styleMetrics": {
                    "detectedStyle": "vox",
                    "styleConsistency": 0.8,
                    "recommendedStyle": "lemmino",
                },
                "styleRecommendations": [
                    {
                        "aspect": "Color grading",
                        "currentApproach": "Current approach",
                        "suggestedApproach": "Suggested approach",
                        "styleReference": "lemmino",
                    }
                ],
            },
            empty_rules=(
                'If NO STYLE RECOMMENDATIONS: return "styleRecommendations": [] or null, NOT a string',
                'If unable to detect style: return "styleMetrics": null',
            ),
            keyframe_focus=(
                "Color grading and palette",
                "Typography and graphics style",
                "Framing and composition habits",
                "Overall visual identity",
            ),
            closing="Recommend concrete style changes with references.",
        ),
        "tools_workflows": CategoryPrompt(
            role="You are a video production workflow expert.",
            tasks=(
                "Production workflow efficiency opportunities",
                "Tools that could improve this type of content",
                "Automation potential for repetitive editing tasks",
                "Template opportunities for similar future videos",
                "Integration recommendations between tools",
            ),
            example_fields={
                "workflowMetrics": {"efficiencyScore": 0.8, "automationPotential": 0.75},
                "toolRecommendations": [
                    {
                        "task": "Task description",
                        "currentTool": "Current tool",
                        "recommendedTool": "Recommended tool",
                        "benefit": "Benefit description",
                    }
                ],
            },
            empty_rules=(
                'If NO TOOL RECOMMENDATIONS: return "toolRecommendations": [] or null, NOT a string',
                'If unable to calculate metrics: return "workflowMetrics": null',
            ),
            closing="Recommend tools and workflow changes with their concrete benefit.",
        ),
        "checklists": CategoryPrompt(
            role="You are a video production quality assurance expert.",
            tasks=(
                "Retention checklist: strong hook in first 8 seconds; visual changes every "
                "3-5 seconds; pattern interrupts throughout; dopamine loops/reward cycles; "
                "no excessive dead air/silence; breathing room after high-intensity; "
                "clear structure/chapters; strong call-to-action",
                "SEO checklist: title under 60 characters; curiosity gap in title; "
                "description has front-loaded keywords; timestamps/chapters included; "
                "relevant tags (5-15); no spam/deceptive practices",
            ),
            example_fields={
                "checklistResults": {
                    "retentionChecklist": {"passed": 6, "failed": 2, "total": 8},
                    "seoChecklist": {"passed": 4, "failed": 2, "total": 6},
                },
                "failedItems": [
                    {
                        "checklist": "retention",
                        "item": "Strong hook in first 8 seconds",
                        "status": "failed",
                        "remediation": "Remediation steps",
                    }
                ],
            },
            empty_rules=(
                'If NO FAILED ITEMS: return "failedItems": [] or null, NOT a string',
                "Always provide checklistResults object",
            ),
            metadata_detail=True,
            closing="Report passed/failed items with remediation for failures.",
        ),
    }
)

_COMMON_RULES = (
    'If NO ISSUES found: return "issues": [] (empty array), NOT a string like "No issues identified"',
)
_TRAILING_RULES = (
    "Always use proper JSON objects, never strings in array fields",
    "Use the provided timestamps when identifying issues for accurate playback positioning",
)


def _response_example(category: str, template: CategoryPrompt) -> str:
    example = {
        "category": category,
        "summary": "2-3 sentence analysis summary",
        "overallScore": 0.85,
        "issues": [
            {
                "id": "unique-id",
                "timestamp": {"start": 5, "end": 10},
                "category": category,
                "severity": "critical",
                "title": "Brief issue title",
                "description": "What was observed",
                "issue": "What is wrong",
                "recommendation": "Specific fix",
                "confidence": 0.9,
            }
        ],
        "strengths": ["strength 1", "strength 2"],
        "priorityActions": ["action 1", "action 2", "action 3"],
        **template.example_fields,
    }
    return json.dumps(example, indent=2)


def _video_section(template: CategoryPrompt, inp: VideoAnalysisInput) -> list[str]:
    meta = inp.metadata
    lines = ["## Video Information", f"- Duration: {inp.duration:g} seconds"]
    lines.append(f"- Video ID: {inp.video_id}")
    if template.metadata_detail:
        lines.append(f"- Current Title: {meta.title}" if meta and meta.title else "- No title provided")
        lines.append(
            f"- Current Description: {meta.description}"
            if meta and meta.description
            else "- No description provided"
        )
        lines.append(
            f"- Current Tags: {', '.join(meta.tags)}" if meta and meta.tags else "- No tags provided"
        )
    elif meta and meta.title:
        lines.append(f"- Title: {meta.title}")
    if template.with_speakers and inp.speaker_count:
        lines.append(f"- Number of Speakers: {inp.speaker_count}")
    return lines


def _transcript_section(template: CategoryPrompt, inp: VideoAnalysisInput) -> list[str]:
    lines: list[str] = []
    if template.with_speakers and inp.speaker_summary:
        lines += ["## Speaker Analysis", inp.speaker_summary, ""]
    if template.with_timestamps and inp.transcription_with_timestamps:
        lines += [
            "## Transcription (with timestamps and speaker labels)",
            inp.transcription_with_timestamps,
        ]
    else:
        lines += ["## Transcription", inp.transcription]
    return lines


def _keyframe_section(template: CategoryPrompt, inp: VideoAnalysisInput) -> list[str]:
    if not template.keyframe_focus:
        return []
    if not inp.keyframes:
        return [
            "## Note: No keyframes provided",
            "Analysis is based on transcription only. Provide keyframes for visual analysis.",
        ]
    count = len(inp.keyframes)
    lines = [
        f"## Visual Keyframes ({count} frames provided)",
        f"CRITICAL: Analyze the {count} keyframes provided at the following timestamps:",
    ]
    lines += [f"- Frame at {kf.timestamp:.1f}s" for kf in inp.keyframes]
    lines += ["", "For each keyframe, evaluate:"]
    lines += [f"- {focus}" for focus in template.keyframe_focus]
    return lines


def build_category_prompt(
    category: str, context: str, inp: VideoAnalysisInput
) -> str:
    """Render the full prompt for ``category``."""
    template = CATEGORY_PROMPTS[category]
    sections: list[str] = [template.role, ""]
    if context:
        sections += ["## Knowledge Base Reference", context, ""]
    sections += _video_section(template, inp)
    sections.append("")
    sections += _transcript_section(template, inp)
    sections.append("")
    keyframes = _keyframe_section(template, inp)
    if keyframes:
        sections += keyframes + [""]

    sections += [
        "## CRITICAL: Response Format Required",
        "You MUST return a JSON response with this EXACT structure:",
        _response_example(category, template),
        "",
        "IMPORTANT RULES:",
    ]
    rules = _COMMON_RULES + template.empty_rules + _TRAILING_RULES
    sections += [f"- {rule}" for rule in rules]
    sections.append("")

    tasks = list(template.tasks)
    if template.speaker_task and inp.speaker_count and inp.speaker_count > 1:
        tasks.append(template.speaker_task.format(n=inp.speaker_count))
    sections.append("## Analysis Task")
    sections += [f"{i}. {task}" for i, task in enumerate(tasks, start=1)]
    sections += ["", template.closing]
    return "\n".join(sections)


def prompt_builder_for(category: str) -> Callable[[str, VideoAnalysisInput], str]:
    """Bind ``category`` into an ``(context, input) -> prompt`` callable."""
    if category not in CATEGORY_PROMPTS:
        raise KeyError(f"No prompt defined for category {category!r}")

    def build(context: str, inp: VideoAnalysisInput) -> str:
        return build_category_prompt(category, context, inp)

    build.__name__ = f"build_{category}_prompt"
    return build
