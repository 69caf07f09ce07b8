"""
Prompt Composer — turns what the clinician supplied into two prompts.

    display_prompt   exactly what the user gave (free text verbatim, or the
                     rendered form). This is what gets persisted and shown.
    model_prompt     display_prompt plus the note-format expansion and the
                     analysis results. This is what the backend sees.

Composition is pure and deterministic: same inputs, same prompts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from clientnote.activity.models import ActivityConfig, ActivityType
from clientnote.analysis.stage import AnalysisResult
from clientnote.prompts.formats import expand_format, get_format
from clientnote.prompts.forms import Form
from clientnote.prompts.system import system_prompt_for


@dataclass(frozen=True)
class ComposedPrompt:
    display_prompt: str
    model_prompt: str
    system_prompt: str
    format_used: str | None = None


class PromptComposer:
    def compose(
        self,
        activity_type: ActivityType,
        raw_input: str,
        note_format: str | None = None,
        form: Form | None = None,
        analyses: Iterable[AnalysisResult] = (),
        config: ActivityConfig | None = None,
    ) -> ComposedPrompt:
        """Build display, model and system prompts for one generation.

        Brainstorm takes the input as-is: no format expansion, no analyses,
        and the fixed brainstorm system prompt regardless of `config`.
        """
        display_prompt = raw_input
        if form is not None:
            display_prompt = form.render(note_format) or raw_input

        system_prompt = system_prompt_for(activity_type, config)

        if activity_type is ActivityType.BRAINSTORM:
            return ComposedPrompt(
                display_prompt=display_prompt,
                model_prompt=display_prompt,
                system_prompt=system_prompt,
            )

        requested = note_format or getattr(form, "note_format", "") or None
        known = get_format(requested)
        format_used = known.format_id if known else (requested.strip() if requested else None)

        parts = [display_prompt]
        if known is not None:
            parts.append(expand_format(known))

        if activity_type is ActivityType.SESSION_NOTE:
            analysis_block = self._analysis_block(analyses)
            if analysis_block:
                parts.append(analysis_block)

        return ComposedPrompt(
            display_prompt=display_prompt,
            model_prompt="\n\n".join(parts),
            system_prompt=system_prompt,
            format_used=format_used or None,
        )

    def _analysis_block(self, analyses: Iterable[AnalysisResult]) -> str:
        sections = [f"{a.heading}:\n{a.text}" for a in analyses if a.text]
        if not sections:
            return ""
        return "Consider the following analyses for this session:\n\n" + "\n\n".join(sections)
