"""
Analysis Stage — preliminary passes that run before a session note is written.

Session notes get two non-streamed calls, modalities and engagement, run
concurrently and joined before composition. Treatment plans and brainstorm
activities get none.

A failed or timed-out call does not fail the generation: it degrades to a
placeholder entry and the note is written without that analysis.
Cancellation is not a failure and propagates.

Analysis output is scratch work. It is handed to the composer for the model
prompt and goes nowhere else: not the buffer, not the display prompt, not
the persisted record.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Mapping, Sequence

import clientnote.core.config as config_module
from clientnote.activity.models import ActivityType, SamplingParams
from clientnote.analysis.catalog import (
    ANALYSIS_SYSTEM_PROMPT,
    engagement_prompt,
    modalities_prompt,
    render_provided_modalities,
)
from clientnote.core.errors import InferenceError
from clientnote.core.metrics import metrics
from clientnote.providers.base import InferenceClient, InferenceRequest

logger = logging.getLogger(__name__)

MODALITIES = "modalities"
ENGAGEMENT = "engagement"

HEADINGS = {
    MODALITIES: "THERAPEUTIC MODALITIES AND INTERVENTIONS",
    ENGAGEMENT: "CLIENT ENGAGEMENT AND RESPONSIVENESS",
}


@dataclass(frozen=True)
class AnalysisResult:
    label: str
    text: str
    degraded: bool = False

    @property
    def heading(self) -> str:
        return HEADINGS.get(self.label, self.label.upper())


def _placeholder(label: str, reason: str) -> AnalysisResult:
    return AnalysisResult(
        label=label,
        text=f"[{label.capitalize()} analysis unavailable: {reason}]",
        degraded=True,
    )


class AnalysisStage:
    def __init__(
        self,
        client: InferenceClient,
        timeout: float | None = None,
        concurrent: bool | None = None,
    ):
        analysis = config_module.config.analysis
        self._client = client
        self._timeout = analysis.timeout if timeout is None else timeout
        self._concurrent = analysis.concurrent if concurrent is None else concurrent
        self._sampling = SamplingParams(temperature=analysis.temperature)

    async def analyze(
        self,
        activity_type: ActivityType,
        raw_input: str,
        model: str,
        provided_modalities: Mapping[str, Sequence[str]] | None = None,
    ) -> list[AnalysisResult]:
        """Run the passes that apply to this activity type, in label order."""
        if activity_type is not ActivityType.SESSION_NOTE:
            return []

        if provided_modalities:
            modalities = AnalysisResult(MODALITIES, render_provided_modalities(provided_modalities))
            return [modalities, await self._run(ENGAGEMENT, engagement_prompt(raw_input), model)]

        calls = [
            (MODALITIES, modalities_prompt(raw_input)),
            (ENGAGEMENT, engagement_prompt(raw_input)),
        ]
        if self._concurrent:
            return list(
                await asyncio.gather(*(self._run(label, prompt, model) for label, prompt in calls))
            )
        return [await self._run(label, prompt, model) for label, prompt in calls]

    async def _run(self, label: str, prompt: str, model: str) -> AnalysisResult:
        request = InferenceRequest(
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            user_prompt=prompt,
            model=model,
            sampling=self._sampling,
            stream=False,
        )
        started = time.time()
        try:
            text = await asyncio.wait_for(self._client.complete(request), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Analysis timed out after %.0fs", self._timeout, extra={"label": label}
            )
            metrics.inc("analysis.degraded", labels={"label": label, "reason": "timeout"})
            return _placeholder(label, "timed out")
        except InferenceError as e:
            logger.warning(
                "Analysis failed: %s", e, extra={"label": label, "kind": e.kind.value}
            )
            metrics.inc("analysis.degraded", labels={"label": label, "reason": e.kind.value})
            return _placeholder(label, "backend error")

        elapsed_ms = (time.time() - started) * 1000
        metrics.observe("analysis.duration_ms", elapsed_ms, labels={"label": label})
        if not text.strip():
            metrics.inc("analysis.degraded", labels={"label": label, "reason": "empty"})
            return _placeholder(label, "empty response")

        logger.debug(
            "Analysis done (%d chars)", len(text), extra={"label": label, "duration_ms": elapsed_ms}
        )
        return AnalysisResult(label=label, text=text.strip())
