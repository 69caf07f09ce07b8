"""Tests for PromptComposer, note formats and structured forms."""

import pytest

from clientnote.activity.models import ActivityConfig, ActivityType, SamplingParams
from clientnote.analysis.stage import AnalysisResult
from clientnote.prompts.composer import PromptComposer
from clientnote.prompts.formats import NOTE_FORMATS, expand_format, get_format
from clientnote.prompts.forms import SessionNoteForm, TreatmentPlanForm
from clientnote.prompts.system import (
    BRAINSTORM_SYSTEM_PROMPT,
    SESSION_NOTE_SYSTEM_PROMPT,
    default_config,
)

RAW = "Client discussed work stress and practiced reframing."


@pytest.fixture
def composer():
    return PromptComposer()


def _analyses():
    return [
        AnalysisResult("modalities", "CBT: cognitive restructuring"),
        AnalysisResult("engagement", "Engaged throughout"),
    ]


# ─── Formats ─────────────────────────────────────────────────


def test_catalog_has_known_formats():
    assert set(NOTE_FORMATS) == {"SOAP", "DAP", "BIRP", "PIRP", "GIRP", "SBAR", "FOCUS"}


@pytest.mark.parametrize("name", ["pirp", "PIRP", " Pirp "])
def test_format_lookup_is_case_insensitive(name):
    assert get_format(name).format_id == "PIRP"


def test_unknown_format_lookup():
    assert get_format("Other") is None
    assert get_format(None) is None


def test_pirp_expansion_lists_sections_in_order():
    text = expand_format(get_format("PIRP"))
    headings = ["Problem", "Intervention", "Response", "Plan"]
    positions = [text.index(f"{i}. {h}") for i, h in enumerate(headings, start=1)]
    assert positions == sorted(positions)
    assert "Problem, Intervention, Response, Plan" in text
    assert "Problem: Client reported increased anxiety related to work deadlines." in text


def test_expansion_is_deterministic():
    fmt = get_format("SOAP")
    assert expand_format(fmt) == expand_format(fmt)


# ─── Session notes ───────────────────────────────────────────


def test_pirp_session_note(composer):
    composed = composer.compose(ActivityType.SESSION_NOTE, RAW, "PIRP", analyses=_analyses())

    assert composed.display_prompt == RAW
    assert composed.format_used == "PIRP"
    assert composed.model_prompt.startswith(RAW)
    assert expand_format(get_format("PIRP")) in composed.model_prompt
    assert "THERAPEUTIC MODALITIES AND INTERVENTIONS:\nCBT: cognitive restructuring" in composed.model_prompt
    assert "CLIENT ENGAGEMENT AND RESPONSIVENESS:\nEngaged throughout" in composed.model_prompt
    assert "CBT: cognitive restructuring" not in composed.display_prompt
    assert composed.system_prompt == SESSION_NOTE_SYSTEM_PROMPT


def test_unknown_format_has_no_expansion(composer):
    composed = composer.compose(ActivityType.SESSION_NOTE, RAW, "My Custom Format")
    assert composed.model_prompt == RAW
    assert composed.format_used == "My Custom Format"


def test_no_format(composer):
    composed = composer.compose(ActivityType.SESSION_NOTE, RAW)
    assert composed.model_prompt == RAW
    assert composed.format_used is None


def test_degraded_analysis_still_appended(composer):
    analyses = [AnalysisResult("modalities", "[Modalities analysis unavailable: timed out]", True)]
    composed = composer.compose(ActivityType.SESSION_NOTE, RAW, analyses=analyses)
    assert "unavailable" in composed.model_prompt
    assert composed.display_prompt == RAW


def test_overridden_config_used_for_notes(composer):
    config = ActivityConfig("Custom instructions", SamplingParams())
    composed = composer.compose(ActivityType.SESSION_NOTE, RAW, config=config)
    assert composed.system_prompt == "Custom instructions"


def test_treatment_plan_ignores_analyses(composer):
    composed = composer.compose(ActivityType.TREATMENT_PLAN, RAW, analyses=_analyses())
    assert composed.model_prompt == RAW
    assert composed.system_prompt == default_config(ActivityType.TREATMENT_PLAN).system_prompt


# ─── Brainstorm ──────────────────────────────────────────────


def test_brainstorm_is_passthrough(composer):
    composed = composer.compose(ActivityType.BRAINSTORM, "Ideas for group therapy", "SOAP", analyses=_analyses())
    assert composed.display_prompt == "Ideas for group therapy"
    assert composed.model_prompt == "Ideas for group therapy"
    assert composed.format_used is None


def test_brainstorm_ignores_config_override(composer):
    config = ActivityConfig(SESSION_NOTE_SYSTEM_PROMPT, SamplingParams())
    composed = composer.compose(ActivityType.BRAINSTORM, "hi", config=config)
    assert composed.system_prompt == BRAINSTORM_SYSTEM_PROMPT


# ─── Forms ───────────────────────────────────────────────────


def test_session_form_renders_in_fixed_order():
    form = SessionNoteForm(
        date="2026-10-19",
        time="10:00",
        approach="CBT",
        interventions=("Cognitive Restructuring", "Homework"),
        presenting_issue="Work anxiety",
        client_response="Receptive",
        diagnosis="F41.1",
        notes="Follow up next week.",
        risk_flags=("Denied SI",),
    )
    assert form.render("PIRP") == (
        "Date: 2026-10-19\nTime: 10:00\n\n"
        "Note Format: PIRP\n\n"
        "Therapeutic Approach: CBT\n"
        "Interventions: Cognitive Restructuring, Homework\n"
        "Presenting Issue: Work anxiety\n"
        "Client Response: Receptive\n"
        "Insurance Code/Diagnosis: F41.1\n\n"
        "Additional Notes:\nFollow up next week.\n\n"
        "Risk Flags: Denied SI"
    )


def test_session_form_omits_empty_fields():
    assert SessionNoteForm(presenting_issue="Grief").render() == "Presenting Issue: Grief"


def test_session_form_modalities():
    form = SessionNoteForm(approach="DBT", interventions=("Chain Analysis",))
    assert form.modalities == {"DBT": ["Chain Analysis"]}
    assert SessionNoteForm().modalities is None


def test_form_from_dict():
    form = SessionNoteForm.from_dict({"approach": "CBT", "interventions": ["Homework"], "notes": None})
    assert form == SessionNoteForm(approach="CBT", interventions=("Homework",))


@pytest.mark.parametrize(
    "form_cls, data",
    [
        (SessionNoteForm, {"presenting_issue": 5}),
        (SessionNoteForm, {"interventions": "Homework"}),
        (SessionNoteForm, {"risk_flags": [1]}),
        (TreatmentPlanForm, {"goals": ["x"]}),
        (TreatmentPlanForm, {"strengths": 3}),
    ],
)
def test_form_from_dict_rejects_wrong_types(form_cls, data):
    with pytest.raises(TypeError):
        form_cls.from_dict(data)


def test_composer_uses_form_as_display_prompt(composer):
    form = SessionNoteForm(note_format="soap", presenting_issue="Insomnia")
    composed = composer.compose(ActivityType.SESSION_NOTE, "", form=form)
    assert composed.display_prompt == "Note Format: soap\n\nPresenting Issue: Insomnia"
    assert composed.format_used == "SOAP"
    assert "Subjective" in composed.model_prompt


def test_treatment_plan_form_sections():
    form = TreatmentPlanForm(
        diagnosis="F32.1",
        presenting_concerns="Low mood",
        strengths=("Supportive family",),
        goals="Improve sleep",
        risk_factors=("None reported",),
    )
    text = form.render()
    assert text.startswith("Please generate a treatment plan")
    assert "1. **Client Info & Diagnosis**\n• ICD-10 Diagnosis: F32.1" in text
    assert "2. **Strengths & Barriers**\n• Key Strengths:\n  - Supportive family" in text
    assert "3. **Goals & Objectives**\n• Treatment Goals: Improve sleep" in text
    assert "4. **Cultural & Risk Considerations**\n• Risk Assessment:\n  - None reported" in text
    assert "Additional Context" not in text


def test_empty_treatment_plan_form_falls_back_to_raw_input(composer):
    composed = composer.compose(ActivityType.TREATMENT_PLAN, "free text", form=TreatmentPlanForm())
    assert composed.display_prompt == "free text"
