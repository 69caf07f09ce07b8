"""
Structured input forms and their display rendering.

A form renders to the display prompt in a fixed field order. Empty fields
are omitted, so two forms that differ only in blank fields render the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SessionNoteForm:
    """Fields a clinician can fill in instead of free text for a session note."""

    date: str = ""
    time: str = ""
    note_format: str = ""
    approach: str = ""
    interventions: tuple[str, ...] = ()
    presenting_issue: str = ""
    client_response: str = ""
    clinical_focus: str = ""
    treatment_goals: str = ""
    diagnosis: str = ""
    notes: str = ""
    risk_flags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> SessionNoteForm:
        return cls(
            date=_text(data, "date"),
            time=_text(data, "time"),
            note_format=_text(data, "note_format"),
            approach=_text(data, "approach"),
            interventions=_items(data, "interventions"),
            presenting_issue=_text(data, "presenting_issue"),
            client_response=_text(data, "client_response"),
            clinical_focus=_text(data, "clinical_focus"),
            treatment_goals=_text(data, "treatment_goals"),
            diagnosis=_text(data, "diagnosis"),
            notes=_text(data, "notes"),
            risk_flags=_items(data, "risk_flags"),
        )

    def render(self, note_format: str | None = None) -> str:
        """Render the form. `note_format` fills in when the form has none."""
        blocks: list[list[str]] = []

        blocks.append(_lines(("Date", self.date), ("Time", self.time)))
        blocks.append(_lines(("Note Format", self.note_format or note_format or "")))
        blocks.append(
            _lines(
                ("Therapeutic Approach", self.approach),
                ("Interventions", ", ".join(i for i in self.interventions if i)),
                ("Presenting Issue", self.presenting_issue),
                ("Client Response", self.client_response),
                ("Clinical Focus", self.clinical_focus),
                ("Treatment Goals", self.treatment_goals),
                ("Insurance Code/Diagnosis", self.diagnosis),
            )
        )
        if self.notes.strip():
            blocks.append(["Additional Notes:", self.notes.strip()])
        blocks.append(_lines(("Risk Flags", ", ".join(r for r in self.risk_flags if r))))

        return "\n\n".join("\n".join(b) for b in blocks if b)

    @property
    def modalities(self) -> dict[str, list[str]] | None:
        """Approach → interventions the clinician already selected, or None."""
        if not self.approach.strip():
            return None
        return {self.approach.strip(): [i for i in self.interventions if i]}


@dataclass(frozen=True)
class TreatmentPlanForm:
    """Fields for a treatment plan, rendered in numbered sections."""

    start_date: str = ""
    diagnosis: str = ""
    presenting_concerns: str = ""
    strengths: tuple[str, ...] = ()
    obstacles: tuple[str, ...] = ()
    goals: str = ""
    cultural_factors: tuple[str, ...] = ()
    risk_factors: tuple[str, ...] = ()
    notes: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> TreatmentPlanForm:
        return cls(
            start_date=_text(data, "start_date"),
            diagnosis=_text(data, "diagnosis"),
            presenting_concerns=_text(data, "presenting_concerns"),
            strengths=_items(data, "strengths"),
            obstacles=_items(data, "obstacles"),
            goals=_text(data, "goals"),
            cultural_factors=_items(data, "cultural_factors"),
            risk_factors=_items(data, "risk_factors"),
            notes=_text(data, "notes"),
        )

    def render(self, note_format: str | None = None) -> str:
        sections: list[str] = []

        info = _bullets(
            ("Start-of-Care Date", self.start_date),
            ("ICD-10 Diagnosis", self.diagnosis),
            ("Presenting Concerns", self.presenting_concerns),
        )
        if info:
            sections.append("1. **Client Info & Diagnosis**\n" + info)

        strengths = _bullet_lists(("Key Strengths", self.strengths), ("Treatment Obstacles", self.obstacles))
        if strengths:
            sections.append("2. **Strengths & Barriers**\n" + strengths)

        goals = _bullets(("Treatment Goals", self.goals))
        if goals:
            sections.append("3. **Goals & Objectives**\n" + goals)

        risk = _bullet_lists(
            ("Cultural/Identity Factors", self.cultural_factors),
            ("Risk Assessment", self.risk_factors),
        )
        if risk:
            sections.append("4. **Cultural & Risk Considerations**\n" + risk)

        if self.notes.strip():
            sections.append("5. **Additional Context & Notes**\n" + self.notes.strip())

        if not sections:
            return ""
        header = "Please generate a treatment plan using the following information:"
        return header + "\n\n" + "\n\n".join(sections)


Form = SessionNoteForm | TreatmentPlanForm


def _text(data: dict, key: str) -> str:
    value = data.get(key) or ""
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


def _items(data: dict, key: str) -> tuple[str, ...]:
    value = data.get(key) or ()
    if isinstance(value, str) or not all(isinstance(i, str) for i in value):
        raise TypeError(f"{key} must be a list of strings")
    return tuple(value)


def _lines(*pairs: tuple[str, str]) -> list[str]:
    return [f"{label}: {value.strip()}" for label, value in pairs if value and value.strip()]


def _bullets(*pairs: tuple[str, str]) -> str:
    return "\n".join(f"• {label}: {value.strip()}" for label, value in pairs if value and value.strip())


def _bullet_lists(*pairs: tuple[str, tuple[str, ...]]) -> str:
    parts = []
    for label, items in pairs:
        items = [i for i in items if i and i.strip()]
        if items:
            parts.append(f"• {label}:\n" + "\n".join(f"  - {i.strip()}" for i in items))
    return "\n".join(parts)
