"""
Clinical note formats and their deterministic prompt expansion.

Each format lists its section headings in order, what each section should
contain, and one short worked example. expand_format() renders these into
the block appended to a session-note model prompt. Formats not in the
catalog (custom, "Other") have no expansion.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NoteSection:
    heading: str
    description: str
    example: str


@dataclass(frozen=True)
class NoteFormat:
    format_id: str
    name: str
    focus: str
    sections: tuple[NoteSection, ...]

    @property
    def headings(self) -> list[str]:
        return [s.heading for s in self.sections]


NOTE_FORMATS: dict[str, NoteFormat] = {
    f.format_id: f
    for f in (
        NoteFormat(
            format_id="SOAP",
            name="Subjective, Objective, Assessment, Plan",
            focus="Widely used; insurance-friendly",
            sections=(
                NoteSection(
                    "Subjective",
                    "The client's reported symptoms, concerns, and experiences since the last session, in their own terms where provided.",
                    "Client reported increased worry about work deadlines and difficulty sleeping.",
                ),
                NoteSection(
                    "Objective",
                    "Observable facts from the session: presentation, affect, behavior, and any measurements or assessment scores.",
                    "Client presented with anxious affect, fidgeting, and rapid speech; GAD-7 score of 14.",
                ),
                NoteSection(
                    "Assessment",
                    "Clinical interpretation of the subjective and objective data, including progress toward goals and diagnostic impressions.",
                    "Symptoms are consistent with generalized anxiety; moderate progress in identifying triggers.",
                ),
                NoteSection(
                    "Plan",
                    "Treatment direction and next steps: interventions to continue, homework, referrals, and next appointment.",
                    "Continue weekly CBT; client will complete a daily thought record before the next session.",
                ),
            ),
        ),
        NoteFormat(
            format_id="DAP",
            name="Data, Assessment, Plan",
            focus="Streamlined alternative to SOAP",
            sections=(
                NoteSection(
                    "Data",
                    "Both subjective and objective information from the session: what the client reported and what was observed.",
                    "Client described conflict with a partner; presented tearful but engaged.",
                ),
                NoteSection(
                    "Assessment",
                    "Clinical interpretation of the data and the client's progress toward treatment goals.",
                    "Client is gaining insight into communication patterns; mood remains low.",
                ),
                NoteSection(
                    "Plan",
                    "Treatment direction, interventions to use next, and between-session tasks.",
                    "Introduce assertive communication skills next session; client to track conflicts this week.",
                ),
            ),
        ),
        NoteFormat(
            format_id="BIRP",
            name="Behavior, Intervention, Response, Plan",
            focus="Emphasizes behavior change",
            sections=(
                NoteSection(
                    "Behavior",
                    "The client's actions, statements, and presentation during the session.",
                    "Client arrived on time and stated they avoided two social events this week.",
                ),
                NoteSection(
                    "Intervention",
                    "The therapist's techniques and approaches, named by modality where appropriate.",
                    "Therapist used exposure hierarchy planning and Socratic questioning.",
                ),
                NoteSection(
                    "Response",
                    "How the client reacted to the interventions, including insight and engagement.",
                    "Client ranked five social situations and agreed to attempt the lowest-ranked one.",
                ),
                NoteSection(
                    "Plan",
                    "Next steps in treatment, homework, and follow-up.",
                    "Client will attend one small gathering; review outcome next session.",
                ),
            ),
        ),
        NoteFormat(
            format_id="PIRP",
            name="Problem, Intervention, Response, Plan",
            focus="Similar to BIRP with the presenting problem first",
            sections=(
                NoteSection(
                    "Problem",
                    "The client's current issue, symptoms, or concerns that were the focus of the session.",
                    "Client reported increased anxiety related to work deadlines.",
                ),
                NoteSection(
                    "Intervention",
                    "The specific therapeutic techniques or approaches used to address the problem.",
                    "Utilized cognitive restructuring to identify and challenge negative thought patterns.",
                ),
                NoteSection(
                    "Response",
                    "The client's reaction to the intervention and any progress observed.",
                    "Client demonstrated good insight and reframed two specific cognitive distortions.",
                ),
                NoteSection(
                    "Plan",
                    "Next steps, homework, or follow-up actions.",
                    "Client will practice a cognitive restructuring worksheet daily and monitor anxiety levels.",
                ),
            ),
        ),
        NoteFormat(
            format_id="GIRP",
            name="Goal, Intervention, Response, Plan",
            focus="Highlights goals upfront",
            sections=(
                NoteSection(
                    "Goal",
                    "The treatment objective addressed in this session, tied to the treatment plan.",
                    "Reduce frequency of panic episodes from daily to weekly.",
                ),
                NoteSection(
                    "Intervention",
                    "Methods used toward the goal.",
                    "Taught diaphragmatic breathing and interoceptive exposure.",
                ),
                NoteSection(
                    "Response",
                    "The client's progress and reaction toward the goal.",
                    "Client practiced breathing in session and reported reduced tension.",
                ),
                NoteSection(
                    "Plan",
                    "Next steps toward the goal.",
                    "Client will practice breathing twice daily and log panic episodes.",
                ),
            ),
        ),
        NoteFormat(
            format_id="SBAR",
            name="Situation, Background, Assessment, Recommendation",
            focus="Healthcare handoff, not therapy-specific",
            sections=(
                NoteSection(
                    "Situation",
                    "The client's current status and the reason for this communication.",
                    "Client reports passive suicidal ideation without plan or intent.",
                ),
                NoteSection(
                    "Background",
                    "Relevant history, diagnosis, and treatment to date.",
                    "Diagnosed with major depressive disorder; in weekly therapy for three months.",
                ),
                NoteSection(
                    "Assessment",
                    "The clinician's evaluation of the situation, including risk.",
                    "Low acute risk; protective factors include family support and future plans.",
                ),
                NoteSection(
                    "Recommendation",
                    "Suggested actions for the receiving provider or team.",
                    "Medication review with psychiatry within one week; safety plan updated.",
                ),
            ),
        ),
        NoteFormat(
            format_id="FOCUS",
            name="Focus, Observe, Client Response, Utilize, Specify",
            focus="Specialty rehab settings",
            sections=(
                NoteSection(
                    "Focus",
                    "The treatment emphasis for this session.",
                    "Relapse prevention for alcohol use.",
                ),
                NoteSection(
                    "Observe",
                    "The client's presentation and observed behavior.",
                    "Client alert and cooperative; reports 30 days of sobriety.",
                ),
                NoteSection(
                    "Client Response",
                    "The client's progress and reactions during the session.",
                    "Client identified two high-risk situations and coping responses.",
                ),
                NoteSection(
                    "Utilize",
                    "Resources and methods used.",
                    "Relapse prevention worksheet and peer support referral.",
                ),
                NoteSection(
                    "Specify",
                    "Detailed plans and measurable next steps.",
                    "Attend three support meetings this week; review worksheet next session.",
                ),
            ),
        ),
    )
}


def get_format(name: str | None) -> NoteFormat | None:
    """Look up a known format by id, case-insensitively. Unknown → None."""
    if not name:
        return None
    return NOTE_FORMATS.get(name.strip().upper())


def expand_format(note_format: NoteFormat) -> str:
    """Render the section instructions appended to a session-note model prompt."""
    lines = [
        f"For your reference, here is how to structure a {note_format.format_id} "
        f"({note_format.name}) clinical note.",
        "",
        "Required sections, in order:",
    ]
    for index, section in enumerate(note_format.sections, start=1):
        lines.append(f"{index}. {section.heading}")

    lines.append("")
    lines.append("Section contents:")
    for section in note_format.sections:
        lines.append(f"- {section.heading}: {section.description}")

    lines.append("")
    lines.append("Example:")
    for section in note_format.sections:
        lines.append(f"{section.heading}: {section.example}")

    return "\n".join(lines)
