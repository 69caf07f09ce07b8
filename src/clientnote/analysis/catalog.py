"""
Reference catalogs for the session-note analysis passes.

The modality catalog tells the model what each psychotherapy approach looks
like in a transcript; the engagement catalog gives positive and challenging
indicators for five dimensions of client engagement. Both are rendered into
the analysis prompts by modalities_prompt() and engagement_prompt().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence


@dataclass(frozen=True)
class Intervention:
    name: str
    description: str
    detection: str


@dataclass(frozen=True)
class Modality:
    name: str
    description: str
    detection_criteria: tuple[str, ...]
    interventions: tuple[Intervention, ...]


@dataclass(frozen=True)
class EngagementCategory:
    name: str
    positive: tuple[str, ...]
    challenging: tuple[str, ...]


MODALITIES: tuple[Modality, ...] = (
    Modality(
        "Cognitive Behavioral Therapy (CBT)",
        "Structured approach linking thoughts, feelings and behaviors.",
        (
            "Discussion of automatic thoughts or cognitive distortions",
            "Homework such as thought records or behavioral experiments",
        ),
        (
            Intervention(
                "Cognitive Restructuring",
                "Identifying and challenging unhelpful thoughts",
                "Therapist asks for evidence for and against a belief",
            ),
            Intervention(
                "Behavioral Activation",
                "Scheduling rewarding or mastery activities",
                "Planning specific activities to counter withdrawal",
            ),
            Intervention(
                "Exposure",
                "Graduated approach to feared situations",
                "Building or working through a fear hierarchy",
            ),
        ),
    ),
    Modality(
        "Dialectical Behavior Therapy (DBT)",
        "Skills-based approach balancing acceptance and change.",
        (
            "Teaching of mindfulness, distress tolerance, emotion regulation or interpersonal effectiveness skills",
            "Chain analysis of a problem behavior",
        ),
        (
            Intervention(
                "Distress Tolerance Skills",
                "Crisis survival skills such as TIPP or self-soothing",
                "Coaching a skill to get through intense emotion without acting on urges",
            ),
            Intervention(
                "Chain Analysis",
                "Step-by-step review of events leading to a behavior",
                "Walking through vulnerability, prompting event, links and consequences",
            ),
        ),
    ),
    Modality(
        "Acceptance and Commitment Therapy (ACT)",
        "Building psychological flexibility through acceptance and values-based action.",
        (
            "Language about values, acceptance or defusion",
            "Willingness to experience discomfort in service of goals",
        ),
        (
            Intervention(
                "Cognitive Defusion",
                "Creating distance from thoughts",
                "Noticing thoughts as thoughts, e.g. 'I am having the thought that...'",
            ),
            Intervention(
                "Values Clarification",
                "Identifying what matters to the client",
                "Exploring life domains and committed action",
            ),
        ),
    ),
    Modality(
        "Psychodynamic Therapy",
        "Exploring unconscious patterns and past experiences shaping present functioning.",
        (
            "Links drawn between early relationships and current patterns",
            "Attention to transference or defenses",
        ),
        (
            Intervention(
                "Interpretation",
                "Offering insight into underlying meaning",
                "Therapist connects present feelings to past relationships",
            ),
            Intervention(
                "Exploration of Defenses",
                "Noticing avoidance or protective patterns",
                "Gently naming a shift away from difficult material",
            ),
        ),
    ),
    Modality(
        "Person-Centered Therapy",
        "Non-directive approach built on empathy, congruence and unconditional positive regard.",
        ("Extensive reflective listening", "Client sets the direction of the session"),
        (
            Intervention(
                "Reflective Listening",
                "Mirroring content and feeling",
                "Therapist paraphrases and reflects emotions",
            ),
            Intervention(
                "Unconditional Positive Regard",
                "Non-judgmental acceptance",
                "Validating statements without evaluation",
            ),
        ),
    ),
    Modality(
        "Eye Movement Desensitization and Reprocessing (EMDR)",
        "Phased trauma treatment using bilateral stimulation.",
        ("Target memory identification", "Bilateral stimulation sets"),
        (
            Intervention(
                "Resource Installation",
                "Strengthening calm or safe-place imagery",
                "Bilateral stimulation paired with a positive resource",
            ),
            Intervention(
                "Desensitization",
                "Processing a target memory",
                "Tracking SUD ratings across sets",
            ),
        ),
    ),
    Modality(
        "Internal Family Systems (IFS)",
        "Working with internal parts and the core Self.",
        ("Language about parts, protectors or exiles", "Unblending from a part"),
        (
            Intervention(
                "Parts Mapping",
                "Identifying and naming internal parts",
                "Asking the client to notice where a part shows up",
            ),
            Intervention(
                "Unburdening",
                "Helping an exiled part release a burden",
                "Guided internal dialogue with a part",
            ),
        ),
    ),
    Modality(
        "Solution-Focused Brief Therapy (SFBT)",
        "Future-oriented approach building on existing strengths.",
        ("Scaling questions", "Focus on exceptions and preferred future"),
        (
            Intervention(
                "Miracle Question",
                "Imagining the problem solved",
                "'If you woke up tomorrow and the problem was gone...'",
            ),
            Intervention(
                "Scaling Questions",
                "Rating progress on a 0-10 scale",
                "Asking what would move the client one point up",
            ),
        ),
    ),
    Modality(
        "Narrative Therapy",
        "Separating the person from the problem and re-authoring their story.",
        ("Externalizing language", "Search for unique outcomes"),
        (
            Intervention(
                "Externalization",
                "Talking about the problem as separate from the person",
                "Naming the problem as an outside influence",
            ),
            Intervention(
                "Re-authoring",
                "Developing a preferred story",
                "Highlighting times the client resisted the problem",
            ),
        ),
    ),
    Modality(
        "Trauma-Focused CBT (TF-CBT)",
        "Structured trauma treatment combining CBT with trauma-sensitive components.",
        ("Psychoeducation about trauma responses", "Trauma narrative work"),
        (
            Intervention(
                "Trauma Narrative",
                "Constructing and processing an account of the trauma",
                "Client writes or tells the story with therapist support",
            ),
            Intervention(
                "Relaxation Skills",
                "Stress management techniques",
                "Teaching breathing or progressive muscle relaxation",
            ),
        ),
    ),
    Modality(
        "Behavioral Therapy",
        "Changing behavior through reinforcement and learning principles.",
        ("Reinforcement schedules or contingency planning", "Behavior tracking"),
        (
            Intervention(
                "Contingency Management",
                "Reinforcing target behaviors",
                "Agreeing on rewards for meeting behavioral goals",
            ),
            Intervention(
                "Self-Monitoring",
                "Tracking frequency of behaviors",
                "Assigning a log of behaviors or urges",
            ),
        ),
    ),
    Modality(
        "Motivational Interviewing (MI)",
        "Collaborative conversation strengthening motivation for change.",
        ("Exploring ambivalence", "Eliciting change talk"),
        (
            Intervention(
                "Decisional Balance",
                "Weighing pros and cons of change",
                "Exploring benefits and costs of current behavior",
            ),
            Intervention(
                "OARS",
                "Open questions, affirmations, reflections, summaries",
                "Therapist uses reflective summaries to highlight change talk",
            ),
        ),
    ),
)


ENGAGEMENT_CATEGORIES: tuple[EngagementCategory, ...] = (
    EngagementCategory(
        "General Receptiveness",
        (
            "The client was open and engaged, participating actively throughout the session.",
            "The client demonstrated a willingness to explore new perspectives and engage in the conversation.",
        ),
        ("The client seemed disengaged and offered minimal verbal feedback during the session.",),
    ),
    EngagementCategory(
        "Active Listening",
        (
            "The client listened attentively and responded thoughtfully to prompts.",
            "The client showed a high level of engagement by reflecting on key points discussed.",
        ),
        ("The client appeared distant and unresponsive to discussion points.",),
    ),
    EngagementCategory(
        "Response to Interventions",
        (
            "The client responded positively to the interventions, showing clear interest and engagement in the strategies discussed.",
            "The client demonstrated a willingness to apply the interventions, expressing interest in integrating them into their routine.",
        ),
        ("The client appeared resistant to feedback and became defensive when suggestions were offered.",),
    ),
    EngagementCategory(
        "Nonverbal Communication",
        ("The client's body language indicated receptiveness, with consistent eye contact and positive posture.",),
        ("The client exhibited closed body language, such as crossed arms or avoiding eye contact.",),
    ),
    EngagementCategory(
        "Commitment to Practice",
        ("The client has committed to practicing their healthy coping skills and self-care activities between sessions.",),
        ("The client expressed reluctance to engage in between-session practice or homework.",),
    ),
)


ANALYSIS_SYSTEM_PROMPT = (
    "You are a clinical analysis assistant. Read the session material and answer "
    "only from what it contains. Do not write the progress note itself."
)


def modalities_prompt(raw_input: str) -> str:
    lines = [
        "Analyze the following therapy session material to identify therapeutic "
        "modalities and interventions used.",
        "",
        "Consider these common psychotherapy modalities and their typical interventions:",
    ]
    for modality in MODALITIES:
        lines += ["", modality.name, f"Description: {modality.description}", "Detection Criteria:"]
        lines += [f"- {c}" for c in modality.detection_criteria]
        lines.append("Interventions:")
        for intervention in modality.interventions:
            lines.append(f"• {intervention.name}")
            lines.append(f"  - What: {intervention.description}")
            lines.append(f"  - Detect: {intervention.detection}")

    lines += [
        "",
        "Please analyze the session and:",
        "1. Identify all therapeutic modalities used",
        "2. List specific interventions from each modality",
        "3. Provide evidence from the session material supporting each identification",
        "4. Note any significant therapeutic moments or techniques that don't fit these categories",
        "",
        "Format your response as a structured list.",
        "",
        "Session Material:",
        raw_input,
    ]
    return "\n".join(lines)


def engagement_prompt(raw_input: str) -> str:
    lines = [
        "Consider these common patterns of client engagement and responsiveness "
        "when analyzing the session:",
    ]
    for category in ENGAGEMENT_CATEGORIES:
        lines += ["", f"{category.name}:", "Positive Indicators:"]
        lines += [f"- {p}" for p in category.positive]
        lines.append("Challenging Indicators:")
        lines += [f"- {c}" for c in category.challenging]

    lines += [
        "",
        "Please analyze the client's engagement and responsiveness, considering:",
        "1. Overall level of engagement and receptiveness",
        "2. Specific responses to interventions and suggestions",
        "3. Notable nonverbal communication",
        "4. Commitment to between-session practice",
        "5. Any significant changes in engagement during the session",
        "",
        "Format your response as a structured analysis focusing on these aspects.",
        "",
        "Session Material:",
        raw_input,
    ]
    return "\n".join(lines)


def render_provided_modalities(provided: Mapping[str, Sequence[str]]) -> str:
    """Build the modality analysis locally from modalities the clinician selected."""
    lines = ["Therapeutic Modalities Analysis:"]
    for modality, interventions in provided.items():
        lines += ["", f"{modality}:"]
        lines += [f"- {i}" for i in interventions]
    return "\n".join(lines)
