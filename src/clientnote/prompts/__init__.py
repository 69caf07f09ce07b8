"""
Prompts — everything that decides what text the backend sees.

Key components:
- PromptComposer: display prompt vs. model prompt
- formats: SOAP/DAP/BIRP/PIRP/GIRP/SBAR/FOCUS catalog and expansion
- system: per-type system instructions and default sampling
- forms: structured session-note and treatment-plan input
"""

from clientnote.prompts.composer import ComposedPrompt, PromptComposer
from clientnote.prompts.formats import NOTE_FORMATS, NoteFormat, expand_format, get_format
from clientnote.prompts.forms import SessionNoteForm, TreatmentPlanForm
from clientnote.prompts.system import BRAINSTORM_SYSTEM_PROMPT, default_config

__all__ = [
    "ComposedPrompt",
    "PromptComposer",
    "NOTE_FORMATS",
    "NoteFormat",
    "expand_format",
    "get_format",
    "SessionNoteForm",
    "TreatmentPlanForm",
    "BRAINSTORM_SYSTEM_PROMPT",
    "default_config",
]
