"""
Analysis — preliminary model passes for session notes.

- AnalysisStage: runs the modalities and engagement passes, degrading on failure
- catalog: modality and engagement reference data rendered into the prompts
"""

from clientnote.analysis.stage import AnalysisResult, AnalysisStage

__all__ = ["AnalysisResult", "AnalysisStage"]
