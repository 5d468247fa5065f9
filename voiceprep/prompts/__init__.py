"""
AI prompt templates for VoicePrep

Contains structured prompts for:
- Answer evaluation
"""

from voiceprep.prompts.evaluator import EvaluatorPrompts

__all__ = [
    "EvaluatorPrompts",
]
