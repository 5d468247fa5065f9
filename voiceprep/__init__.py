"""
VoicePrep - Voice-Driven Mock Interview Session Runner

Sequences interview questions through text-to-speech, captures spoken
answers, scores them with an external evaluation service and assembles
a session summary.
"""

__version__ = "0.1.0"
__author__ = "VoicePrep Team"
